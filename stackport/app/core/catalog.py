"""Image catalog: the static registry of deployable images.

The catalog is built once at process start (from configuration, or from the
built-in defaults) and handed explicitly to the validator and the API layer.
It is never mutated afterwards.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType


@dataclass(frozen=True)
class CatalogEntry:
    """Capabilities of a single catalog image.

    Attributes:
        supports_volume: Whether the image may be given persistent storage
        required_env_vars: Exact set of environment variable names the image needs
    """

    supports_volume: bool
    required_env_vars: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def of(cls, supports_volume: bool, env_vars: Iterable[str] = ()) -> CatalogEntry:
        return cls(supports_volume=supports_volume, required_env_vars=frozenset(env_vars))

    def to_dict(self) -> dict[str, object]:
        return {
            "volume": self.supports_volume,
            "env_vars": sorted(self.required_env_vars),
        }


class ImageCatalog:
    """Read-only mapping of image name to CatalogEntry."""

    def __init__(self, entries: Mapping[str, CatalogEntry]) -> None:
        self._entries: Mapping[str, CatalogEntry] = MappingProxyType(dict(entries))

    def lookup(self, image: str) -> CatalogEntry | None:
        """Return the entry for ``image`` or None if the image is not offered."""
        return self._entries.get(image)

    def enumerate(self) -> list[tuple[str, CatalogEntry]]:
        """Return all (image, entry) pairs ordered by image name."""
        return sorted(self._entries.items())

    def __contains__(self, image: object) -> bool:
        return image in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._entries))

    def __len__(self) -> int:
        return len(self._entries)


DEFAULT_CATALOG = ImageCatalog(
    {
        "postgres": CatalogEntry.of(
            True, ["POSTGRES_DB", "POSTGRES_PASSWORD", "POSTGRES_USER"]
        ),
        "redis": CatalogEntry.of(True),
        "mysql": CatalogEntry.of(
            True, ["MYSQL_DATABASE", "MYSQLPASSWORD", "MYSQLUSER"]
        ),
        "mongo": CatalogEntry.of(
            True, ["MONGO_DB_NAME", "MONGOPASSWORD", "MONGOUSER"]
        ),
    }
)
