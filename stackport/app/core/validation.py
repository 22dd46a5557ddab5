"""Field-level validation of logical deployments against the image catalog.

Create and update share this one contract. Every check runs, so callers
receive all violations at once; when a field fails several checks only the
first message is kept.
"""

from __future__ import annotations

from stackport.app.core.catalog import ImageCatalog
from stackport.app.core.errors import ValidationError
from stackport.app.entities.deployment.entity import Deployment

MIN_VOLUME_GIB = 0
MAX_VOLUME_GIB = 5
MIN_REPLICAS = 1
MAX_REPLICAS = 4
MIN_NODE_PORT = 30000
MAX_NODE_PORT = 32767


class FieldErrors:
    """Accumulates field -> message pairs, keeping the first message per field."""

    def __init__(self) -> None:
        self.errors: dict[str, str] = {}

    def add(self, key: str, message: str) -> None:
        self.errors.setdefault(key, message)

    def check(self, ok: bool, key: str, message: str) -> None:
        if not ok:
            self.add(key, message)

    @property
    def valid(self) -> bool:
        return not self.errors


def env_vars_match(env_vars: dict[str, str], required: frozenset[str]) -> bool:
    """True when every required name is present and no other name is."""
    return set(env_vars) == set(required)


class DeploymentValidator:
    """Checks candidate deployments against catalog capabilities and bounds."""

    def __init__(self, catalog: ImageCatalog) -> None:
        self._catalog = catalog

    @property
    def catalog(self) -> ImageCatalog:
        return self._catalog

    def validate(self, candidate: Deployment, *, for_update: bool = False) -> dict[str, str]:
        """Return the field violations of ``candidate`` (empty when valid).

        Args:
            candidate: Deployment to check
            for_update: Also check the port bounds of an existing deployment
        """
        v = FieldErrors()
        entry = self._catalog.lookup(candidate.image)

        v.check(candidate.image != "", "image", "must be provided")
        v.check(entry is not None, "image", "needs to be available")

        v.check(candidate.volume_size_gib >= MIN_VOLUME_GIB, "volume", "cannot have a negative value")
        v.check(candidate.volume_size_gib <= MAX_VOLUME_GIB, "volume", "cannot have a value over 5")
        v.check(
            entry is not None and entry.supports_volume and candidate.volume_size_gib != 0,
            "volume",
            "not available for this image",
        )

        v.check(candidate.replicas >= MIN_REPLICAS, "replicas", "needs to have a value of at least 1")
        v.check(candidate.replicas <= MAX_REPLICAS, "replicas", "cannot have a value over 4")

        required = entry.required_env_vars if entry is not None else frozenset()
        v.check(
            entry is not None and env_vars_match(candidate.env_vars, required),
            "env_vars",
            "not available or valid",
        )

        if for_update and candidate.assigned_port != 0:
            v.check(candidate.assigned_port >= MIN_NODE_PORT, "port", "cannot have a value under 30000")
            v.check(candidate.assigned_port <= MAX_NODE_PORT, "port", "cannot have a value over 32767")

        return v.errors

    def ensure_valid(self, candidate: Deployment, *, for_update: bool = False) -> None:
        """Raise ValidationError if ``candidate`` has any violation."""
        errors = self.validate(candidate, for_update=for_update)
        if errors:
            raise ValidationError(errors)
