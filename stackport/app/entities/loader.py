"""Dynamic SQLModel table loader.

SQLModel tracks every ``table=True`` model in ``SQLModel.metadata`` as soon
as its module is imported. This loader imports every ``table.py`` below the
entities directory so ``create_all`` sees all of them without a hand-kept
import list.
"""

import importlib
from pathlib import Path

from loguru import logger
from sqlalchemy import MetaData
from sqlmodel import SQLModel


def get_entities_path() -> Path:
    return Path(__file__).parent


def load_all_tables() -> list[str]:
    """Import all table.py modules below the entities package.

    Returns:
        Names of the imported modules
    """
    entities_path = get_entities_path()
    package_base = __name__.rsplit(".", 1)[0]  # e.g. 'stackport.app.entities'

    imported = []
    for table_file in sorted(entities_path.rglob("table.py")):
        module_parts = table_file.relative_to(entities_path).with_suffix("").parts
        module_name = f"{package_base}.{'.'.join(module_parts)}"

        try:
            importlib.import_module(module_name)
        except ImportError as e:
            raise ImportError(
                f"Failed to import table module '{module_name}' from {table_file}: {e}"
            ) from e
        logger.debug(f"Imported tables from {module_name}")
        imported.append(module_name)
    return imported


def get_metadata() -> MetaData:
    """Load all tables and return SQLModel.metadata."""
    load_all_tables()
    return SQLModel.metadata
