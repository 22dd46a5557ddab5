"""Database engine and table management used across the application."""

from loguru import logger
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, OperationalError, ProgrammingError
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from stackport.app.entities.loader import get_metadata
from stackport.app.runtime.config.config_data import DatabaseConfig


def build_engine(database: DatabaseConfig) -> Engine:
    """Create the SQLAlchemy engine for the configured database URL.

    SQLite connections may be used from other threads (FastAPI runs sync
    dependencies in a pool); in-memory SQLite shares a single connection so
    every session sees the same database.
    """
    url = database.connection_string
    if url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=database.echo, **kwargs)
    return create_engine(url, echo=database.echo, pool_pre_ping=True)


class DbManageService:
    def __init__(self, database: DatabaseConfig) -> None:
        self._config = database
        self._engine = build_engine(database)

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def database_type(self) -> str:
        url = self._config.connection_string
        if url.startswith("postgresql"):
            return "postgresql"
        if url.startswith("sqlite"):
            return "sqlite"
        return "unknown"

    def create_all(self) -> None:
        """Create all database tables."""
        get_metadata()

        try:
            SQLModel.metadata.create_all(self._engine)
            logger.info("Database initialized with tables.")
        except (ProgrammingError, IntegrityError) as e:
            # Several workers may race to create the same tables
            error_msg = str(e).lower()
            if "already exists" in error_msg or "duplicate key" in error_msg:
                logger.debug(
                    f"Tables already exist or partially created, skipping: {type(e).__name__}"
                )
            else:
                raise

    def health_check(self) -> bool:
        try:
            with self._engine.connect() as connection:
                connection.execute(text("SELECT 1"))
            return True
        except OperationalError as e:
            logger.warning(f"Database health check failed: {e}")
            return False

    def dispose(self) -> None:
        self._engine.dispose()
