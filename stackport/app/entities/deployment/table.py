"""SQLModel table backing the deployment record store."""

from datetime import UTC, datetime

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


def utc_now() -> datetime:
    return datetime.now(UTC)


class DeploymentTable(SQLModel, table=True):
    __tablename__ = "deployments"
    # ids are never reused after a delete
    __table_args__ = {"sqlite_autoincrement": True}

    id: int | None = Field(default=None, primary_key=True)
    owner_id: int = Field(index=True)
    image: str = Field(max_length=255)
    volume_size_gib: int = Field(default=0)
    replicas: int = Field(default=1)
    env_vars: dict[str, str] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    running: bool = Field(default=True)
    assigned_port: int = Field(default=0)
    created_at: datetime = Field(default_factory=utc_now)
    last_updated_at: datetime = Field(default_factory=utc_now)
