"""Record store adapter for logical deployments."""

from __future__ import annotations

from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from stackport.app.core.errors import DuplicateError, NotFoundError

from .entity import Deployment
from .table import DeploymentTable, utc_now


class DeploymentRepository:
    """Owner-scoped CRUD over the ``deployments`` table.

    Every method opens its own session, so a repository can be shared freely
    between requests. Records are returned as ``Deployment`` entities, never
    as table rows.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def insert(self, deployment: Deployment) -> Deployment:
        """Persist a new record; ``id`` and timestamps are assigned here.

        Raises:
            DuplicateError: The database rejected the row
        """
        row = DeploymentTable(
            owner_id=deployment.owner_id,
            image=deployment.image,
            volume_size_gib=deployment.volume_size_gib,
            replicas=deployment.replicas,
            env_vars=dict(deployment.env_vars),
            running=deployment.running,
            assigned_port=deployment.assigned_port,
        )
        with Session(self._engine) as session:
            session.add(row)
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise DuplicateError("Deployment record already exists", details=str(e.orig)) from e
            session.refresh(row)
            return Deployment.model_validate(row)

    def get_by_owner(self, deployment_id: int, owner_id: int) -> Deployment:
        with Session(self._engine) as session:
            return Deployment.model_validate(self._get_row(session, deployment_id, owner_id))

    def list_by_owner(self, owner_id: int) -> list[Deployment]:
        with Session(self._engine) as session:
            statement = (
                select(DeploymentTable)
                .where(DeploymentTable.owner_id == owner_id)
                .order_by(DeploymentTable.id)  # type: ignore[arg-type]
            )
            return [Deployment.model_validate(row) for row in session.exec(statement)]

    def update_by_owner(
        self, deployment_id: int, owner_id: int, deployment: Deployment
    ) -> Deployment:
        """Overwrite the mutable fields of a record and refresh ``last_updated_at``."""
        with Session(self._engine) as session:
            row = self._get_row(session, deployment_id, owner_id)
            row.image = deployment.image
            row.volume_size_gib = deployment.volume_size_gib
            row.replicas = deployment.replicas
            row.env_vars = dict(deployment.env_vars)
            row.running = deployment.running
            row.assigned_port = deployment.assigned_port
            row.last_updated_at = utc_now()
            session.add(row)
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise DuplicateError("Deployment record conflicts with another", details=str(e.orig)) from e
            session.refresh(row)
            return Deployment.model_validate(row)

    def delete_by_owner(self, deployment_id: int, owner_id: int) -> None:
        with Session(self._engine) as session:
            row = self._get_row(session, deployment_id, owner_id)
            session.delete(row)
            session.commit()

    @staticmethod
    def _get_row(session: Session, deployment_id: int, owner_id: int) -> DeploymentTable:
        if deployment_id < 1:
            raise NotFoundError(f"Deployment {deployment_id} not found")
        statement = select(DeploymentTable).where(
            DeploymentTable.id == deployment_id,
            DeploymentTable.owner_id == owner_id,
        )
        row = session.exec(statement).first()
        if row is None:
            raise NotFoundError(f"Deployment {deployment_id} not found")
        return row
