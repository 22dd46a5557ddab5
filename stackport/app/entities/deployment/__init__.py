from .entity import Deployment
from .repository import DeploymentRepository
from .table import DeploymentTable

__all__ = ["Deployment", "DeploymentRepository", "DeploymentTable"]
