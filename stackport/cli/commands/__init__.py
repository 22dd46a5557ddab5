"""CLI command modules.

Command Groups:
- deployments: Manage deployments of catalog images

Commands:
- catalog: List deployable images
- serve: Run the HTTP API
"""

from .catalog import catalog
from .deployments import deployments_app
from .serve import serve

__all__ = [
    "catalog",
    "deployments_app",
    "serve",
]
