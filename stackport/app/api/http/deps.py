"""FastAPI dependencies shared by the routers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Header, HTTPException, Request, status

from stackport.app.api.http.app_data import ApplicationDependencies
from stackport.app.core.services.deployment_service import DeploymentService

AUTHENTICATION_REQUIRED = "you must be authenticated to access this resource"


def get_app_dependencies(request: Request) -> ApplicationDependencies:
    return request.app.state.app_dependencies


def get_deployment_service(request: Request) -> DeploymentService:
    return get_app_dependencies(request).deployment_service


def get_owner_id(
    x_owner_id: Annotated[str | None, Header(description="Identifier of the calling user")] = None,
) -> int:
    """Owner of the request, taken from the ``X-Owner-Id`` header.

    The header is set by the authenticating proxy in front of the API.
    """
    if x_owner_id is None or not x_owner_id.isdigit() or int(x_owner_id) < 1:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=AUTHENTICATION_REQUIRED,
        )
    return int(x_owner_id)
