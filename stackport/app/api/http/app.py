"""FastAPI application factory."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

from stackport import __version__
from stackport.app.api.http.app_data import (
    ApplicationDependencies,
    build_application_dependencies,
)
from stackport.app.api.http.routers import deployments, health
from stackport.app.core.errors import NotFoundError, StackportError, ValidationError
from stackport.app.runtime.config.config_data import ConfigData
from stackport.app.runtime.context import get_config
from stackport.app.runtime.logging import configure_logging

NOT_FOUND_MESSAGE = "the requested resource could not be found"
SERVER_ERROR_MESSAGE = "the server encountered a problem and could not process your request"


# =============================================================================
# Error handlers
# =============================================================================


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"error": exc.errors})


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": NOT_FOUND_MESSAGE})


async def stackport_error_handler(request: Request, exc: StackportError) -> JSONResponse:
    """Log the full error and answer with an opaque message."""
    step = exc.step
    logger.opt(exception=exc).error(
        f"{request.method} {request.url.path} failed"
        + (f" at {step.value}" if step is not None else "")
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": SERVER_ERROR_MESSAGE},
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {"msg": "invalid request"}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{location}: {first['msg']}" if location else first["msg"]
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=exc.headers,
    )


# =============================================================================
# Application
# =============================================================================


def create_app(
    config: ConfigData | None = None,
    app_dependencies: ApplicationDependencies | None = None,
) -> FastAPI:
    """Build the API application.

    Args:
        config: Configuration to use instead of config.yaml
        app_dependencies: Pre-built services; built from ``config`` at
            startup when omitted
    """
    config = config or get_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging(config.app.log_level)
        if getattr(app.state, "app_dependencies", None) is None:
            app.state.app_dependencies = build_application_dependencies(config)
        deps: ApplicationDependencies = app.state.app_dependencies
        deps.database_service.create_all()
        logger.info(
            f"{config.app.name} {__version__} started "
            f"(environment={config.app.environment}, cluster={config.cluster.backend})"
        )
        yield
        deps.database_service.dispose()
        logger.info(f"{config.app.name} stopped")

    app = FastAPI(title="Stackport", version=__version__, lifespan=lifespan)
    app.state.config = config
    app.state.app_dependencies = app_dependencies

    app.add_exception_handler(ValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(NotFoundError, not_found_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StackportError, stackport_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, request_validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]

    app.include_router(health.router)
    app.include_router(deployments.catalog_router)
    app.include_router(deployments.router)
    return app
