"""API server command."""

from typing import Annotated

import typer
import uvicorn

from stackport.app.runtime.context import get_config


def serve(
    host: Annotated[str | None, typer.Option("--host", help="Bind address")] = None,
    port: Annotated[int | None, typer.Option("--port", help="Bind port")] = None,
    reload: Annotated[bool, typer.Option("--reload", help="Reload on code changes")] = False,
) -> None:
    """Run the HTTP API with uvicorn.

    Host and port default to the ``app`` section of config.yaml.
    """
    config = get_config()
    uvicorn.run(
        "stackport.app.api.http.app:create_app",
        factory=True,
        host=host or config.app.host,
        port=port or config.app.port,
        reload=reload,
        log_level=config.app.log_level.lower(),
    )
