"""Main CLI application module.

Command Groups:
- deployments: create, list, get, update and delete deployments

Commands:
- catalog: list deployable images
- serve: run the HTTP API
"""

from typing import Annotated

import typer

from stackport.app.runtime.logging import configure_logging

from .commands import catalog, deployments_app, serve

app = typer.Typer(
    help="Stackport CLI - managed database workloads on Kubernetes",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


@app.callback()
def main_callback(
    log_level: Annotated[
        str,
        typer.Option("--log-level", help="Log level for Stackport's own logs"),
    ] = "WARNING",
) -> None:
    configure_logging(log_level)


app.command("catalog")(catalog)
app.command("serve")(serve)
app.add_typer(deployments_app, name="deployments")


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
