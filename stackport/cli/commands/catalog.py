"""Image catalog command."""

import typer
from rich.table import Table

from stackport.cli.context import get_cli_context
from stackport.cli.shared.console import with_error_handling


@with_error_handling
def catalog(ctx: typer.Context) -> None:
    """List the images that can be deployed.

    Examples:
        stackport catalog
    """
    cli = get_cli_context(ctx)
    entries = cli.deps.deployment_service.list_catalog()

    table = Table(title=f"Available images ({len(entries)})")
    table.add_column("Image", style="cyan")
    table.add_column("Volume")
    table.add_column("Required env vars")
    for name, entry in entries:
        table.add_row(
            name,
            "yes" if entry.supports_volume else "no",
            ", ".join(sorted(entry.required_env_vars)) or "-",
        )
    cli.console.print(table)
