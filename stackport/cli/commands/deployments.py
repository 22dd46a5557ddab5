"""Deployment management commands.

These run the same flow as the HTTP API (validate, record, orchestrate)
against the configured database and cluster.
"""

from typing import Annotated

import typer
from rich.table import Table

from stackport.app.core.services.deployment_service import DeploymentService
from stackport.app.entities.deployment.entity import Deployment
from stackport.cli.context import CLIContext, get_cli_context
from stackport.cli.shared.console import with_error_handling
from stackport.infra.k8s.utils import run_sync

deployments_app = typer.Typer(
    help="Create, inspect, scale, pause and delete deployments",
    no_args_is_help=True,
)

OwnerOption = Annotated[
    int,
    typer.Option("--owner", "-o", min=1, help="Owner (user) id the deployment belongs to"),
]
EnvOption = Annotated[
    list[str] | None,
    typer.Option("--env", "-e", help="Environment variable as KEY=VALUE (repeatable)"),
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def parse_env(pairs: list[str] | None) -> dict[str, str]:
    """Turn ``KEY=VALUE`` strings into a mapping."""
    env: dict[str, str] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"expected KEY=VALUE, got {pair!r}", param_hint="--env")
        env[key] = value
    return env


def _service(cli: CLIContext) -> DeploymentService:
    cli.deps.database_service.create_all()
    return cli.deps.deployment_service


def _deployments_table(deployments: list[Deployment]) -> Table:
    table = Table()
    table.add_column("ID", justify="right")
    table.add_column("Image", style="cyan")
    table.add_column("Port", justify="right")
    table.add_column("Volume", justify="right")
    table.add_column("Replicas", justify="right")
    table.add_column("State")
    table.add_column("Env vars")
    for d in deployments:
        table.add_row(
            str(d.id),
            d.image,
            str(d.assigned_port or "-"),
            f"{d.volume_size_gib}Gi" if d.volume_size_gib else "-",
            str(d.replicas),
            "[green]running[/green]" if d.running else "[yellow]paused[/yellow]",
            # values may be secrets, only show names
            ", ".join(sorted(d.env_vars)) or "-",
        )
    return table


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@deployments_app.command("list")
@with_error_handling
def list_deployments(ctx: typer.Context, owner: OwnerOption) -> None:
    """List an owner's deployments."""
    cli = get_cli_context(ctx)
    deployments = _service(cli).list_deployments(owner)
    if not deployments:
        cli.console.info(f"No deployments for owner {owner}")
        return
    cli.console.print(_deployments_table(deployments))


@deployments_app.command("get")
@with_error_handling
def get_deployment(
    ctx: typer.Context,
    deployment_id: Annotated[int, typer.Argument(help="Deployment id")],
    owner: OwnerOption,
) -> None:
    """Show one deployment."""
    cli = get_cli_context(ctx)
    deployment = _service(cli).get_deployment(deployment_id, owner)
    cli.console.print(_deployments_table([deployment]))


@deployments_app.command("create")
@with_error_handling
def create_deployment(
    ctx: typer.Context,
    image: Annotated[str, typer.Argument(help="Catalog image name")],
    owner: OwnerOption,
    volume: Annotated[int, typer.Option("--volume", "-v", help="Storage in GiB")] = 1,
    replicas: Annotated[int, typer.Option("--replicas", "-r", help="Pod count")] = 1,
    env: EnvOption = None,
) -> None:
    """Create a deployment and its cluster resources.

    Examples:
        stackport deployments create redis --owner 7
        stackport deployments create postgres -o 7 -v 2 -e POSTGRES_DB=app -e POSTGRES_USER=app -e POSTGRES_PASSWORD=secret
    """
    cli = get_cli_context(ctx)
    service = _service(cli)
    with cli.console.status(f"Creating {image} deployment..."):
        deployment = run_sync(
            service.create_deployment(owner, image, volume, replicas, parse_env(env))
        )
    cli.console.ok(f"Deployment {deployment.id} created on node port {deployment.assigned_port}")
    cli.console.print(_deployments_table([deployment]))


@deployments_app.command("update")
@with_error_handling
def update_deployment(
    ctx: typer.Context,
    deployment_id: Annotated[int, typer.Argument(help="Deployment id")],
    owner: OwnerOption,
    replicas: Annotated[int | None, typer.Option("--replicas", "-r", help="Pod count")] = None,
    volume: Annotated[int | None, typer.Option("--volume", "-v", help="Storage in GiB")] = None,
    env: EnvOption = None,
    running: Annotated[
        bool | None, typer.Option("--running/--paused", help="Run or pause the pods")
    ] = None,
    port: Annotated[int, typer.Option("--port", "-p", help="NodePort, 0 keeps the current one")] = 0,
) -> None:
    """Scale, resize, pause/resume or re-port a deployment.

    Options that are not given keep their current value.

    Examples:
        stackport deployments update 3 --owner 7 --paused
        stackport deployments update 3 --owner 7 --volume 2 --replicas 2
    """
    cli = get_cli_context(ctx)
    service = _service(cli)
    current = service.get_deployment(deployment_id, owner)
    with cli.console.status(f"Updating deployment {deployment_id}..."):
        deployment = run_sync(
            service.update_deployment(
                deployment_id,
                owner,
                replicas=current.replicas if replicas is None else replicas,
                volume=current.volume_size_gib if volume is None else volume,
                env_vars=current.env_vars if env is None else parse_env(env),
                running=current.running if running is None else running,
                port=port,
            )
        )
    cli.console.ok(f"Deployment {deployment.id} updated")
    cli.console.print(_deployments_table([deployment]))


@deployments_app.command("delete")
@with_error_handling
def delete_deployment(
    ctx: typer.Context,
    deployment_id: Annotated[int, typer.Argument(help="Deployment id")],
    owner: OwnerOption,
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Skip confirmation prompt")
    ] = False,
) -> None:
    """Delete a deployment, its cluster resources and its storage."""
    cli = get_cli_context(ctx)
    service = _service(cli)
    deployment = service.get_deployment(deployment_id, owner)

    if not cli.console.confirm_action(
        f"Delete deployment {deployment_id}",
        f"This removes the {deployment.image} workload, its service and all stored data.",
        force=force,
    ):
        cli.console.print("[dim]Operation cancelled[/dim]")
        raise typer.Exit(0)

    with cli.console.status(f"Deleting deployment {deployment_id}..."):
        run_sync(service.delete_deployment(deployment_id, owner))
    cli.console.ok(f"Deployment {deployment_id} deleted")
