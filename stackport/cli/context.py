"""CLI context and dependency container."""

from __future__ import annotations

from dataclasses import dataclass

import click
import typer

from stackport.app.api.http.app_data import (
    ApplicationDependencies,
    build_application_dependencies,
)
from stackport.app.runtime.config.config_data import ConfigData
from stackport.app.runtime.context import get_config
from stackport.cli.shared.console import CLIConsole, console


@dataclass(frozen=True)
class CLIContext:
    """Runtime dependencies for CLI commands."""

    console: CLIConsole
    config: ConfigData
    deps: ApplicationDependencies


def build_cli_context() -> CLIContext:
    """Build a fresh CLIContext from config.yaml."""
    config = get_config()

    return CLIContext(
        console=console,
        config=config,
        deps=build_application_dependencies(config),
    )


def get_cli_context(ctx: typer.Context | None = None) -> CLIContext:
    """Return the CLIContext from Typer, falling back to a new instance."""
    context = ctx or click.get_current_context(silent=True)
    if context and isinstance(context.obj, CLIContext):
        return context.obj
    cli_context = build_cli_context()
    if context is not None:
        context.obj = cli_context
    return cli_context
