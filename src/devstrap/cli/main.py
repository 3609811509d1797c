"""
CLI interface for devstrap.

Running `devstrap` with no arguments performs the whole bootstrap:
- Checks the host is Linux and has curl
- Installs uv, bun, Docker and Node.js (skipping what is already there)
- Adds the tool directories to the shell rc file
- Prints a summary of available tools

Individual install failures never change the exit code; only a failed
environment check exits non-zero.
"""

from __future__ import annotations

import os
from typing import Annotated, Optional

import structlog
import typer
from pydantic import ValidationError
from rich.console import Console

from devstrap import __version__
from devstrap.bootstrap import Bootstrapper
from devstrap.cli.display import StatusConsole
from devstrap.cli.logging_config import configure_cli_logging
from devstrap.config.environment import detect_shell, get_environment_info
from devstrap.config.settings import DevstrapSettings, ShellKind
from devstrap.utils.error_handling import FatalPreconditionError

logger = structlog.get_logger(__name__)

app = typer.Typer(
    name="devstrap",
    help="devstrap - Development environment bootstrap for cloud coding containers",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console(highlight=False)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold blue]devstrap[/bold blue] version {__version__}")
        raise typer.Exit()


def load_settings(shell: ShellKind | None, verbose: bool) -> DevstrapSettings:
    """
    Load settings and resolve the target shell.

    The shell comes from --shell, then DEVSTRAP_SHELL, then the ambient
    shell variables.
    """
    try:
        settings = DevstrapSettings()
    except ValidationError as e:
        console.print("[red]Invalid configuration:[/red]")
        console.print(str(e), markup=False)
        raise typer.Exit(2)

    updates: dict[str, object] = {}
    if shell is not None:
        updates["shell"] = shell
    elif settings.shell is None:
        updates["shell"] = detect_shell(os.environ)
    if verbose:
        updates["verbose"] = True

    return settings.model_copy(update=updates) if updates else settings


def build_bootstrapper(settings: DevstrapSettings) -> Bootstrapper:
    """Create the bootstrapper for a CLI run."""
    return Bootstrapper(settings, console=StatusConsole(console))


@app.command()
def status(ctx: typer.Context) -> None:
    """
    Show which tools are available.

    Probes uv, bun, docker, node, npm and npx without installing anything.
    """
    settings: DevstrapSettings = ctx.obj
    build_bootstrapper(settings).status()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version", "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show structured debug logs"),
    ] = False,
    shell: Annotated[
        Optional[ShellKind],
        typer.Option("--shell", help="Shell whose rc file receives PATH exports"),
    ] = None,
) -> None:
    """
    devstrap - Development environment bootstrap

    Installs uv, bun, Docker and Node.js with fallbacks, then updates your
    shell configuration.
    """
    settings = load_settings(shell, verbose)
    configure_cli_logging(verbose=settings.verbose)
    ctx.obj = settings

    if ctx.invoked_subcommand is not None:
        return

    info = get_environment_info()
    logger.debug(
        "environment_info",
        platform=info.platform,
        machine=info.machine,
        user=info.user,
        codespace=info.codespace,
        shell=settings.shell.value if settings.shell else None,
    )

    try:
        build_bootstrapper(settings).run()
    except FatalPreconditionError as e:
        StatusConsole(console).error(e.message)
        raise typer.Exit(1)


def cli() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    cli()
