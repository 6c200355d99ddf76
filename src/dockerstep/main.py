"""Main CLI entry point for dockerstep.

This module provides the Typer application running Docker steps from the
command line.

Usage:
    dockerstep auth --server-id docker-hub
    dockerstep info --host tcp://docker.example.com:2376 --cert-path ~/.docker
    dockerstep push registry.example.com/team/app:1.0.0 --server-id team-registry
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any, NoReturn, Optional

import typer
from rich.console import Console
from rich.table import Table

from dockerstep.auth import resolve_auth_config
from dockerstep.config import DockerConfig, DockerStepConfig, load_config
from dockerstep.exceptions import DockerStepError, StepExecutionError
from dockerstep.logging import set_correlation_id, setup_logging
from dockerstep.settings import Settings, load_settings
from dockerstep.steps import InfoStep, PushImageStep

app = typer.Typer(
    name="dockerstep",
    help="dockerstep: Docker-aware build steps",
    no_args_is_help=True,
)

console = Console()


class AppContext:
    """Application context shared across CLI commands.

    Attributes:
        config: Loaded dockerstep configuration
        settings: Server credential store
    """

    def __init__(self, config: DockerStepConfig, settings: Settings):
        self.config = config
        self.settings = settings

    def docker_config(self, **overrides: Any) -> DockerConfig:
        """Return the docker section with non-None command-line overrides applied."""
        update = {key: value for key, value in overrides.items() if value is not None}
        return self.config.docker.model_copy(update=update)


_app_context: AppContext | None = None


def get_app_context() -> AppContext:
    """Get the shared application context.

    Raises:
        RuntimeError: If context has not been initialized
    """
    if _app_context is None:
        raise RuntimeError("Application context not initialized. Call initialize_context first.")
    return _app_context


def initialize_context(config: DockerStepConfig, settings: Settings) -> AppContext:
    """Initialize the global application context."""
    global _app_context
    _app_context = AppContext(config, settings)
    return _app_context


def _fail(message: str, error: Exception) -> NoReturn:
    cause = error.__cause__ if isinstance(error, StepExecutionError) and error.__cause__ else error
    console.print(f"[red]{message}:[/red] {cause}", soft_wrap=True)
    raise typer.Exit(code=1)


ServerIdOption = Annotated[
    Optional[str],
    typer.Option("--server-id", "-s", help="Server credential to authenticate with"),
]
RegistryUrlOption = Annotated[
    Optional[str],
    typer.Option("--registry-url", "-r", help="Registry address for the credentials"),
]
HostOption = Annotated[
    Optional[str],
    typer.Option("--host", "-H", help="Docker daemon URI"),
]
CertPathOption = Annotated[
    Optional[Path],
    typer.Option(
        "--cert-path",
        help="Directory holding ca.pem, cert.pem and key.pem",
        file_okay=False,
    ),
]


@app.command()
def auth(server_id: ServerIdOption = None, registry_url: RegistryUrlOption = None) -> None:
    """Resolve and show the registry credentials a step would use."""
    ctx = get_app_context()
    docker_config = ctx.docker_config(server_id=server_id, registry_url=registry_url)

    try:
        auth_config = resolve_auth_config(
            ctx.settings, docker_config.server_id, docker_config.registry_url
        )
    except DockerStepError as e:
        _fail("Authentication not resolved", e)

    if auth_config is None:
        console.print("[yellow]No server id configured; registry authentication is skipped[/yellow]")
        return

    table = Table(title="Registry Authentication")
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Value", style="bold")
    table.add_row("Server", docker_config.server_id or "")
    table.add_row("Username", auth_config.username)
    table.add_row("Password", "********")
    table.add_row("Email", auth_config.email)
    table.add_row("Registry", auth_config.server_address)
    console.print(table)


@app.command()
def info(
    host: HostOption = None,
    cert_path: CertPathOption = None,
    server_id: ServerIdOption = None,
    registry_url: RegistryUrlOption = None,
) -> None:
    """Show the Docker daemon version."""
    ctx = get_app_context()
    step = InfoStep(
        ctx.docker_config(
            host=host, cert_path=cert_path, server_id=server_id, registry_url=registry_url
        ),
        ctx.settings,
    )

    try:
        step.execute()
    except StepExecutionError as e:
        _fail("Docker info failed", e)

    if step.daemon_info is None:
        console.print("[yellow]Docker step skipped[/yellow]")
        return

    console.print(f"[bold]Docker version:[/bold] {step.daemon_info.version}")
    console.print(f"[bold]API version:[/bold] {step.daemon_info.api_version}")
    console.print(f"[dim]Platform:[/dim] {step.daemon_info.os}/{step.daemon_info.arch}")


@app.command()
def push(
    image: Annotated[str, typer.Argument(help="Image to push (repository[:tag])")],
    host: HostOption = None,
    cert_path: CertPathOption = None,
    server_id: ServerIdOption = None,
    registry_url: RegistryUrlOption = None,
) -> None:
    """Push an image using the configured registry credentials."""
    ctx = get_app_context()
    step = PushImageStep(
        image,
        ctx.docker_config(
            host=host, cert_path=cert_path, server_id=server_id, registry_url=registry_url
        ),
        ctx.settings,
    )

    try:
        step.execute()
    except StepExecutionError as e:
        _fail("Docker push failed", e)

    if step.result is None:
        console.print("[yellow]Docker step skipped[/yellow]")
        return

    console.print(f"[green]Pushed[/green] {step.result.image}")
    if step.result.digest:
        console.print(f"[bold]Digest:[/bold] {step.result.digest}", soft_wrap=True)


@app.callback()
def main_callback(
    config_path: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file (TOML format)",
            exists=True,
            dir_okay=False,
            readable=True,
        ),
    ] = None,
    settings_path: Annotated[
        Optional[Path],
        typer.Option(
            "--settings",
            help="Path to the server credential store (TOML format)",
            exists=True,
            dir_okay=False,
            readable=True,
        ),
    ] = None,
    correlation_id: Annotated[
        Optional[str],
        typer.Option(
            "--correlation-id",
            help="Identifier attached to every log line (e.g. the CI build id)",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Load configuration, set up logging and read the credential store."""
    try:
        config = load_config(config_path)
    except Exception as e:
        console.print(f"[red]Error loading configuration:[/red] {e}", soft_wrap=True)
        raise typer.Exit(code=1)

    logging_config = config.logging
    if verbose:
        logging_config = logging_config.model_copy(update={"level": "DEBUG"})
    setup_logging(logging_config)
    set_correlation_id(correlation_id or config.correlation_id)

    try:
        settings = load_settings(settings_path or config.settings_file)
    except Exception as e:
        console.print(f"[red]Error loading settings:[/red] {e}", soft_wrap=True)
        raise typer.Exit(code=1)

    initialize_context(config, settings)

    if verbose:
        console.print("[dim]Debug logging enabled[/dim]")


if __name__ == "__main__":
    app()
