"""CLI commands for servicekit."""

import sys
from pathlib import Path

import typer
from loguru import logger
from rich.console import Console
from rich.markup import escape

from servicekit import __logo__, __version__

app = typer.Typer(
    name="servicekit",
    help=f"{__logo__} servicekit - install and control systemd services",
    no_args_is_help=True,
)

console = Console()

ConfigOption = typer.Option(None, "--config", "-c", help="Service config JSON file")


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} servicekit v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-V", callback=version_callback, is_eager=True
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """servicekit - install and control systemd services."""
    from servicekit.config.settings import Settings

    settings = Settings()
    logger.remove()
    logger.add(lambda msg: sys.stderr.write(msg), level="DEBUG" if verbose else settings.log_level)


def _load(config_path: Path | None):
    from servicekit.config.loader import load_config
    from servicekit.config.settings import Settings
    from servicekit.service import ServiceError

    path = config_path or Settings().config_path
    try:
        return load_config(path)
    except ServiceError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)


def _get_service(config_path: Path | None):
    from servicekit.service import ServiceError, new_service
    from servicekit.service.program import ProgramInterface

    config = _load(config_path)
    try:
        return new_service(ProgramInterface(), config)
    except ServiceError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)


def _invoke(service, action: str, done: str):
    from servicekit.service import ServiceError

    try:
        getattr(service, action)()
    except ServiceError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] {service} {done}")


# ============================================================================
# Lifecycle
# ============================================================================


@app.command()
def install(config: Path = ConfigOption):
    """Write the unit file and enable the service."""
    _invoke(_get_service(config), "install", "installed")


@app.command()
def uninstall(config: Path = ConfigOption):
    """Disable the service and remove its unit file."""
    _invoke(_get_service(config), "uninstall", "uninstalled")


@app.command()
def start(config: Path = ConfigOption):
    """Start the installed service."""
    _invoke(_get_service(config), "start", "started")


@app.command()
def stop(config: Path = ConfigOption):
    """Stop the service."""
    _invoke(_get_service(config), "stop", "stopped")


@app.command()
def restart(config: Path = ConfigOption):
    """Restart the service."""
    _invoke(_get_service(config), "restart", "restarted")


@app.command()
def status(config: Path = ConfigOption):
    """Show service status."""
    from servicekit.service import ServiceError, ServiceStatus

    service = _get_service(config)
    status_styles = {
        ServiceStatus.RUNNING: "[green]running[/green]",
        ServiceStatus.STOPPED: "[yellow]stopped[/yellow]",
        ServiceStatus.UNKNOWN: "[dim]unknown[/dim]",
    }

    try:
        current = service.status()
    except ServiceError as e:
        console.print(f"Status:  {status_styles[ServiceStatus.UNKNOWN]}")
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)

    console.print(f"Status:  {status_styles[current]}")


@app.command()
def run(config: Path = ConfigOption):
    """Host the configured program in the foreground until SIGTERM/SIGINT."""
    from servicekit.service import ServiceError

    service = _get_service(config)
    console.print(f"{__logo__} Running {service}...")
    try:
        service.run()
    except ServiceError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)


@app.command()
def render(config: Path = ConfigOption):
    """Print the unit file that install would write."""
    from servicekit.service import ServiceError
    from servicekit.service.program import ProgramInterface
    from servicekit.service.systemd import SystemdService

    service_config = _load(config)
    try:
        unit = SystemdService(ProgramInterface(), service_config).render()
    except ServiceError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)
    console.print(unit, markup=False, highlight=False, soft_wrap=True, end="")
