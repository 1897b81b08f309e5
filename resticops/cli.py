"""Command Line Interface for resticops."""

import sys
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from .backup import StateStore
from .config import ResticOpsConfig, load_config
from .engine import EngineError, ResticClient
from .network import ConnectivityGate
from .orchestrator import RetryOrchestrator
from .util import setup_logging
from .volumes import AmbiguousVolumeError, VolumeEnumerationError, VolumeResolver, list_volumes

console = Console()


def _config(ctx: click.Context) -> ResticOpsConfig:
    return ctx.obj["config"]


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option("--config", "-c", "config_path", type=click.Path(path_type=Path), help="Configuration file path")
@click.pass_context
def cli(ctx, verbose: bool, config_path: Optional[Path]):
    """resticops - unattended restic backups with retry and maintenance."""
    try:
        config = load_config(config_path)
    except ValidationError as e:
        console.print(f"[red]Invalid configuration:[/red]\n{e}")
        sys.exit(2)

    setup_logging(level="DEBUG" if verbose else config.log_level)
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


@cli.command("run")
@click.pass_context
def run(ctx):
    """Run backups, maintenance and retries; exits with the failed attempt count."""
    orchestrator = RetryOrchestrator.from_config(_config(ctx))
    sys.exit(orchestrator.run())


@cli.command("volumes")
def volumes():
    """List mounted volumes that backup sources can refer to."""
    try:
        found = list_volumes()
    except VolumeEnumerationError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    if not found:
        console.print("[yellow]No mounted volumes found[/yellow]")
        return

    table = Table(title="Mounted Volumes")
    table.add_column("Mount", style="cyan")
    table.add_column("Disk", style="white")
    table.add_column("Label", style="white")
    table.add_column("Caption", style="white")
    table.add_column("Serial", style="green")
    table.add_column("FS", style="white")
    table.add_column("Style", style="white")

    for v in found:
        table.add_row(
            v.mount_path,
            str(v.disk_index),
            v.label or "-",
            v.caption or "-",
            v.serial_number or "-",
            v.filesystem or "-",
            v.partition_style or "-",
        )

    console.print(table)


@cli.command("resolve")
@click.argument("identifier", required=False, default="")
def resolve(identifier: str):
    """Show which mounted volume a source identifier resolves to."""
    try:
        volume = VolumeResolver().resolve_one(identifier)
    except AmbiguousVolumeError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
    except VolumeEnumerationError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    if volume is None:
        console.print(f"[yellow]No volume matches '{identifier}'[/yellow]")
        sys.exit(1)
    console.print(f"[green]{identifier}[/green] -> {volume.display_name}")


@cli.command("connectivity")
@click.option("--attempts", "-n", type=int, help="Override the number of polls")
@click.pass_context
def connectivity(ctx, attempts: Optional[int]):
    """Check whether the repository is reachable."""
    config = _config(ctx)
    repository = config.engine.repository_uri()
    max_attempts = config.internet_test_attempts if attempts is None else attempts

    console.print(f"Checking repository {repository or '(not configured)'}")

    gate = ConnectivityGate(wait_seconds=config.connectivity_wait_seconds)
    if gate.is_ready(repository, max_attempts):
        console.print("[bold green]Repository reachable[/bold green]")
    else:
        console.print("[red]Repository not reachable[/red]")
        sys.exit(1)


@cli.command("state")
@click.pass_context
def state(ctx):
    """Show the persisted maintenance state."""
    config = _config(ctx)
    current = StateStore(config.state_file).load()

    table = Table(title=f"Backup State - {config.state_file}")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="white")

    for name, value in current.model_dump().items():
        table.add_row(name, "-" if value is None else str(value))

    console.print(table)


@cli.command("init")
@click.pass_context
def init(ctx):
    """Initialize the restic repository and record it in the state file."""
    config = _config(ctx)
    store = StateStore(config.state_file)
    current = store.load()

    if current.repository_initialized:
        console.print("[yellow]Repository already initialized[/yellow]")
        return

    if not ResticClient.from_config(config.engine).init():
        console.print("[red]restic init failed[/red]")
        sys.exit(1)

    store.save(current.model_copy(update={"repository_initialized": True}))
    console.print("[bold green]Repository initialized[/bold green]")


@cli.command("unlock")
@click.pass_context
def unlock(ctx):
    """Remove stale repository locks."""
    client = ResticClient.from_config(_config(ctx).engine)
    try:
        locks = client.list_locks()
    except EngineError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    if not locks:
        console.print("No locks present")
        return
    if not client.unlock():
        sys.exit(1)
    console.print(f"Removed {len(locks)} lock(s)")


def main() -> None:
    """Console script entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
