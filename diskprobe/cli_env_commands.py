"""Host inspection commands: probe tools and deployment environment."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from diskprobe.cli_support import configure_logging, dump_json, load_cli_config, print_error
from diskprobe.core.errors import DiskProbeError
from diskprobe.discovery.hwdetect import EnvironmentDetector
from diskprobe.tools.checker import DISCOVERY_TOOLS, ToolChecker

_console: Console = Console()


def register_env_commands(app: typer.Typer, console: Console) -> None:
    """Attach tools/env to the root CLI."""
    global _console
    _console = console
    app.command("tools")(tools)
    app.command("env")(env)


def tools(
    json_output: bool = typer.Option(False, "--json", help="Print tool status as JSON"),
    versions: bool = typer.Option(False, "--versions", help="Run `<tool> --version` for each tool"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML config file"),
) -> None:
    """Show which probe tools are installed."""
    config = load_cli_config(_console, config_file)
    if versions:
        config.check_versions = True

    statuses = ToolChecker(config).check_all()

    if json_output:
        typer.echo(dump_json({name: vars(status) for name, status in statuses.items()}))
    else:
        table = Table(title="Probe Tools", show_header=True, header_style="bold cyan")
        table.add_column("Tool", style="bold")
        table.add_column("Available")
        table.add_column("Path", style="dim")
        table.add_column("Version")
        for name in DISCOVERY_TOOLS:
            status = statuses[name]
            mark = "[green]yes[/green]" if status.available else "[red]no[/red]"
            table.add_row(name, mark, status.path, status.version or "-")
        _console.print(table)

    if not statuses["lsblk"].available:
        print_error(_console, "lsblk is required for discovery")
        raise typer.Exit(1)


def env(
    json_output: bool = typer.Option(False, "--json", help="Print the environment as JSON"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML config file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Detect whether this host is bare metal, a VM or a cloud instance."""
    config = load_cli_config(_console, config_file)
    configure_logging(verbose)

    try:
        info = EnvironmentDetector(config=config).detect_environment()
    except DiskProbeError as err:
        print_error(_console, f"Environment detection failed: {err}")
        raise typer.Exit(1) from err

    if json_output:
        typer.echo(dump_json(info.to_dict()))
        return

    _console.print(f"[bold]Environment:[/bold] {info.type.value}")
    _console.print(f"  Virtualized:    {'yes' if info.is_virtualized else 'no'}")
    _console.print(f"  Hypervisor:     {info.hypervisor or '-'}")
    _console.print(f"  Cloud provider: {info.cloud_provider or '-'}")
    _console.print(f"  Kernel:         {info.kernel_version or '-'}")
