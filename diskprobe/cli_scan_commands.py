"""Disk scan and refresh commands."""
from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from diskprobe.cli_support import (
    configure_logging,
    dump_json,
    load_cli_config,
    print_error,
    print_success,
    print_warning,
    write_json,
)
from diskprobe.core.command import ProbeContext
from diskprobe.core.errors import DiscoveryError, ErrorCode
from diskprobe.core.retry import call_with_retry
from diskprobe.discovery import DiskDiscovery
from diskprobe.models.disk import DiskState, PhysicalDisk

_console: Console = Console()

STATE_STYLES = {
    DiskState.AVAILABLE: "green",
    DiskState.SYSTEM: "blue",
    DiskState.ONLINE: "green",
    DiskState.DEGRADED: "yellow",
    DiskState.FAULTED: "red",
    DiskState.UNAVAIL: "red",
    DiskState.OFFLINE: "dim",
    DiskState.UNKNOWN: "dim",
}


def register_scan_commands(app: typer.Typer, console: Console) -> None:
    """Attach scan/refresh to the root CLI."""
    global _console
    _console = console
    app.command("scan")(scan)
    app.command("refresh")(refresh)


def scan(
    json_output: bool = typer.Option(False, "--json", help="Print the inventory as JSON"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Also write the JSON inventory to a file"),
    retries: int = typer.Option(1, "--retries", min=1, help="Attempts before giving up on enumeration"),
    retry_delay: float = typer.Option(2.0, "--retry-delay", min=0.0, help="Seconds between attempts"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Deadline for the whole scan, in seconds"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML config file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Write logs to this file"),
) -> None:
    """Discover physical disks and classify their role."""
    config = load_cli_config(_console, config_file)
    configure_logging(verbose, log_file)

    discovery = DiskDiscovery(config=config)
    ctx = ProbeContext(timeout=timeout)

    try:
        disks = call_with_retry(
            lambda: discovery.discover_all(ctx),
            max_attempts=retries,
            delay=retry_delay,
            exceptions=(DiscoveryError,),
            ctx=ctx,
        )
    except DiscoveryError as err:
        print_error(_console, f"Discovery failed: {err}")
        raise typer.Exit(1) from err

    payload = build_payload(discovery, disks)

    if output:
        write_json(output, payload)

    if json_output:
        typer.echo(dump_json(payload))
        return

    render_disks(_console, disks)
    _console.print(summary_line(disks))
    failures = discovery.last_report.failures() if discovery.last_report else []
    if failures:
        print_warning(_console, f"{len(failures)} probe(s) failed; affected fields are left at defaults")
    if output:
        print_success(_console, f"Inventory written to {output}")


def refresh(
    device: str = typer.Argument(..., help="Device path, e.g. /dev/sda"),
    json_output: bool = typer.Option(False, "--json", help="Print the disk as JSON"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML config file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Re-discover a single device."""
    config = load_cli_config(_console, config_file)
    configure_logging(verbose)

    discovery = DiskDiscovery(config=config)
    try:
        disk = discovery.refresh_device(device)
    except DiscoveryError as err:
        if err.code == ErrorCode.DEVICE_NOT_FOUND:
            print_error(_console, f"Device not found: {device}")
        else:
            print_error(_console, f"Refresh failed: {err}")
        raise typer.Exit(1) from err

    if json_output:
        typer.echo(dump_json(disk.to_dict()))
        return

    render_disks(_console, [disk])


def build_payload(discovery: DiskDiscovery, disks: List[PhysicalDisk]) -> Dict[str, Any]:
    scanned_at = discovery.get_last_scan_time() or datetime.now(timezone.utc)
    report = discovery.last_report
    return {
        "metadata": {
            "scanned_at": scanned_at.isoformat(),
            "mock": discovery.mock,
            "device_count": len(disks),
            "duration_seconds": report.duration if report else None,
        },
        "devices": [disk.to_dict() for disk in disks],
        "stages": report.summary() if report else {},
    }


def render_disks(console: Console, disks: List[PhysicalDisk]) -> None:
    if not disks:
        console.print("[yellow]No physical disks found[/yellow]")
        return

    table = Table(title="Physical Disks", show_header=True, header_style="bold cyan")
    table.add_column("Device", style="bold")
    table.add_column("Device ID")
    table.add_column("Source", style="dim")
    table.add_column("Type")
    table.add_column("Size", justify="right")
    table.add_column("State")
    table.add_column("Pool", style="cyan")
    table.add_column("SMART", style="dim")

    for disk in disks:
        style = STATE_STYLES.get(disk.state, "white")
        table.add_row(
            disk.device_path,
            disk.device_id,
            disk.device_id_source.value,
            disk.disk_type.value,
            disk.size_human,
            f"[{style}]{disk.state.value}[/{style}]",
            disk.pool_name or "-",
            _smart_flags(disk),
        )

    console.print(table)


def summary_line(disks: List[PhysicalDisk]) -> str:
    counts = Counter(disk.state for disk in disks)
    pooled = sum(1 for disk in disks if disk.is_in_pool)
    return (
        f"{len(disks)} disk(s): {counts[DiskState.AVAILABLE]} available, "
        f"{counts[DiskState.SYSTEM]} system, {pooled} in pools"
    )


def _smart_flags(disk: PhysicalDisk) -> str:
    if not disk.smart_available:
        return "-"
    flags = ["enabled" if disk.smart_enabled else "disabled"]
    if disk.smart_tests_supported:
        flags.append("tests")
    return ",".join(flags)
