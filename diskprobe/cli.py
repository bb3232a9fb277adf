#!/usr/bin/env python3
"""diskprobe CLI - physical disk discovery for storage hosts."""

import typer
from rich.console import Console

from diskprobe.cli_env_commands import register_env_commands
from diskprobe.cli_scan_commands import register_scan_commands
from diskprobe.core.logger import get_logger

app = typer.Typer(
    name="diskprobe",
    help="""diskprobe - discover physical disks and classify their role

Quick start:
  diskprobe tools            # Which probe tools are installed
  diskprobe scan             # Inventory every disk
  diskprobe refresh /dev/sda # Re-check one disk

Set DISKPROBE_MOCK=1 to run against canned probe output.
""",
    add_completion=False,
)

console = Console()
logger = get_logger(__name__)

# Attach modular subcommands
register_scan_commands(app, console)
register_env_commands(app, console)

if __name__ == "__main__":
    app()
