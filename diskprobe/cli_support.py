"""Shared utilities for diskprobe CLI modules."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console

from diskprobe.core.config import DiskProbeConfig, load_config, set_config
from diskprobe.core.errors import ConfigError
from diskprobe.core.logger import set_console_level, setup_file_logging


def load_cli_config(console: Console, config_path: Optional[Path] = None) -> DiskProbeConfig:
    """Load config (file + DISKPROBE_* overrides) and make it global."""
    try:
        config = load_config(config_path)
    except ConfigError as err:
        print_error(console, f"Invalid configuration: {err}")
        raise typer.Exit(2) from err
    set_config(config)
    return config


def configure_logging(verbose: bool = False, log_file: Optional[str] = None) -> None:
    """Console verbosity plus optional file logging."""
    set_console_level(verbose)
    if log_file:
        setup_file_logging(log_file=log_file, verbose=verbose)


def dump_json(payload: Any) -> str:
    return json.dumps(payload, indent=2, sort_keys=False, default=str)


def write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dump_json(payload) + "\n")


def print_success(console: Console, message: str) -> None:
    console.print(f"[green]✓[/green] {message}")


def print_warning(console: Console, message: str) -> None:
    console.print(f"[yellow]⚠[/yellow]  {message}")


def print_error(console: Console, message: str) -> None:
    console.print(f"[red]✗[/red] {message}")
