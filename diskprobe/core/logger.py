"""Logging for diskprobe: a rich console handler plus optional file output.

Every module logger is a child of the ``diskprobe`` logger and propagates to
it, so handlers and levels are configured in one place.
"""
import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

# Logs go to stderr so `diskprobe scan --json` keeps stdout clean
console = Console(stderr=True)

ROOT_LOGGER = "diskprobe"
LOG_DIR = Path("/var/log/diskprobe")
LOG_FILE = LOG_DIR / "diskprobe.log"
FALLBACK_LOG_FILE = Path("/tmp/diskprobe.log")
FILE_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"

_file_handler: Optional[logging.FileHandler] = None


def _root() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER)
    if not any(isinstance(h, RichHandler) for h in root.handlers):
        handler = RichHandler(console=console, show_path=False)
        handler.setLevel(logging.INFO)
        handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(handler)
        root.setLevel(logging.INFO)
    return root


def get_logger(name: str) -> logging.Logger:
    """Logger for a diskprobe module.

    Names outside the ``diskprobe`` hierarchy (e.g. ``__main__``) are nested
    under it so they share its handlers.
    """
    root = _root()
    if name == ROOT_LOGGER:
        return root
    if not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def set_console_level(verbose: bool = False) -> None:
    """Switch console output between INFO and DEBUG."""
    level = logging.DEBUG if verbose else logging.INFO
    root = _root()
    root.setLevel(logging.DEBUG if verbose or _file_handler is not None else level)
    for handler in root.handlers:
        if isinstance(handler, RichHandler):
            handler.setLevel(level)


def setup_file_logging(log_file: Optional[str] = None, verbose: bool = False) -> Path:
    """Also write logs to a file.

    Args:
        log_file: Target path, default /var/log/diskprobe/diskprobe.log
        verbose: Record DEBUG messages in the file

    Returns:
        The file actually used; /tmp/diskprobe.log when the log directory
        cannot be created. Calling again returns the file already in use.
    """
    global _file_handler

    if _file_handler is not None:
        return Path(_file_handler.baseFilename)

    target = Path(log_file) if log_file else LOG_FILE
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
    except PermissionError:
        target = FALLBACK_LOG_FILE

    handler = logging.FileHandler(target)
    handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    root = _root()
    root.addHandler(handler)
    # the root level gates every handler; per-handler levels do the filtering
    root.setLevel(logging.DEBUG)
    _file_handler = handler

    root.info(f"File logging enabled: {target}")
    return target
