"""Sandboxed execution of external probe commands.

Every probe (lsblk, udevadm, smartctl, zpool, environment detection) goes
through `CommandExecutor.run`, which validates the argument vector, applies
a bounded timeout, honours caller cancellation, and converts every failure
mode into a `ProbeFailure` subclass or `ToolNotAvailable`.
"""
import os
import subprocess
import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from diskprobe.core.errors import (
    CommandRejected,
    ProbeCancelled,
    ProbeFailure,
    ProbeTimeout,
    ToolNotAvailable,
)
from diskprobe.core.logger import get_logger

logger = get_logger(__name__)

# Characters that could enable shell injection if a command were ever
# handed to a shell
DANGEROUS_CHARS = set("&|><$`\\[];{}")
MAX_ARGS = 64
DEFAULT_TIMEOUT = 30.0
_POLL_INTERVAL = 0.1


class ProbeContext:
    """Deadline and cancellation signal passed down to every probe call.

    Example:
        ctx = ProbeContext(timeout=120)
        discovery.discover_all(ctx)      # from another thread: ctx.cancel()
    """

    def __init__(self, timeout: Optional[float] = None, cancel_event: Optional[threading.Event] = None):
        self.deadline = time.monotonic() + timeout if timeout is not None else None
        self._cancel_event = cancel_event or threading.Event()

    def cancel(self) -> None:
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None when there is none."""
        if self.deadline is None:
            return None
        return self.deadline - time.monotonic()

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0


@dataclass
class CommandResult:
    """Output of a finished command."""
    stdout: str
    stderr: str
    returncode: int
    duration: float = 0.0


MockResponder = Callable[[str, Sequence[str]], CommandResult]


def validate_command(command: str, args: Sequence[str]) -> None:
    """Reject command lines that could escape the probe sandbox."""
    if not command:
        raise CommandRejected(command or "<empty>", "empty command")

    if not command.startswith("/") and ("/" in command or "\\" in command):
        raise CommandRejected(command, "relative paths are not allowed for commands")

    if DANGEROUS_CHARS & set(command):
        raise CommandRejected(command, "command contains invalid characters")

    if len(args) > MAX_ARGS:
        raise CommandRejected(command, "too many arguments")

    for arg in args:
        if DANGEROUS_CHARS & set(arg):
            raise CommandRejected(command, f"argument contains invalid characters: {arg!r}")
        if ".." in arg:
            raise CommandRejected(command, f"path traversal not allowed: {arg!r}")


class CommandExecutor:
    """Runs probe commands with timeouts, optional sudo, and cancellation."""

    def __init__(
        self,
        use_sudo: bool = False,
        timeout: float = DEFAULT_TIMEOUT,
        mock: bool = False,
        mock_responder: Optional[MockResponder] = None,
    ):
        self.use_sudo = use_sudo
        self.timeout = timeout
        self.mock = mock
        self._mock_responder = mock_responder

    def run(
        self,
        tool: str,
        command: str,
        args: Sequence[str] = (),
        ctx: Optional[ProbeContext] = None,
        device: Optional[str] = None,
        timeout: Optional[float] = None,
        ok_codes: Sequence[int] = (0,),
    ) -> CommandResult:
        """Execute `command args...` and return its output.

        Args:
            tool: Logical tool name used in errors and mock lookups
            command: Binary name or absolute path
            args: Argument vector (never passed through a shell)
            ctx: Caller deadline/cancellation; None means no caller deadline
            device: Device the probe is about, for error context
            timeout: Per-call timeout; the caller deadline wins if sooner
            ok_codes: Exit codes treated as success

        Raises:
            CommandRejected: Argument validation failed
            ToolNotAvailable: Binary could not be found or executed
            ProbeCancelled: ctx was cancelled
            ProbeTimeout: Timeout or caller deadline reached
            ProbeFailure: Non-success exit code
        """
        args = list(args)
        validate_command(command, args)
        ctx = ctx or ProbeContext()

        if ctx.cancelled:
            raise ProbeCancelled(tool, "cancelled before start", device=device)

        effective = self._effective_timeout(timeout, ctx)
        if effective is not None and effective <= 0:
            raise ProbeTimeout(tool, "deadline exceeded before start", device=device)

        if self.mock:
            return self._run_mock(tool, args, device, ok_codes)

        argv: List[str] = [command] + args
        if self.use_sudo:
            argv = ["sudo", "-n"] + argv

        logger.debug(f"Executing command: {' '.join(argv)}")
        started = time.monotonic()

        try:
            proc = subprocess.Popen(
                argv,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                # serials and models may carry bytes that are not UTF-8
                encoding="utf-8",
                errors="replace",
                env=self._probe_env(),
            )
        except FileNotFoundError as exc:
            raise ToolNotAvailable(tool, str(exc)) from exc
        except PermissionError as exc:
            raise ToolNotAvailable(tool, f"not executable: {exc}") from exc

        stdout, stderr = self._wait(proc, tool, device, ctx, started, effective)
        duration = time.monotonic() - started

        if proc.returncode not in ok_codes:
            detail = (stderr or stdout or "").strip()
            logger.debug(
                f"{tool} exited with status {proc.returncode} after {duration:.2f}s: {detail}"
            )
            raise ProbeFailure(
                tool,
                f"exited with status {proc.returncode}: {detail}",
                device=device,
                output=stdout + stderr,
                returncode=proc.returncode,
            )

        return CommandResult(stdout=stdout, stderr=stderr, returncode=proc.returncode, duration=duration)

    def _effective_timeout(self, timeout: Optional[float], ctx: ProbeContext) -> Optional[float]:
        limit = timeout if timeout is not None else self.timeout
        remaining = ctx.remaining()
        if remaining is None:
            return limit
        if limit is None:
            return remaining
        return min(limit, remaining)

    @staticmethod
    def _probe_env() -> dict:
        # Fixed locale keeps tool output parseable
        return {
            "PATH": os.environ.get("PATH", "/usr/local/sbin:/usr/local/bin:/usr/sbin:/usr/bin:/sbin:/bin"),
            "LC_ALL": "C",
        }

    def _wait(self, proc, tool, device, ctx, started, effective):
        while True:
            try:
                return proc.communicate(timeout=_POLL_INTERVAL)
            except subprocess.TimeoutExpired:
                if ctx.cancelled:
                    self._kill(proc)
                    raise ProbeCancelled(tool, "cancelled by caller", device=device)
                if effective is not None and time.monotonic() - started >= effective:
                    self._kill(proc)
                    raise ProbeTimeout(tool, f"timed out after {effective:.1f}s", device=device)

    @staticmethod
    def _kill(proc) -> None:
        proc.kill()
        try:
            proc.communicate(timeout=5)
        except subprocess.TimeoutExpired:
            logger.warning(f"Process {proc.pid} did not exit after kill")

    def _run_mock(self, tool, args, device, ok_codes) -> CommandResult:
        responder = self._mock_responder
        if responder is None:
            from diskprobe.tools.mock_outputs import respond as responder

        logger.debug(f"MOCK: {tool} {' '.join(args)}")
        result = responder(tool, args)
        if result.returncode not in ok_codes:
            raise ProbeFailure(
                tool,
                f"exited with status {result.returncode}: {result.stderr.strip()}",
                device=device,
                output=result.stdout + result.stderr,
                returncode=result.returncode,
            )
        return result
