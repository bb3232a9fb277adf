"""Shared plumbing for probe tool wrappers."""
from typing import Optional, Sequence

from diskprobe.core.command import CommandExecutor, CommandResult, ProbeContext
from diskprobe.core.config import DiskProbeConfig, get_config


class ProbeTool:
    """Wraps one external binary; subclasses add the tool's queries."""

    name: str = ""

    def __init__(self, config: Optional[DiskProbeConfig] = None, executor: Optional[CommandExecutor] = None):
        self.config = config or get_config()
        self.executor = executor or CommandExecutor(
            use_sudo=self.config.use_sudo,
            mock=self.config.mock,
        )

    @property
    def path(self) -> str:
        return self.config.tool_path(self.name)

    @property
    def timeout(self) -> int:
        return self.config.tool_timeout(self.name)

    def _run(
        self,
        args: Sequence[str],
        ctx: Optional[ProbeContext] = None,
        device: Optional[str] = None,
        ok_codes: Sequence[int] = (0,),
    ) -> CommandResult:
        return self.executor.run(
            self.name,
            self.path,
            args,
            ctx=ctx,
            device=device,
            timeout=self.timeout,
            ok_codes=ok_codes,
        )
