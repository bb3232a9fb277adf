"""smartctl wrapper (SMART capability probing)."""
from typing import Optional

from diskprobe.core.command import ProbeContext
from diskprobe.core.errors import ProbeFailure
from diskprobe.core.logger import get_logger
from diskprobe.models.smart import SMARTInfo
from diskprobe.parsers.smartctl import parse_smartctl_json, supports_self_tests
from diskprobe.tools.base import ProbeTool

logger = get_logger(__name__)

# smartctl's exit status is a bit mask; any value can accompany valid JSON.
# parse_smartctl_json decides from the embedded exit_status.
ANY_EXIT_CODE = tuple(range(256))


class SmartctlTool(ProbeTool):
    name = "smartctl"

    def get_info(self, device: str, ctx: Optional[ProbeContext] = None) -> SMARTInfo:
        """SMART identity and support flags for a device.

        Raises:
            ProbeFailure: smartctl failed to run or could not open the device
        """
        logger.debug(f"Getting SMART info for {device}")
        result = self._run(["--json", "--info", device], ctx=ctx, device=device, ok_codes=ANY_EXIT_CODE)
        if not result.stdout.strip():
            raise ProbeFailure(
                "smartctl",
                f"no output (exit status {result.returncode}): {result.stderr.strip()}",
                device=device,
                returncode=result.returncode,
            )
        return parse_smartctl_json(result.stdout, device)

    def can_run_self_tests(self, device: str, ctx: Optional[ProbeContext] = None) -> bool:
        """Whether the device advertises SMART self-test support.

        Raises:
            ProbeFailure: smartctl failed to run
        """
        logger.debug(f"Checking SMART self-test capability for {device}")
        result = self._run(["--json", "--all", device], ctx=ctx, device=device, ok_codes=ANY_EXIT_CODE)
        if not result.stdout.strip():
            raise ProbeFailure(
                "smartctl",
                f"no output (exit status {result.returncode})",
                device=device,
                returncode=result.returncode,
            )
        return supports_self_tests(result.stdout)
