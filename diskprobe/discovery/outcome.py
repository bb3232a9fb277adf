"""Per-stage, per-device results of a scan."""
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional


class StageOutcome(Enum):
    """How an enrichment stage ended for one device."""
    APPLIED = "applied"                    # Probe succeeded, fields written
    NO_MATCH = "no_match"                  # Probe succeeded, nothing to write
    SKIPPED = "skipped"                    # Policy decided not to probe
    TOOL_UNAVAILABLE = "tool_unavailable"  # Required binary missing
    PROBE_FAILED = "probe_failed"          # Binary present, probe failed


@dataclass
class StageRecord:
    stage: str
    device_path: str
    outcome: StageOutcome
    detail: str = ""


@dataclass
class ScanReport:
    """Outcome ledger for one discover_all or refresh_device call."""
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None
    records: List[StageRecord] = field(default_factory=list)

    def record(self, stage: str, device_path: str, outcome: StageOutcome, detail: str = "") -> None:
        self.records.append(StageRecord(stage, device_path, outcome, detail))

    def outcome_for(self, stage: str, device_path: str) -> Optional[StageOutcome]:
        """Latest outcome recorded for a stage and device."""
        for rec in reversed(self.records):
            if rec.stage == stage and rec.device_path == device_path:
                return rec.outcome
        return None

    def failures(self) -> List[StageRecord]:
        return [r for r in self.records if r.outcome == StageOutcome.PROBE_FAILED]

    def summary(self) -> Dict[str, Dict[str, int]]:
        """Count of outcomes per stage, e.g. {'smart': {'applied': 3}}."""
        counts: Dict[str, Counter] = {}
        for rec in self.records:
            counts.setdefault(rec.stage, Counter())[rec.outcome.value] += 1
        return {stage: dict(counter) for stage, counter in counts.items()}

    def finish(self) -> None:
        self.finished_at = datetime.now(timezone.utc)

    @property
    def duration(self) -> Optional[float]:
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()
