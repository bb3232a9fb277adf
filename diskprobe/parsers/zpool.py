"""`zpool status -j` wire models and vdev tree flattening."""
import json
from dataclasses import dataclass
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from diskprobe.core.errors import ProbeFailure


class VDev(BaseModel):
    """A node of a pool's vdev tree: leaf device, mirror, raidz group or root."""

    model_config = ConfigDict(extra='ignore')

    name: str = ""
    vdev_type: str = ""
    state: str = ""
    path: Optional[str] = None
    vdevs: Dict[str, "VDev"] = Field(default_factory=dict)

    @field_validator('vdevs', mode='before')
    @classmethod
    def null_to_dict(cls, v):
        return v or {}


VDev.model_rebuild()


class Pool(BaseModel):
    """One pool from the status report."""

    model_config = ConfigDict(extra='ignore')

    name: str = ""
    state: str = ""
    vdevs: Dict[str, VDev] = Field(default_factory=dict)
    logs: Dict[str, VDev] = Field(default_factory=dict)
    l2cache: Dict[str, VDev] = Field(default_factory=dict)
    spares: Dict[str, VDev] = Field(default_factory=dict)
    special: Dict[str, VDev] = Field(default_factory=dict)
    dedup: Dict[str, VDev] = Field(default_factory=dict)

    @field_validator('vdevs', 'logs', 'l2cache', 'spares', 'special', 'dedup', mode='before')
    @classmethod
    def null_to_dict(cls, v):
        return v or {}

    def vdev_trees(self) -> List[Dict[str, VDev]]:
        """Data vdevs followed by the auxiliary device classes."""
        return [self.vdevs, self.special, self.dedup, self.logs, self.l2cache, self.spares]


class PoolStatus(BaseModel):
    """Top-level `zpool status -j` document."""

    model_config = ConfigDict(extra='ignore')

    pools: Dict[str, Pool] = Field(default_factory=dict)

    @field_validator('pools', mode='before')
    @classmethod
    def null_to_dict(cls, v):
        return v or {}


@dataclass(frozen=True)
class VdevInfo:
    """Path and reported state of one vdev node."""
    path: str
    state: str


def parse_zpool_status_json(output: str) -> PoolStatus:
    """Parse `zpool status -j` output.

    Raises:
        ProbeFailure: Output is not a pool status document
    """
    try:
        data = json.loads(output)
    except (TypeError, ValueError) as exc:
        raise ProbeFailure("zpool", f"unparseable output: {exc}", output=output) from exc

    if not isinstance(data, dict):
        raise ProbeFailure("zpool", "expected a JSON object", output=output)

    try:
        status = PoolStatus.model_validate(data)
    except ValidationError as exc:
        raise ProbeFailure("zpool", f"unexpected status document: {exc}", output=output) from exc

    for key, pool in status.pools.items():
        if not pool.name:
            pool.name = key
    return status


def flatten_vdevs(vdevs: Dict[str, VDev]) -> List[VdevInfo]:
    """Flatten a vdev tree into (path, state) pairs, depth first.

    Every node carrying a path is emitted; nodes without one (root, mirror,
    raidz groups) only contribute their children.
    """
    flattened: List[VdevInfo] = []
    for vdev in vdevs.values():
        if vdev.path:
            flattened.append(VdevInfo(path=vdev.path, state=vdev.state))
        if vdev.vdevs:
            flattened.extend(flatten_vdevs(vdev.vdevs))
    return flattened


def flatten_pool(pool: Pool) -> List[VdevInfo]:
    """All device paths of a pool, across data and auxiliary vdev classes."""
    flattened: List[VdevInfo] = []
    for tree in pool.vdev_trees():
        flattened.extend(flatten_vdevs(tree))
    return flattened


def pool_members(status: PoolStatus) -> Dict[str, List[VdevInfo]]:
    """Map pool name to its flattened member list, in report order."""
    return {name: flatten_pool(pool) for name, pool in status.pools.items()}

