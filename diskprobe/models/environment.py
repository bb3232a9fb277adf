"""Deployment environment model."""
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict


class DeploymentEnvironment(Enum):
    PHYSICAL = "physical"
    VIRTUAL_RESTRICTED = "virtual-restricted"  # Public cloud (AWS, GCP, Azure)
    VIRTUAL_OPEN = "virtual-open"              # On-premise hypervisor
    UNKNOWN = "unknown"


@dataclass
class EnvironmentInfo:
    """What the host runs on."""
    is_virtualized: bool = False
    hypervisor: str = ""        # systemd-detect-virt token, e.g. kvm, amazon
    cloud_provider: str = ""    # aws, gcp, azure
    kernel_version: str = ""
    type: DeploymentEnvironment = DeploymentEnvironment.UNKNOWN

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["type"] = self.type.value
        return data
