"""Data models for diskprobe."""
from diskprobe.models.disk import (
    DeviceIDSource,
    DeviceType,
    DiskState,
    HealthStatus,
    InterfaceType,
    PhysicalDisk,
)
from diskprobe.models.environment import DeploymentEnvironment, EnvironmentInfo
from diskprobe.models.smart import NVMeHealth, SMARTAttribute, SMARTInfo

__all__ = [
    'DeploymentEnvironment',
    'DeviceIDSource',
    'DeviceType',
    'DiskState',
    'EnvironmentInfo',
    'HealthStatus',
    'InterfaceType',
    'NVMeHealth',
    'PhysicalDisk',
    'SMARTAttribute',
    'SMARTInfo',
]
