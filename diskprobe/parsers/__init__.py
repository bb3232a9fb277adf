"""Parsers for external probe output."""
from diskprobe.parsers.lsblk import BlockDevice, filter_physical_disks, parse_lsblk_json
from diskprobe.parsers.properties import parse_properties
from diskprobe.parsers.smartctl import detect_device_type, parse_smartctl_json, supports_self_tests
from diskprobe.parsers.zpool import (
    PoolStatus,
    VDev,
    VdevInfo,
    flatten_pool,
    flatten_vdevs,
    parse_zpool_status_json,
    pool_members,
)

__all__ = [
    'BlockDevice',
    'PoolStatus',
    'VDev',
    'VdevInfo',
    'detect_device_type',
    'filter_physical_disks',
    'flatten_pool',
    'flatten_vdevs',
    'parse_lsblk_json',
    'parse_properties',
    'parse_smartctl_json',
    'parse_zpool_status_json',
    'pool_members',
    'supports_self_tests',
]
