"""Thread-safe store of the last committed scan."""
import threading
from datetime import datetime
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, NamedTuple, Optional

from diskprobe.models.disk import PhysicalDisk


class _Snapshot(NamedTuple):
    devices: Mapping[str, PhysicalDisk]
    last_scan: Optional[datetime]


class DiscoveryCache:
    """Holds the device map of the last scan behind a single reference.

    Writers build a complete new mapping and swap the reference while
    holding the lock. Readers take the current reference without locking,
    so they always see one whole scan and never wait on a writer.
    Records handed in or out are copies; callers cannot reach the
    cached objects.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._snapshot = _Snapshot(MappingProxyType({}), None)

    def replace_all(self, disks: Iterable[PhysicalDisk], scanned_at: datetime) -> None:
        """Publish the result of a full scan, replacing everything."""
        devices = {disk.device_path: disk.copy() for disk in disks}
        with self._lock:
            self._snapshot = _Snapshot(MappingProxyType(devices), scanned_at)

    def put(self, disk: PhysicalDisk) -> None:
        """Replace (or add) one device, leaving the others and the scan time alone."""
        fresh = disk.copy()
        with self._lock:
            current = self._snapshot
            devices = dict(current.devices)
            devices[fresh.device_path] = fresh
            self._snapshot = _Snapshot(MappingProxyType(devices), current.last_scan)

    def get(self, device_path: str) -> Optional[PhysicalDisk]:
        disk = self._snapshot.devices.get(device_path)
        return disk.copy() if disk is not None else None

    def snapshot(self) -> Dict[str, PhysicalDisk]:
        """Deep copies of every cached device, keyed by device path."""
        current = self._snapshot
        return {path: disk.copy() for path, disk in current.devices.items()}

    def last_scan_time(self) -> Optional[datetime]:
        return self._snapshot.last_scan

    def __len__(self) -> int:
        return len(self._snapshot.devices)
