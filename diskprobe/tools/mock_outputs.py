"""Canned probe output used when DISKPROBE_MOCK is set.

Models a small homelab box:
  nvme0n1  boot disk, EFI partition mounted, rpool on partition 3
  sda/sdb  mirror in `tank` (sdb degraded), matched through by-id links
  sdc      blank spare with only a WWN, SMART cannot open it
  sr0      optical drive, must be filtered out
"""
import json
from typing import Any, Dict, List, Sequence

from diskprobe.core.command import CommandResult

NVME_BY_ID = "/dev/disk/by-id/nvme-Samsung_SSD_990_PRO_4TB_S123456"
SDA_BY_ID = "/dev/disk/by-id/ata-WDC_WD101EFBX-68B0AN0_WD123"
SDB_BY_ID = "/dev/disk/by-id/ata-WDC_WD101EFBX-68B0AN0_WD124"
SDC_BY_ID = "/dev/disk/by-id/wwn-0x5000c500e1f2a3b4"


def _node(name: str, dev_type: str, maj_min: str, size: int, **extra: Any) -> Dict[str, Any]:
    node = {
        "name": f"/dev/{name}",
        "path": f"/dev/{name}",
        "type": dev_type,
        "maj:min": maj_min,
        "size": size,
        "vendor": None,
        "model": None,
        "serial": None,
        "wwn": None,
        "state": None,
        "mountpoint": None,
        "fstype": None,
        "rota": False,
        "tran": None,
        "hctl": None,
    }
    node.update(extra)
    return node


BLOCK_DEVICES: List[Dict[str, Any]] = [
    _node(
        "nvme0n1", "disk", "259:0", 4_000_787_030_016,
        model="Samsung SSD 990 PRO 4TB", serial="S123456", state="live", tran="nvme",
        children=[
            _node("nvme0n1p1", "part", "259:1", 1_048_576),
            _node("nvme0n1p2", "part", "259:2", 1_073_741_824, fstype="vfat", mountpoint="/boot/efi"),
            _node("nvme0n1p3", "part", "259:3", 3_999_712_000_000, fstype="zfs_member"),
        ],
    ),
    _node(
        "sda", "disk", "8:0", 10_000_831_348_736,
        vendor="ATA     ", model="WDC WD101EFBX-68B0AN0", serial="WD123",
        wwn="0x50014ee2b1c2d3e4", state="running", rota=True, tran="sata", hctl="0:0:0:0",
        children=[
            _node("sda1", "part", "8:1", 10_000_820_862_976, fstype="zfs_member"),
            _node("sda9", "part", "8:9", 8_388_608),
        ],
    ),
    _node(
        "sdb", "disk", "8:16", 10_000_831_348_736,
        vendor="ATA     ", model="WDC WD101EFBX-68B0AN0", serial="WD124",
        wwn="0x50014ee2b1c2d3e5", state="running", rota=True, tran="sata", hctl="1:0:0:0",
        children=[
            _node("sdb1", "part", "8:17", 10_000_820_862_976, fstype="zfs_member"),
            _node("sdb9", "part", "8:25", 8_388_608),
        ],
    ),
    _node(
        "sdc", "disk", "8:32", 2_000_398_934_016,
        vendor="ATA     ", model="ST2000DM008-2FR102", state="running", rota=True, tran="sata",
    ),
    _node("sr0", "rom", "11:0", 1_073_741_312, vendor="HL-DT-ST", model="DVDRAM GH24NSD1"),
]

UDEV_PROPERTIES: Dict[str, Dict[str, str]] = {
    "/dev/nvme0n1": {
        "DEVNAME": "/dev/nvme0n1",
        "DEVTYPE": "disk",
        "ID_MODEL": "Samsung SSD 990 PRO 4TB",
        "ID_SERIAL": "Samsung SSD 990 PRO 4TB_S123456",
        "ID_SERIAL_SHORT": "S123456",
        "ID_WWN": "eui.0025385a41b2c3d4",
        "ID_PATH": "pci-0000:01:00.0-nvme-1",
        "DEVLINKS": " ".join([
            NVME_BY_ID,
            "/dev/disk/by-id/nvme-eui.0025385a41b2c3d4",
            "/dev/disk/by-path/pci-0000:01:00.0-nvme-1",
        ]),
    },
    "/dev/sda": {
        "DEVNAME": "/dev/sda",
        "DEVTYPE": "disk",
        "ID_VENDOR": "ATA",
        "ID_MODEL": "WDC_WD101EFBX-68B0AN0",
        "ID_SERIAL": "WDC_WD101EFBX-68B0AN0_WD123",
        "ID_SERIAL_SHORT": "WD123",
        "ID_WWN": "0x50014ee2b1c2d3e4",
        "ID_PATH": "pci-0000:00:17.0-ata-1",
        "DEVLINKS": " ".join([
            SDA_BY_ID,
            "/dev/disk/by-id/wwn-0x50014ee2b1c2d3e4",
            "/dev/disk/by-path/pci-0000:00:17.0-ata-1",
        ]),
    },
    "/dev/sdb": {
        "DEVNAME": "/dev/sdb",
        "DEVTYPE": "disk",
        "ID_VENDOR": "ATA",
        "ID_MODEL": "WDC_WD101EFBX-68B0AN0",
        "ID_SERIAL": "WDC_WD101EFBX-68B0AN0_WD124",
        "ID_SERIAL_SHORT": "WD124",
        "ID_WWN": "0x50014ee2b1c2d3e5",
        "ID_PATH": "pci-0000:00:17.0-ata-2",
        "DEVLINKS": " ".join([
            SDB_BY_ID,
            "/dev/disk/by-id/wwn-0x50014ee2b1c2d3e5",
            "/dev/disk/by-path/pci-0000:00:17.0-ata-2",
        ]),
    },
    "/dev/sdc": {
        "DEVNAME": "/dev/sdc",
        "DEVTYPE": "disk",
        "ID_WWN": "0x5000c500e1f2a3b4",
        "ID_PATH": "pci-0000:00:17.0-ata-3",
        "DEVLINKS": " ".join([
            SDC_BY_ID,
            "/dev/disk/by-path/pci-0000:00:17.0-ata-3",
        ]),
    },
}


def _ata_smart(serial: str) -> Dict[str, Any]:
    return {
        "smartctl": {"version": [7, 4], "exit_status": 0},
        "device": {"name": "", "type": "sat", "protocol": "ATA"},
        "model_name": "WDC WD101EFBX-68B0AN0",
        "serial_number": serial,
        "firmware_version": "85.00A85",
        "rotation_rate": 7200,
        "smart_support": {"available": True, "enabled": True},
        "smart_status": {"passed": True},
        "temperature": {"current": 34},
        "power_on_time": {"hours": 21873},
        "power_cycle_count": 41,
    }


SMART_INFO: Dict[str, Dict[str, Any]] = {
    "/dev/nvme0n1": {
        "smartctl": {"version": [7, 4], "exit_status": 0},
        "device": {"name": "/dev/nvme0n1", "type": "nvme", "protocol": "NVMe"},
        "model_name": "Samsung SSD 990 PRO 4TB",
        "serial_number": "S123456",
        "firmware_version": "4B2QJXD7",
        "smart_support": {"available": True, "enabled": True},
        "smart_status": {"passed": True, "nvme": {"value": 0}},
        "nvme_smart_health_information_log": {
            "critical_warning": 0,
            "temperature": 41,
            "available_spare": 100,
            "available_spare_threshold": 10,
            "percentage_used": 2,
            "power_cycles": 87,
            "power_on_hours": 5210,
            "unsafe_shutdowns": 9,
            "media_errors": 0,
            "num_err_log_entries": 0,
        },
    },
    "/dev/sda": _ata_smart("WD123"),
    "/dev/sdb": _ata_smart("WD124"),
}

SELF_TEST_CAPABILITY: Dict[str, Dict[str, Any]] = {
    "/dev/nvme0n1": {"nvme_self_test_log": {"current_self_test_operation": {"value": 0}}},
    "/dev/sda": {"ata_smart_data": {"capabilities": {"self_tests_supported": True}}},
    "/dev/sdb": {"ata_smart_data": {"capabilities": {"self_tests_supported": True}}},
}

POOL_STATUS: Dict[str, Any] = {
    "output_version": {"command": "zpool status", "vers_major": 0, "vers_minor": 1},
    "pools": {
        "rpool": {
            "name": "rpool",
            "state": "ONLINE",
            "vdevs": {
                "rpool": {
                    "name": "rpool",
                    "vdev_type": "root",
                    "state": "ONLINE",
                    "vdevs": {
                        "nvme-Samsung_SSD_990_PRO_4TB_S123456-part3": {
                            "name": "nvme-Samsung_SSD_990_PRO_4TB_S123456-part3",
                            "vdev_type": "disk",
                            "path": f"{NVME_BY_ID}-part3",
                            "state": "ONLINE",
                        },
                    },
                },
            },
        },
        "tank": {
            "name": "tank",
            "state": "DEGRADED",
            "vdevs": {
                "tank": {
                    "name": "tank",
                    "vdev_type": "root",
                    "state": "DEGRADED",
                    "vdevs": {
                        "mirror-0": {
                            "name": "mirror-0",
                            "vdev_type": "mirror",
                            "state": "DEGRADED",
                            "vdevs": {
                                "sda": {
                                    "name": "ata-WDC_WD101EFBX-68B0AN0_WD123-part1",
                                    "vdev_type": "disk",
                                    "path": f"{SDA_BY_ID}-part1",
                                    "state": "ONLINE",
                                },
                                "sdb": {
                                    "name": "ata-WDC_WD101EFBX-68B0AN0_WD124-part1",
                                    "vdev_type": "disk",
                                    "path": f"{SDB_BY_ID}-part1",
                                    "state": "DEGRADED",
                                },
                            },
                        },
                    },
                },
            },
        },
    },
}


def _ok(payload: Any) -> CommandResult:
    text = payload if isinstance(payload, str) else json.dumps(payload)
    return CommandResult(stdout=text, stderr="", returncode=0)


def _fail(returncode: int, stderr: str, stdout: str = "") -> CommandResult:
    return CommandResult(stdout=stdout, stderr=stderr, returncode=returncode)


def _lsblk(args: Sequence[str]) -> CommandResult:
    if "--exclude" in args:
        excluded = set(args[list(args).index("--exclude") + 1].split(","))
        devices = [d for d in BLOCK_DEVICES if d["maj:min"].split(":")[0] not in excluded]
        return _ok({"blockdevices": devices})

    device = args[-1]
    for node in BLOCK_DEVICES:
        if node["path"] == device:
            return _ok({"blockdevices": [node]})
        for child in node.get("children", []):
            if child["path"] == device:
                return _ok({"blockdevices": [child]})
    return _fail(32, f"lsblk: {device}: not a block device")


def _udevadm(args: Sequence[str]) -> CommandResult:
    name = next((a.split("=", 1)[1] for a in args if a.startswith("--name=")), "")
    props = UDEV_PROPERTIES.get(name)
    if props is None:
        return _fail(4, f"Unknown device \"{name}\": No such device")
    return _ok("\n".join(f"{k}={v}" for k, v in props.items()) + "\n")


def _smartctl(args: Sequence[str]) -> CommandResult:
    device = args[-1]
    if "--all" in args:
        payload = dict(SMART_INFO.get(device, {}))
        payload.update(SELF_TEST_CAPABILITY.get(device, {}))
        if not payload:
            return _fail(2, "", json.dumps({"smartctl": {"exit_status": 2}}))
        return _ok(payload)
    payload = SMART_INFO.get(device)
    if payload is None:
        return _fail(2, "", json.dumps({
            "smartctl": {
                "exit_status": 2,
                "messages": [{"string": f"{device}: Unable to detect device type", "severity": "error"}],
            },
        }))
    return _ok(payload)


def respond(tool: str, args: Sequence[str]) -> CommandResult:
    """Answer a probe command from the canned fixtures."""
    if tool == "lsblk":
        return _lsblk(args)
    if tool == "udevadm":
        return _udevadm(args)
    if tool == "smartctl":
        if "--version" in args:
            return _ok("smartctl 7.4 2023-08-01 r5530 [x86_64-linux-6.8.12-1-pve] (local build)")
        return _smartctl(args)
    if tool == "zpool":
        return _ok(POOL_STATUS)
    if tool == "systemd-detect-virt":
        return _fail(1, "", "none\n")
    if tool == "dmidecode":
        return _ok("MS-7D25\n")
    if tool == "uname":
        return _ok("6.8.12-1-pve\n")
    return _fail(127, f"{tool}: command not found")
