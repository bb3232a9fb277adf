"""Tests for DeviceID resolution and the udev enrichment stage."""
import pytest

from diskprobe.discovery.identity import (
    IdentityResolver,
    apply_udev_properties,
    resolve_device_id,
    split_links,
)
from diskprobe.discovery.outcome import ScanReport, StageOutcome
from diskprobe.models.disk import DeviceIDSource, PhysicalDisk
from diskprobe.tools.udevadm import UdevadmTool

from conftest import StaticToolChecker

BY_ID = "/dev/disk/by-id/ata-TestDisk_XYZ"
BY_PATH = "/dev/disk/by-path/pci-0000:00:17.0-ata-1"


class TestResolveDeviceId:
    """Precedence: serial > wwn > first by-id link > path."""

    def test_serial_wins_over_everything(self):
        disk = PhysicalDisk("/dev/sda", serial="ABC123", wwn="0x5000", device_links=[BY_ID])
        assert resolve_device_id(disk) == ("ABC123", DeviceIDSource.SERIAL)

    def test_wwn_when_no_serial(self):
        disk = PhysicalDisk("/dev/sda", wwn="0x5000c500a1b2c3d4", device_links=[BY_ID])
        assert resolve_device_id(disk) == ("0x5000c500a1b2c3d4", DeviceIDSource.WWN)

    def test_first_by_id_link(self):
        disk = PhysicalDisk("/dev/sda", device_links=[BY_PATH, BY_ID, "/dev/disk/by-id/wwn-0x1"])
        assert resolve_device_id(disk) == (BY_ID, DeviceIDSource.BY_ID)

    def test_by_path_link_is_never_identity(self):
        disk = PhysicalDisk("/dev/sda", device_links=[BY_PATH])
        assert resolve_device_id(disk) == ("/dev/sda", DeviceIDSource.PATH)

    def test_path_fallback(self):
        assert resolve_device_id(PhysicalDisk("/dev/sdq")) == ("/dev/sdq", DeviceIDSource.PATH)

    def test_deterministic(self):
        disk = PhysicalDisk("/dev/sda", wwn="0x1", device_links=[BY_ID])
        assert resolve_device_id(disk) == resolve_device_id(disk.copy())


class TestApplyUdevProperties:

    def test_fills_identity_fields(self):
        disk = PhysicalDisk("/dev/sda")
        apply_udev_properties(disk, {
            "ID_SERIAL": "TestDisk_XYZ",
            "ID_WWN": "0x5000c500a1b2c3d4",
            "ID_MODEL": "TestDisk",
            "ID_VENDOR": "ATA",
            "ID_PATH": "pci-0000:00:17.0-ata-1",
            "DEVLINKS": f"{BY_ID} {BY_PATH} {BY_ID}",
        })

        assert disk.serial == "TestDisk_XYZ"
        assert disk.wwn == "0x5000c500a1b2c3d4"
        assert disk.model == "TestDisk"
        assert disk.vendor == "ATA"
        assert disk.device_links == [BY_ID, BY_PATH]
        assert disk.by_id_path == BY_ID
        assert disk.by_path_path == BY_PATH

    def test_enumerator_serial_is_kept(self):
        disk = PhysicalDisk("/dev/sda", serial="XYZ")
        apply_udev_properties(disk, {"ID_SERIAL": "TestDisk_XYZ"})
        assert disk.serial == "XYZ"

    def test_split_links_keeps_order(self):
        assert split_links("  b a  b c ") == ["b", "a", "c"]


class TestIdentityResolver:
    """Stage behaviour against scripted udevadm output."""

    @pytest.fixture
    def resolver(self, config, executor):
        return IdentityResolver(UdevadmTool(config, executor), StaticToolChecker())

    def test_applies_serial_identity(self, resolver, probes):
        probes.udev["/dev/sda"] = {"ID_SERIAL": "ABC123", "DEVLINKS": BY_ID}
        disk = PhysicalDisk("/dev/sda")
        report = ScanReport()

        resolver.run([disk], report)

        assert disk.device_id == "ABC123"
        assert disk.device_id_source == DeviceIDSource.SERIAL
        assert report.outcome_for("identity", "/dev/sda") == StageOutcome.APPLIED

    def test_partial_failure_is_isolated(self, resolver, probes):
        probes.udev["/dev/sda"] = {"ID_SERIAL": "AAA", "ID_WWN": "0x1", "DEVLINKS": BY_ID}
        disk_a = PhysicalDisk("/dev/sda")
        disk_b = PhysicalDisk("/dev/sdb", serial="LSBLK-SERIAL")
        report = ScanReport()

        resolver.run([disk_a, disk_b], report)

        assert (disk_a.device_id, disk_a.wwn, disk_a.device_links) == ("AAA", "0x1", [BY_ID])
        assert disk_b.device_id == "/dev/sdb"
        assert disk_b.device_id_source == DeviceIDSource.PATH
        assert disk_b.device_links == []
        assert report.outcome_for("identity", "/dev/sdb") == StageOutcome.PROBE_FAILED

    def test_missing_tool_skips_stage(self, config, executor, probes):
        resolver = IdentityResolver(UdevadmTool(config, executor), StaticToolChecker(available=()))
        disk = PhysicalDisk("/dev/sda")
        report = ScanReport()

        resolver.run([disk], report)

        assert probes.calls_for("udevadm") == []
        assert disk.device_id_source == DeviceIDSource.PATH
        assert report.outcome_for("identity", "/dev/sda") == StageOutcome.TOOL_UNAVAILABLE
