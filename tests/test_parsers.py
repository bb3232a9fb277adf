"""Tests for probe output parsers."""
import json

import pytest

from diskprobe.core.errors import ProbeFailure
from diskprobe.models.disk import DeviceType, DiskState, HealthStatus, InterfaceType
from diskprobe.parsers import (
    filter_physical_disks,
    flatten_pool,
    flatten_vdevs,
    parse_lsblk_json,
    parse_properties,
    parse_smartctl_json,
    parse_zpool_status_json,
    pool_members,
    supports_self_tests,
)
from diskprobe.parsers.smartctl import detect_device_type

from conftest import disk_node, group_vdev, leaf_vdev, part_node, pool_doc


class TestParseProperties:
    """KEY=VALUE normalization."""

    def test_basic_pairs(self):
        props = parse_properties("ID_SERIAL=ABC123\nID_WWN=0x5000c500\n")
        assert props == {"ID_SERIAL": "ABC123", "ID_WWN": "0x5000c500"}

    def test_splits_on_first_equals_only(self):
        props = parse_properties("ID_MODEL_ENC=Disk\\x20=\\x20Fast")
        assert props["ID_MODEL_ENC"] == "Disk\\x20=\\x20Fast"

    def test_ignores_blank_and_malformed_lines(self):
        props = parse_properties("\n   \nno equals sign here\nKEY=value\n")
        assert props == {"KEY": "value"}

    def test_keeps_inner_spaces(self):
        props = parse_properties("DEVLINKS=/dev/disk/by-id/a /dev/disk/by-path/b")
        assert props["DEVLINKS"] == "/dev/disk/by-id/a /dev/disk/by-path/b"

    def test_later_keys_win(self):
        assert parse_properties("A=1\nA=2")["A"] == "2"

    def test_empty_input(self):
        assert parse_properties("") == {}


class TestLsblkParser:
    """lsblk JSON parsing and physical disk filtering."""

    def test_parses_tree(self):
        raw = json.dumps({"blockdevices": [
            disk_node("sda", serial="S1", children=[part_node("sda1", mountpoint="/boot")]),
        ]})
        devices = parse_lsblk_json(raw)

        assert len(devices) == 1
        sda = devices[0]
        assert sda.device_path == "/dev/sda"
        assert sda.maj_min == "8:0"
        assert sda.major == 8
        assert sda.children[0].mounted_paths() == ["/boot"]

    def test_blank_strings_become_none(self):
        raw = json.dumps({"blockdevices": [disk_node("sda", serial="   ", vendor="ATA     ")]})
        sda = parse_lsblk_json(raw)[0]
        assert sda.serial is None
        assert sda.vendor == "ATA"

    def test_string_rota_and_size(self):
        raw = json.dumps({"blockdevices": [disk_node("sda", rota="1", size="4096")]})
        sda = parse_lsblk_json(raw)[0]
        assert sda.rota is True
        assert sda.size == 4096

    def test_multiple_mountpoints(self):
        raw = json.dumps({"blockdevices": [
            disk_node("sda", children=[part_node("sda1", mountpoints=["/", "/var/snap", None])]),
        ]})
        child = parse_lsblk_json(raw)[0].children[0]
        assert child.mounted_paths() == ["/", "/var/snap"]

    @pytest.mark.parametrize("raw", ["not json", "[]", '{"blockdevices": "nope"}'])
    def test_garbage_raises_probe_failure(self, raw):
        with pytest.raises(ProbeFailure) as exc_info:
            parse_lsblk_json(raw)
        assert exc_info.value.tool == "lsblk"

    def test_filter_drops_partitions_loops_optical_and_zvols(self):
        raw = json.dumps({"blockdevices": [
            disk_node("sda"),
            part_node("sda1"),
            disk_node("loop0", maj_min="7:0"),
            {"name": "/dev/sr0", "path": "/dev/sr0", "type": "rom", "maj:min": "11:0"},
            disk_node("zd0", maj_min="230:0"),
            disk_node("nvme0n1", maj_min="259:0", tran="nvme"),
        ]})
        disks = filter_physical_disks(parse_lsblk_json(raw))
        assert [d.device_path for d in disks] == ["/dev/sda", "/dev/nvme0n1"]

    def test_filter_dedupes_by_path(self):
        raw = json.dumps({"blockdevices": [disk_node("sda"), disk_node("sda")]})
        assert len(filter_physical_disks(parse_lsblk_json(raw))) == 1

    def test_seeded_disk_defaults(self):
        raw = json.dumps({"blockdevices": [disk_node("sdb", serial="WD1", rota=True)]})
        disk = parse_lsblk_json(raw)[0].to_physical_disk()

        assert disk.device_id == "/dev/sdb"
        assert disk.device_id_source.value == "path"
        assert disk.serial == "WD1"
        assert disk.state == DiskState.AVAILABLE
        assert disk.health == HealthStatus.UNKNOWN
        assert disk.disk_type == DeviceType.HDD
        assert disk.interface == InterfaceType.SATA

    def test_device_type_detection(self):
        raw = json.dumps({"blockdevices": [
            disk_node("nvme0n1", tran="nvme"),
            disk_node("sda", rota=False),
            disk_node("vda", tran=None, model="virtio"),
        ]})
        nvme, ssd, virt = parse_lsblk_json(raw)
        assert nvme.device_type() == DeviceType.NVME
        assert ssd.device_type() == DeviceType.SSD
        assert virt.interface_type() == InterfaceType.VIRTIO


class TestSmartctlParser:
    """smartctl --json parsing."""

    def test_ata_disk(self):
        raw = json.dumps({
            "smartctl": {"exit_status": 0},
            "device": {"protocol": "ATA"},
            "model_name": "WDC WD40EFRX",
            "serial_number": "WD-123",
            "rotation_rate": 5400,
            "smart_support": {"available": True, "enabled": True},
            "smart_status": {"passed": True},
            "ata_smart_attributes": {"table": [
                {"id": 5, "name": "Reallocated_Sector_Ct", "value": 100, "worst": 100, "thresh": 140,
                 "flags": {"string": "PO--CK ", "prefail": True}, "raw": {"value": 0}},
                {"id": 9, "name": "Power_On_Hours", "value": 50, "worst": 50, "thresh": 0,
                 "raw": {"value": 43210}},
                {"id": 194, "name": "Temperature_Celsius", "value": 117, "worst": 100, "thresh": 0,
                 "raw": {"value": 0x1C00230021}},
            ]},
        })
        info = parse_smartctl_json(raw, "/dev/sda")

        assert info.available and info.enabled
        assert info.overall_status == "PASSED"
        assert info.power_on_hours == 43210
        assert info.temperature == 0x21
        assert info.attributes[5].failure_near is True
        assert info.attributes[5].prefail is True
        assert detect_device_type(info) == DeviceType.HDD

    def test_nvme_without_smart_support_block(self):
        raw = json.dumps({
            "device": {"protocol": "NVMe"},
            "nvme_smart_health_information_log": {"temperature": 40, "power_on_hours": 12, "power_cycles": 3},
        })
        info = parse_smartctl_json(raw, "/dev/nvme0n1")

        assert info.available is True
        assert info.enabled is True
        assert info.temperature == 40
        assert info.power_cycles == 3
        assert detect_device_type(info) == DeviceType.NVME

    def test_solid_state_rotation_rate(self):
        raw = json.dumps({"rotation_rate": 0, "smart_support": {"available": True, "enabled": False}})
        info = parse_smartctl_json(raw, "/dev/sdb")
        assert info.enabled is False
        assert detect_device_type(info) == DeviceType.SSD

    def test_unspecific_payload_has_unknown_type(self):
        info = parse_smartctl_json(json.dumps({"smart_support": {"available": False}}), "/dev/sdc")
        assert detect_device_type(info) == DeviceType.UNKNOWN

    def test_open_failure_bits_raise(self):
        raw = json.dumps({"smartctl": {"exit_status": 2, "messages": [{"string": "No such device"}]}})
        with pytest.raises(ProbeFailure) as exc_info:
            parse_smartctl_json(raw, "/dev/sdz")
        assert "No such device" in str(exc_info.value)
        assert exc_info.value.device == "/dev/sdz"

    def test_disk_status_bits_still_yield_data(self):
        # Bit 3: "SMART status check returned DISK FAILING"
        raw = json.dumps({
            "smartctl": {"exit_status": 8},
            "smart_support": {"available": True, "enabled": True},
            "smart_status": {"passed": False},
        })
        info = parse_smartctl_json(raw, "/dev/sda")
        assert info.overall_status == "FAILED"
        assert info.exit_status == 8

    def test_unparseable(self):
        with pytest.raises(ProbeFailure):
            parse_smartctl_json("Segmentation fault", "/dev/sda")

    @pytest.mark.parametrize("payload", [
        {"smartctl": "oops"},
        {"smartctl": {"exit_status": "n/a"}},
        {"smart_support": ["available"]},
        {"ata_smart_attributes": {"table": [{"id": "temp"}]}},
        {"nvme_smart_health_information_log": {"temperature": "hot"}},
    ])
    def test_malformed_fields(self, payload):
        with pytest.raises(ProbeFailure) as exc_info:
            parse_smartctl_json(json.dumps(payload), "/dev/sda")
        assert exc_info.value.device == "/dev/sda"

    @pytest.mark.parametrize("payload, expected", [
        ({"ata_smart_data": {"capabilities": {"self_tests_supported": True}}}, True),
        ({"ata_smart_data": {"capabilities": {"self_tests_supported": False}}}, False),
        ({"nvme_self_test_log": {}}, True),
        ({"nvme_optional_admin_commands": {"self_test": False}}, False),
        ({"model_name": "plain"}, False),
    ])
    def test_self_test_support(self, payload, expected):
        assert supports_self_tests(json.dumps(payload)) is expected

    def test_self_test_keyword_fallback(self):
        assert supports_self_tests("Short self-test routine ... selftest supported") is True


class TestZpoolParser:
    """zpool status -j parsing and vdev flattening."""

    def test_flattens_nested_groups(self):
        doc = pool_doc(tank=[
            group_vdev("mirror-0", [leaf_vdev("/dev/sda1"), leaf_vdev("/dev/sdb1", "DEGRADED")]),
            group_vdev("raidz1-1", [
                leaf_vdev("/dev/sdc1"),
                group_vdev("spare-1", [leaf_vdev("/dev/sdd1", "FAULTED"), leaf_vdev("/dev/sde1")], vdev_type="spare"),
            ], vdev_type="raidz"),
        ])
        status = parse_zpool_status_json(json.dumps(doc))
        members = flatten_pool(status.pools["tank"])

        assert [(m.path, m.state) for m in members] == [
            ("/dev/sda1", "ONLINE"),
            ("/dev/sdb1", "DEGRADED"),
            ("/dev/sdc1", "ONLINE"),
            ("/dev/sdd1", "FAULTED"),
            ("/dev/sde1", "ONLINE"),
        ]

    def test_auxiliary_vdev_classes_included(self):
        doc = pool_doc(tank=[leaf_vdev("/dev/sda")])
        doc["pools"]["tank"]["logs"] = {"slog": leaf_vdev("/dev/nvme1n1")}
        doc["pools"]["tank"]["l2cache"] = {"cache": leaf_vdev("/dev/nvme2n1")}
        doc["pools"]["tank"]["spares"] = {"hot": leaf_vdev("/dev/sdf", "AVAIL")}

        members = pool_members(parse_zpool_status_json(json.dumps(doc)))["tank"]
        assert [m.path for m in members] == ["/dev/sda", "/dev/nvme1n1", "/dev/nvme2n1", "/dev/sdf"]

    def test_pool_name_defaults_to_key(self):
        doc = {"pools": {"rpool": {"state": "ONLINE", "vdevs": {}}}}
        status = parse_zpool_status_json(json.dumps(doc))
        assert status.pools["rpool"].name == "rpool"

    def test_no_pools(self):
        status = parse_zpool_status_json(json.dumps({"output_version": {}, "pools": None}))
        assert pool_members(status) == {}

    def test_flatten_vdevs_skips_pathless_nodes(self):
        doc = pool_doc(tank=[group_vdev("mirror-0", [])])
        status = parse_zpool_status_json(json.dumps(doc))
        assert flatten_vdevs(status.pools["tank"].vdevs) == []

    def test_garbage(self):
        with pytest.raises(ProbeFailure):
            parse_zpool_status_json("no pools available")
