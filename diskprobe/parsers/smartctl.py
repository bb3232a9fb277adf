"""smartctl --json output parsing."""
import json
from typing import Any, Dict, Optional

from diskprobe.core.errors import ProbeFailure
from diskprobe.models.disk import DeviceType
from diskprobe.models.smart import NVMeHealth, SMARTAttribute, SMARTInfo

# ATA attribute IDs with a direct meaning
ATTR_POWER_ON_HOURS = 9
ATTR_POWER_CYCLE_COUNT = 12
ATTR_TEMPERATURE = 194

# smartctl exit status bits 0 and 1: command line did not parse / device
# could not be opened. Higher bits describe the disk, not the probe.
SMARTCTL_FATAL_BITS = 0b11

SELF_TEST_KEYWORDS = ("self_test", "selftest", "short_test", "long_test")


def parse_smartctl_json(output: str, device_path: str) -> SMARTInfo:
    """Parse `smartctl --json --info` (or --all) output.

    Raises:
        ProbeFailure: Output is not JSON, has fields of the wrong shape, or
            smartctl reports it could not open the device
    """
    data = _load(output, device_path)
    try:
        return _parse(data, device_path)
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise ProbeFailure(
            "smartctl", f"malformed output: {exc}", device=device_path, output=output
        ) from exc


def _parse(data: Dict[str, Any], device_path: str) -> SMARTInfo:
    exit_status = int(data.get("smartctl", {}).get("exit_status", 0) or 0)
    if exit_status & SMARTCTL_FATAL_BITS:
        messages = data.get("smartctl", {}).get("messages") or []
        detail = "; ".join(m.get("string", "") for m in messages if isinstance(m, dict))
        raise ProbeFailure(
            "smartctl",
            f"device could not be queried (exit status {exit_status}) {detail}".strip(),
            device=device_path,
            returncode=exit_status,
        )

    support = data.get("smart_support") or {}
    device = data.get("device") or {}
    info = SMARTInfo(
        device_path=device_path,
        available=bool(support.get("available", False)),
        enabled=bool(support.get("enabled", False)),
        protocol=str(device.get("protocol", "") or ""),
        model=str(data.get("model_name", "") or ""),
        serial=str(data.get("serial_number", "") or ""),
        firmware=str(data.get("firmware_version", "") or ""),
        rotation_rate=_int_or_none(data.get("rotation_rate")),
        exit_status=exit_status,
    )

    status = data.get("smart_status")
    if isinstance(status, dict) and "passed" in status:
        info.overall_passed = bool(status["passed"])

    nvme_log = data.get("nvme_smart_health_information_log")
    if isinstance(nvme_log, dict):
        info.nvme_health = _parse_nvme_health(nvme_log)
        # NVMe drives report SMART through the health log even when
        # smart_support is absent from the output
        if "smart_support" not in data:
            info.available = True
            info.enabled = True

    table = (data.get("ata_smart_attributes") or {}).get("table") or []
    for row in table:
        attr = _parse_ata_attribute(row)
        if attr is not None:
            info.attributes[attr.id] = attr

    _fill_counters(info, data)
    return info


def detect_device_type(info: SMARTInfo) -> DeviceType:
    """Device technology implied by a SMART payload, UNKNOWN if not specific."""
    if info.protocol.upper() == "NVME" or info.nvme_health is not None:
        return DeviceType.NVME
    if info.rotation_rate is None:
        return DeviceType.UNKNOWN
    if info.rotation_rate == 0:
        return DeviceType.SSD
    return DeviceType.HDD


def supports_self_tests(output: str) -> bool:
    """Whether `smartctl --json --all` output advertises self-test support."""
    try:
        data = json.loads(output)
    except (TypeError, ValueError):
        data = None

    if isinstance(data, dict):
        ata = data.get("ata_smart_data") or {}
        caps = ata.get("capabilities") or {}
        if "self_tests_supported" in caps:
            return bool(caps["self_tests_supported"])
        if "self_test" in ata:
            return True
        if "nvme_self_test_log" in data:
            return True
        nvme_caps = data.get("nvme_optional_admin_commands") or {}
        if isinstance(nvme_caps, dict) and "self_test" in nvme_caps:
            return bool(nvme_caps["self_test"])

    lowered = (output or "").lower()
    return any(keyword in lowered for keyword in SELF_TEST_KEYWORDS)


def _load(output: str, device_path: str) -> Dict[str, Any]:
    try:
        data = json.loads(output)
    except (TypeError, ValueError) as exc:
        raise ProbeFailure(
            "smartctl", f"unparseable output: {exc}", device=device_path, output=output
        ) from exc
    if not isinstance(data, dict):
        raise ProbeFailure("smartctl", "expected a JSON object", device=device_path, output=output)
    return data


def _int_or_none(value: Any) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _parse_nvme_health(log: Dict[str, Any]) -> NVMeHealth:
    return NVMeHealth(
        critical_warning=int(log.get("critical_warning", 0) or 0),
        temperature=int(log.get("temperature", 0) or 0),
        available_spare=int(log.get("available_spare", 0) or 0),
        available_spare_threshold=int(log.get("available_spare_threshold", 0) or 0),
        percentage_used=int(log.get("percentage_used", 0) or 0),
        data_units_read=int(log.get("data_units_read", 0) or 0),
        data_units_written=int(log.get("data_units_written", 0) or 0),
        power_cycles=int(log.get("power_cycles", 0) or 0),
        power_on_hours=int(log.get("power_on_hours", 0) or 0),
        unsafe_shutdowns=int(log.get("unsafe_shutdowns", 0) or 0),
        media_errors=int(log.get("media_errors", 0) or 0),
        error_log_entries=int(log.get("num_err_log_entries", 0) or 0),
    )


def _parse_ata_attribute(row: Dict[str, Any]) -> Optional[SMARTAttribute]:
    if not isinstance(row, dict) or "id" not in row:
        return None
    flags = row.get("flags") or {}
    raw = row.get("raw") or {}
    return SMARTAttribute(
        id=int(row["id"]),
        name=str(row.get("name", "")),
        value=int(row.get("value", 0) or 0),
        worst=int(row.get("worst", 0) or 0),
        threshold=int(row.get("thresh", 0) or 0),
        raw_value=int(raw.get("value", 0) or 0),
        when_failed=str(row.get("when_failed", "") or ""),
        flags=str(flags.get("string", "") or "").strip(),
        prefail=bool(flags.get("prefail", False)),
    )


def _fill_counters(info: SMARTInfo, data: Dict[str, Any]) -> None:
    """Temperature, power-on hours and power cycles, top-level keys first."""
    temperature = data.get("temperature")
    if isinstance(temperature, dict) and "current" in temperature:
        info.temperature = _int_or_none(temperature["current"])
    elif info.nvme_health is not None:
        info.temperature = info.nvme_health.temperature
    elif ATTR_TEMPERATURE in info.attributes:
        # Raw value packs min/max into the upper bytes
        info.temperature = info.attributes[ATTR_TEMPERATURE].raw_value & 0xFF

    power_on = data.get("power_on_time")
    if isinstance(power_on, dict) and "hours" in power_on:
        info.power_on_hours = _int_or_none(power_on["hours"])
    elif info.nvme_health is not None:
        info.power_on_hours = info.nvme_health.power_on_hours
    elif ATTR_POWER_ON_HOURS in info.attributes:
        info.power_on_hours = info.attributes[ATTR_POWER_ON_HOURS].raw_value

    cycles = data.get("power_cycle_count")
    if cycles is not None:
        info.power_cycles = _int_or_none(cycles)
    elif info.nvme_health is not None:
        info.power_cycles = info.nvme_health.power_cycles
    elif ATTR_POWER_CYCLE_COUNT in info.attributes:
        info.power_cycles = info.attributes[ATTR_POWER_CYCLE_COUNT].raw_value
