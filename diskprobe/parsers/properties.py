"""Normalizer for KEY=VALUE probe output (udevadm --query=property)."""
from typing import Dict


def parse_properties(output: str) -> Dict[str, str]:
    """Turn KEY=VALUE lines into a dict.

    Blank lines and lines without '=' are ignored. Only the first '=' splits,
    so values may themselves contain '=' or spaces. A repeated key keeps its
    last value.
    """
    props: Dict[str, str] = {}
    for line in output.splitlines():
        line = line.strip()
        if not line or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        if key:
            props[key] = value.strip()
    return props
