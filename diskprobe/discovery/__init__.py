"""Disk discovery engine and its enrichment stages."""
from diskprobe.discovery.cache import DiscoveryCache
from diskprobe.discovery.hwdetect import EnvironmentDetector
from diskprobe.discovery.outcome import ScanReport, StageOutcome
from diskprobe.discovery.scanner import DiskDiscovery

__all__ = ['DiskDiscovery', 'DiscoveryCache', 'EnvironmentDetector', 'ScanReport', 'StageOutcome']
