"""Physical disk discovery and enrichment."""
__version__ = "0.1.0"
