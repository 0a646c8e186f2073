"""Cross-survey bias correction and spatial proportion tables for bottom-trawl data."""

__version__ = "0.1.0"
