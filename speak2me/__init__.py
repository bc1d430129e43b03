"""speak2me - voice-activated capture for a spoken assistant."""

__version__ = "0.1.0"
