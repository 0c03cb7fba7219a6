"""Keep a fast local occurrence counter in sync with a slow remote store."""

__version__ = "0.1.0"
