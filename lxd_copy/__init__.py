"""Copy and migrate containers within or between LXD endpoints."""

__version__ = "0.1.0"
