"""Portfolio tracker with throttled live quote synchronization."""

__version__ = "0.1.0"
