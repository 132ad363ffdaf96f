"""pipewatch - live terminal monitor for a single pipeline run."""

__version__ = "0.1.0"
