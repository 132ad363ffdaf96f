"""Screen mixins package for pipewatch."""

from pipewatch.screens.mixins.worker_mixin import WorkerMixin

__all__ = [
    "WorkerMixin",
]
