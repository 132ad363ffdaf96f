"""Init file for run module."""

from pipewatch.controllers.run.controller import RunSessionController
from pipewatch.controllers.run.fanout_loader import AsyncFanoutLoader
from pipewatch.controllers.run.poll_scheduler import PollScheduler
from pipewatch.controllers.run.progress import ProgressInterpolator
from pipewatch.controllers.run.side_panel import SidePanelController

__all__ = [
    "AsyncFanoutLoader",
    "PollScheduler",
    "ProgressInterpolator",
    "RunSessionController",
    "SidePanelController",
]
