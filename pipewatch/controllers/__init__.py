"""Controllers module for pipewatch.

This module provides the controllers that keep a live run, its node side
panel and the visualization loads consistent with the remote pipeline.
"""

from __future__ import annotations

# Base classes
from pipewatch.controllers.base import AsyncControllerMixin, BaseController

# Run domain
from pipewatch.controllers.run.controller import RunSessionController
from pipewatch.controllers.run.fanout_loader import AsyncFanoutLoader
from pipewatch.controllers.run.poll_scheduler import PollScheduler
from pipewatch.controllers.run.progress import ProgressInterpolator
from pipewatch.controllers.run.side_panel import SidePanelController

__all__ = [
    # Base
    "AsyncControllerMixin",
    "BaseController",
    # Run domain
    "AsyncFanoutLoader",
    "PollScheduler",
    "ProgressInterpolator",
    "RunSessionController",
    "SidePanelController",
]
