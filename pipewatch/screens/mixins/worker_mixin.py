"""WorkerMixin - Worker lifecycle management for controller-driven screens.

This module provides a mixin class that implements consistent patterns for:
- Running controller coroutines as Textual Workers
- Loading state tracking through reactive attributes
- Error logging with load duration

Loads that must never be cancelled (poll ticks, side-panel loads guarded by
generation tags) are started with ``exclusive=False`` and a group name, so a
new load never cancels an older one. Staleness is handled by the controllers.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from contextlib import suppress
from typing import Any

from textual._context import NoActiveAppError
from textual.css.query import NoMatches, WrongType
from textual.reactive import reactive
from textual.widgets import Static
from textual.worker import Worker, WorkerState

logger = logging.getLogger(__name__)


class WorkerMixin:
    """Mixin providing Worker lifecycle management.

    Usage:
        ```python
        class MyScreen(WorkerMixin, Screen):
            def on_mount(self) -> None:
                self.start_worker(self._controller.start, name="run-poll")
        ```

    Note:
        This mixin uses Textual's `self.workers` (WorkerManager) for all worker
        lifecycle management. No manual worker tracking is required.
    """

    is_loading = reactive(False)
    error = reactive[str | None](None)
    loading_duration_ms = reactive(0.0, init=False)

    def __init__(self) -> None:
        # Screen subclasses rely on this to set up Textual internals
        super().__init__()
        self._load_start_time: float | None = None
        self._active_worker_name: str | None = None

    def watch_error(self, error: str | None) -> None:
        if error:
            self.show_error_state(error)

    def start_worker(
        self,
        worker_func: Callable[..., Awaitable[Any]],
        *,
        exclusive: bool = False,
        group: str = "default",
        name: str | None = None,
        exit_on_error: bool = False,
    ) -> Worker[Any]:
        """Start an async worker.

        Args:
            worker_func: Coroutine function to run in the event loop
            exclusive: If True, cancel workers of the same group first
            group: Worker group name
            name: Optional worker name for debugging
            exit_on_error: If False, errors don't crash the app (default False)

        Returns:
            The Worker instance
        """
        self._load_start_time = time.monotonic()
        self._active_worker_name = name
        self.is_loading = True
        return self.run_worker(  # type: ignore[attr-defined]
            worker_func,
            exclusive=exclusive,
            group=group,
            thread=False,
            name=name,
            exit_on_error=exit_on_error,
        )

    def cancel_workers(self) -> None:
        """Cancel all running workers using Textual's built-in WorkerManager."""
        with suppress(NoActiveAppError):
            self.workers.cancel_all()  # type: ignore[attr-defined]

    def on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        """Track loading state and log worker failures with their duration."""
        if event.state not in (WorkerState.SUCCESS, WorkerState.CANCELLED, WorkerState.ERROR):
            return

        duration_ms = 0.0
        if self._load_start_time is not None:
            duration_ms = (time.monotonic() - self._load_start_time) * 1000
            self.loading_duration_ms = duration_ms
            self._load_start_time = None

        if event.state == WorkerState.CANCELLED:
            logger.debug(f"Worker '{event.worker.name}' was cancelled ({duration_ms:.2f}ms)")
        elif event.state == WorkerState.ERROR:
            logger.error(
                f"Worker '{event.worker.name}' error: {event.worker.error} ({duration_ms:.2f}ms)"
            )
            self.error = str(event.worker.error)
        else:
            logger.debug(f"Worker '{event.worker.name}' completed successfully ({duration_ms:.2f}ms)")
        self.is_loading = False

    def show_error_state(self, message: str) -> None:
        """Show an error line in the screen's status bar.

        The default implementation expects a `#run-status-bar` Static in compose().
        """
        with suppress(NoMatches, WrongType):
            status = self.query_one("#run-status-bar", Static)  # type: ignore[attr-defined]
            status.update(message)
            status.add_class("error-text")


__all__ = ["WorkerMixin"]
