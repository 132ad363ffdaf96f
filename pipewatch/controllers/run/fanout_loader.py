"""AsyncFanoutLoader - concurrent viewer-config loads for one node.

Tasks run together through ``asyncio.gather``. A failing task is reported to
the error sink and contributes an empty list, so siblings always complete.
Items are concatenated in submission order, not completion order.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence

from pipewatch.constants.limits import PROGRESS_MAX
from pipewatch.controllers.run.fetchers.base import ProgressSink
from pipewatch.models.visualization.viewer_config import (
    FanoutError,
    FanoutResult,
    ViewerConfig,
)

logger = logging.getLogger(__name__)

FanoutTask = Callable[[ProgressSink], Awaitable[list[ViewerConfig]]]
ErrorSink = Callable[[Exception], None]


def _ignore_progress(_progress: float) -> None:
    return None


class AsyncFanoutLoader:
    """Runs independent producers of viewer configs and merges their output."""

    def __init__(self, error_sink: ErrorSink | None = None) -> None:
        self._error_sink = error_sink

    async def run(
        self,
        tasks: Sequence[FanoutTask],
        progress_sink: ProgressSink | None = None,
    ) -> FanoutResult:
        """Run every task concurrently.

        Args:
            tasks: Producers in display order. Each receives the shared sink.
            progress_sink: Receives a single 100 once every task has settled.

        Returns:
            FanoutResult with items in task order and one error per failure.
        """
        sink = progress_sink or _ignore_progress
        outcomes = await asyncio.gather(
            *(self._guarded(index, task, sink) for index, task in enumerate(tasks))
        )

        items: list[ViewerConfig] = []
        errors: list[FanoutError] = []
        for configs, error in outcomes:
            items.extend(configs)
            if error is not None:
                errors.append(error)

        sink(PROGRESS_MAX)
        logger.debug(
            "Fan-out settled: %d task(s), %d item(s), %d error(s)",
            len(tasks),
            len(items),
            len(errors),
        )
        return FanoutResult(items=tuple(items), errors=tuple(errors))

    async def _guarded(
        self,
        index: int,
        task: FanoutTask,
        sink: ProgressSink,
    ) -> tuple[list[ViewerConfig], FanoutError | None]:
        try:
            configs = await task(sink)
        except Exception as exc:
            logger.warning("Fan-out task %d failed: %s", index, exc)
            self._report(exc)
            return [], FanoutError(task_index=index, error=exc)
        return list(configs or []), None

    def _report(self, exc: Exception) -> None:
        if self._error_sink is None:
            return
        try:
            self._error_sink(exc)
        except Exception:
            logger.exception("Fan-out error sink failed")


__all__ = ["AsyncFanoutLoader", "ErrorSink", "FanoutTask"]
