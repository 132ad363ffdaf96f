"""ProgressInterpolator - smooth visual progress over a coarse real signal.

Loaders usually report a single jump from 0 to 100. Rendering that jump as-is
reads as a snap, so the visual value is animated per frame:

1. visual >= 100: stop animating and fire ``on_complete`` after a short delay
   so the full bar is visible before content replaces it.
2. real >= 100: fast-forward visual by a fixed step.
3. visual < real: creep towards real by gap / divisor, clamped to
   [min step, max step].
4. visual > real: snap visual down to real (the only non-monotonic move).

Each loading episode has a generation. ``reset()`` starts a new episode and
any completion still pending from an older one is dropped.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import replace

from pipewatch.constants.limits import (
    PROGRESS_CREEP_DIVISOR,
    PROGRESS_CREEP_MAX_STEP,
    PROGRESS_CREEP_MIN_STEP,
    PROGRESS_FAST_FORWARD_STEP,
    PROGRESS_MAX,
)
from pipewatch.constants.timeouts import (
    PROGRESS_COMPLETE_DELAY_SECONDS,
    PROGRESS_FRAME_SECONDS,
)
from pipewatch.models.visualization.viewer_config import ProgressState

logger = logging.getLogger(__name__)


class ProgressInterpolator:
    """Animates ProgressState.visual_progress towards real_progress."""

    def __init__(
        self,
        on_complete: Callable[[], None] | None = None,
        *,
        on_frame: Callable[[ProgressState], None] | None = None,
        frame_interval: float = PROGRESS_FRAME_SECONDS,
        complete_delay: float = PROGRESS_COMPLETE_DELAY_SECONDS,
    ) -> None:
        self._on_complete = on_complete
        self._on_frame = on_frame
        self._frame_interval = frame_interval
        self._complete_delay = complete_delay
        self._state = ProgressState()
        self._generation = 0
        self._animation: asyncio.Task[None] | None = None
        self._completion: asyncio.Task[None] | None = None
        self.frames_to_full: int | None = None
        self._frame_count = 0

    def set_frame_listener(self, on_frame: Callable[[ProgressState], None] | None) -> None:
        self._on_frame = on_frame

    @property
    def state(self) -> ProgressState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_animating(self) -> bool:
        return self._animation is not None and not self._animation.done()

    # =========================================================================
    # Episode control
    # =========================================================================

    def reset(self) -> int:
        """Start a new loading episode at (0, 0) and return its generation."""
        self._generation += 1
        self._cancel_tasks()
        self._state = ProgressState()
        self._frame_count = 0
        self.frames_to_full = None
        self._publish()
        return self._generation

    def update(self, real_progress: float) -> None:
        """Set the real progress and make sure the animation is running."""
        clamped = max(0.0, min(float(real_progress), PROGRESS_MAX))
        if clamped == self._state.real_progress and (
            self.is_animating or self._completion is not None
        ):
            return
        self._state = replace(self._state, real_progress=clamped)
        self._ensure_animating()

    def step(self) -> bool:
        """Apply one animation frame. Returns whether animation should continue."""
        state = self._state
        visual = state.visual_progress
        real = state.real_progress

        if visual >= PROGRESS_MAX:
            return False

        if real >= PROGRESS_MAX:
            visual = min(visual + PROGRESS_FAST_FORWARD_STEP, PROGRESS_MAX)
        elif visual < real:
            gap_step = (real - visual) / PROGRESS_CREEP_DIVISOR
            step = min(max(gap_step, PROGRESS_CREEP_MIN_STEP), PROGRESS_CREEP_MAX_STEP)
            visual = min(real, visual + step)
        elif visual > real:
            visual = real
        else:
            # Caught up with a partial real value; idle until the next update
            return False

        self._frame_count += 1
        if visual >= PROGRESS_MAX and self.frames_to_full is None:
            self.frames_to_full = self._frame_count
        self._state = replace(state, visual_progress=visual)
        self._publish()
        return True

    # =========================================================================
    # Animation tasks
    # =========================================================================

    def _ensure_animating(self) -> None:
        if self.is_animating or self._state.completed or self._completion is not None:
            return
        self._animation = asyncio.create_task(
            self._animate(self._generation), name="progress-animation"
        )

    async def _animate(self, generation: int) -> None:
        while generation == self._generation:
            if not self.step():
                break
            await asyncio.sleep(self._frame_interval)

        if generation != self._generation:
            return
        if self._state.visual_progress >= PROGRESS_MAX and self._completion is None:
            self._completion = asyncio.create_task(
                self._complete_after_delay(generation), name="progress-completion"
            )

    async def _complete_after_delay(self, generation: int) -> None:
        await asyncio.sleep(self._complete_delay)
        if generation != self._generation or self._state.completed:
            return
        self._state = replace(self._state, completed=True)
        self._publish()
        if self._on_complete is not None:
            try:
                self._on_complete()
            except Exception:
                logger.exception("Progress completion callback failed")

    def _cancel_tasks(self) -> None:
        current = asyncio.current_task() if _has_running_loop() else None
        for task in (self._animation, self._completion):
            if task is not None and not task.done() and task is not current:
                task.cancel()
        self._animation = None
        self._completion = None

    def _publish(self) -> None:
        if self._on_frame is None:
            return
        try:
            self._on_frame(self._state)
        except Exception:
            logger.exception("Progress frame listener failed")


def _has_running_loop() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


__all__ = ["ProgressInterpolator"]
