"""Base controller with listener plumbing shared by the run controllers.

Controllers own their state exclusively and replace it wholesale. The
presentation layer observes them through two callables: a banner sink that
receives notices (None clears the current one) and a change listener that
is called after every state replacement.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable

from pipewatch.models.run.panel_state import BannerNotice

logger = logging.getLogger(__name__)

BannerSink = Callable[[BannerNotice | None], None]
ChangeListener = Callable[[], None]


class AsyncControllerMixin:
    """Mixin providing load timing for controllers driven by async loads."""

    def __init__(self) -> None:
        """Initialize the async controller mixin."""
        self._load_start_time: float | None = None

    def _mark_load_started(self) -> None:
        self._load_start_time = time.monotonic()

    def _load_duration_ms(self) -> float:
        """Return milliseconds since the last load started, then reset the mark."""
        if self._load_start_time is None:
            return 0.0
        duration_ms = (time.monotonic() - self._load_start_time) * 1000
        self._load_start_time = None
        return duration_ms


class BaseController(AsyncControllerMixin, ABC):
    """Base controller class with banner and change notification.

    Listener failures are logged and never propagate back into the
    controller, so a rendering bug cannot break a load in flight.
    """

    def __init__(
        self,
        *,
        banner_sink: BannerSink | None = None,
        on_change: ChangeListener | None = None,
    ) -> None:
        super().__init__()
        self._banner_sink = banner_sink
        self._on_change = on_change

    def set_listeners(
        self,
        *,
        banner_sink: BannerSink | None = None,
        on_change: ChangeListener | None = None,
    ) -> None:
        """Attach presentation listeners after construction."""
        if banner_sink is not None:
            self._banner_sink = banner_sink
        if on_change is not None:
            self._on_change = on_change

    def _emit_banner(self, notice: BannerNotice) -> None:
        if self._banner_sink is None:
            return
        try:
            self._banner_sink(notice)
        except Exception:
            logger.exception("Banner sink failed for %r", notice.message)

    def _clear_banner(self) -> None:
        if self._banner_sink is None:
            return
        try:
            self._banner_sink(None)
        except Exception:
            logger.exception("Banner sink failed while clearing")

    def _notify_changed(self) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change()
        except Exception:
            logger.exception("Change listener failed in %s", type(self).__name__)

    @abstractmethod
    async def reload(self) -> None:
        """Re-issue the controller's current load against the latest state."""
        ...
