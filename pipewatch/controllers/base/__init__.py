"""Base controller classes."""

from pipewatch.controllers.base.base_controller import (
    AsyncControllerMixin,
    BannerSink,
    BaseController,
    ChangeListener,
)

__all__ = [
    "AsyncControllerMixin",
    "BannerSink",
    "BaseController",
    "ChangeListener",
]
