"""Keyboard bindings module.

Bindings are organized into two categories:

- app: App-level bindings (APP_BINDINGS)
- navigation: Screen-specific bindings (*_SCREEN_BINDINGS)
"""

from pipewatch.keyboard.app import APP_BINDINGS
from pipewatch.keyboard.navigation import RUN_DETAILS_SCREEN_BINDINGS

__all__ = [
    "APP_BINDINGS",
    "RUN_DETAILS_SCREEN_BINDINGS",
]
