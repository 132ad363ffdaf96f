"""Constants module for pipewatch.

Centralized constants organized by domain:
- enums.py: All Enum class definitions
- timeouts.py: Timeout and interval values (seconds)
- limits.py: Limit values and progress steps
- defaults.py: Default values for settings

Note: Keyboard bindings are defined in pipewatch.keyboard module.
"""

from pipewatch.constants.defaults import (
    API_URL_DEFAULT,
    NAMESPACE_DEFAULT,
    REFRESH_INTERVAL_DEFAULT,
)
from pipewatch.constants.enums import (
    SIDE_PANEL_TABS,
    BannerMode,
    NodePhase,
    SidePanelTab,
    has_finished,
)
from pipewatch.constants.limits import (
    PROGRESS_MAX,
    REFRESH_INTERVAL_MAX,
    REFRESH_INTERVAL_MIN,
)
from pipewatch.constants.timeouts import (
    API_REQUEST_TIMEOUT,
    POLL_INTERVAL_SECONDS,
    PROGRESS_COMPLETE_DELAY_SECONDS,
    PROGRESS_FRAME_SECONDS,
)

APP_TITLE = "pipewatch"

__all__ = [
    "API_REQUEST_TIMEOUT",
    "API_URL_DEFAULT",
    "APP_TITLE",
    "NAMESPACE_DEFAULT",
    "POLL_INTERVAL_SECONDS",
    "PROGRESS_COMPLETE_DELAY_SECONDS",
    "PROGRESS_FRAME_SECONDS",
    "PROGRESS_MAX",
    "REFRESH_INTERVAL_DEFAULT",
    "REFRESH_INTERVAL_MAX",
    "REFRESH_INTERVAL_MIN",
    "SIDE_PANEL_TABS",
    "BannerMode",
    "NodePhase",
    "SidePanelTab",
    "has_finished",
]
