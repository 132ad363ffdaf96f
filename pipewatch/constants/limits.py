"""Limit and threshold constants.

Progress interpolation steps and validation ranges.
"""

from typing import Final

# ============================================================================
# Progress interpolation
# ============================================================================

PROGRESS_MAX: Final = 100.0
PROGRESS_FAST_FORWARD_STEP: Final = 6.0
PROGRESS_CREEP_DIVISOR: Final = 6.0
PROGRESS_CREEP_MIN_STEP: Final = 0.01
PROGRESS_CREEP_MAX_STEP: Final = 0.2

# ============================================================================
# Validation limits
# ============================================================================

REFRESH_INTERVAL_MIN: Final = 1.0
REFRESH_INTERVAL_MAX: Final = 3600.0

# ============================================================================
# Display limits
# ============================================================================

MAX_LOG_LINES_DISPLAY: Final = 5000

__all__ = [
    "MAX_LOG_LINES_DISPLAY",
    "PROGRESS_CREEP_DIVISOR",
    "PROGRESS_CREEP_MAX_STEP",
    "PROGRESS_CREEP_MIN_STEP",
    "PROGRESS_FAST_FORWARD_STEP",
    "PROGRESS_MAX",
    "REFRESH_INTERVAL_MAX",
    "REFRESH_INTERVAL_MIN",
]
