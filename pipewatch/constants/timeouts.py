"""Timeout and interval constants.

All timeout and interval values for API requests, polling and animation frames.
"""

from typing import Final

# ============================================================================
# API timeouts (float, in seconds)
# ============================================================================

API_REQUEST_TIMEOUT: Final = 30.0

# ============================================================================
# Poll and animation intervals (float, in seconds)
# ============================================================================

POLL_INTERVAL_SECONDS: Final = 5.0

# 60fps -> 16.6 ms is 1 frame
PROGRESS_FRAME_SECONDS: Final = 0.0166

# Time the full bar stays visible before content replaces it
PROGRESS_COMPLETE_DELAY_SECONDS: Final = 0.4

__all__ = [
    "API_REQUEST_TIMEOUT",
    "POLL_INTERVAL_SECONDS",
    "PROGRESS_COMPLETE_DELAY_SECONDS",
    "PROGRESS_FRAME_SECONDS",
]
