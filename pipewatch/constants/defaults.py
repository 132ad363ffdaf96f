"""Default values for settings.

All default values used in the PipewatchSettings model and validation fallbacks.
"""

from typing import Final

# ============================================================================
# Connection defaults
# ============================================================================

API_URL_DEFAULT: Final = "http://localhost:8080"
NAMESPACE_DEFAULT: Final = "kubeflow"

# ============================================================================
# Refresh defaults
# ============================================================================

REFRESH_INTERVAL_DEFAULT: Final = 5.0

# ============================================================================
# Config file
# ============================================================================

CONFIG_PATH_ENV_VAR: Final = "PIPEWATCH_CONFIG"
CONFIG_PATH_DEFAULT: Final = "~/.config/pipewatch/settings.yaml"

__all__ = [
    "API_URL_DEFAULT",
    "CONFIG_PATH_DEFAULT",
    "CONFIG_PATH_ENV_VAR",
    "NAMESPACE_DEFAULT",
    "REFRESH_INTERVAL_DEFAULT",
]
