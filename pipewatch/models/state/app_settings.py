"""Application settings models."""

from pydantic import BaseModel, ConfigDict, field_validator

from pipewatch.constants.defaults import (
    API_URL_DEFAULT,
    NAMESPACE_DEFAULT,
    REFRESH_INTERVAL_DEFAULT,
)
from pipewatch.constants.limits import REFRESH_INTERVAL_MAX, REFRESH_INTERVAL_MIN
from pipewatch.constants.timeouts import API_REQUEST_TIMEOUT


class PipewatchSettings(BaseModel):
    """Application settings model with validation."""

    model_config = ConfigDict(populate_by_name=True)

    # Connection
    api_url: str = API_URL_DEFAULT
    namespace: str = NAMESPACE_DEFAULT
    request_timeout: float = API_REQUEST_TIMEOUT

    # Refresh
    refresh_interval: float = REFRESH_INTERVAL_DEFAULT  # seconds

    # GKE metadata, enables the Stackdriver log link when both are set
    gke_project_id: str = ""
    gke_cluster_name: str = ""

    @field_validator("refresh_interval")
    @classmethod
    def _clamp_refresh_interval(cls, value: float) -> float:
        return max(REFRESH_INTERVAL_MIN, min(float(value), REFRESH_INTERVAL_MAX))

    @field_validator("api_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.strip().rstrip("/") or API_URL_DEFAULT


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigLoadError(ConfigError):
    """Raised when settings fail to load."""


class ConfigSaveError(ConfigError):
    """Raised when settings fail to save."""
