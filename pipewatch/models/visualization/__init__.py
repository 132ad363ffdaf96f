"""Visualization models."""

from pipewatch.models.visualization.viewer_config import (
    AnnotatedConfig,
    FanoutError,
    FanoutResult,
    GeneratedVisualization,
    ProgressState,
    ViewerConfig,
)

__all__ = [
    "AnnotatedConfig",
    "FanoutError",
    "FanoutResult",
    "GeneratedVisualization",
    "ProgressState",
    "ViewerConfig",
]
