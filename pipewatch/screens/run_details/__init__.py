"""Run details screen module exports."""

from pipewatch.screens.run_details.config import TAB_SHORTCUTS
from pipewatch.screens.run_details.generate_dialog import (
    GenerateVisualizationDialog,
    VisualizationRequest,
)
from pipewatch.screens.run_details.presenter import (
    BannerRaised,
    RunDetailsPresenter,
    RunStateChanged,
    VisualizationProgress,
)
from pipewatch.screens.run_details.run_details_screen import RunDetailsScreen

__all__ = [
    "TAB_SHORTCUTS",
    "BannerRaised",
    "GenerateVisualizationDialog",
    "RunDetailsPresenter",
    "RunDetailsScreen",
    "RunStateChanged",
    "VisualizationProgress",
    "VisualizationRequest",
]
