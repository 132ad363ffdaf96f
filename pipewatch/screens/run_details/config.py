"""Run details screen configuration - widget IDs, column definitions and tab keys."""

from __future__ import annotations

from pipewatch.constants.enums import SIDE_PANEL_TABS, SidePanelTab

# =============================================================================
# Widget IDs
# =============================================================================

PAGE_BANNER_ID = "page-banner"
NODES_TABLE_ID = "nodes-table"
SIDE_PANEL_ID = "side-panel"
SIDE_PANEL_TITLE_ID = "side-panel-title"
SIDE_PANEL_TABS_ID = "side-panel-tabs"
SIDE_PANEL_BANNER_ID = "side-panel-banner"
SIDE_PANEL_BODY_ID = "side-panel-body"
VISUALIZATION_PROGRESS_ID = "visualization-progress"
OUTPUTS_TABLE_ID = "outputs-table"
RUN_DETAILS_ID = "run-details"
STATUS_BAR_ID = "run-status-bar"

# =============================================================================
# Table Column Definitions: list[tuple[str, int]] = [(name, width), ...]
# =============================================================================

NODES_TABLE_COLUMNS: list[tuple[str, int]] = [
    ("Step", 36),
    ("Status", 12),
    ("Started at", 20),
    ("Duration", 10),
]

OUTPUTS_TABLE_COLUMNS: list[tuple[str, int]] = [
    ("Step", 30),
    ("Viewer", 16),
    ("Source", 50),
]

# =============================================================================
# Side panel tabs
# =============================================================================

# Number keys 1..9 map onto the fixed tab order
TAB_SHORTCUTS: dict[str, SidePanelTab] = {
    str(index): tab for index, tab in enumerate(SIDE_PANEL_TABS, start=1)
}

EMPTY_TAB_MESSAGE = "Nothing to show for this step."
NO_LOGS_MESSAGE = "No logs for this step."
NO_VISUALIZATIONS_MESSAGE = "No visualizations for this step."
NOT_COMPLETED_MESSAGE = "Visualizations appear once the step has completed."

__all__ = [
    "EMPTY_TAB_MESSAGE",
    "NODES_TABLE_COLUMNS",
    "NODES_TABLE_ID",
    "NOT_COMPLETED_MESSAGE",
    "NO_LOGS_MESSAGE",
    "NO_VISUALIZATIONS_MESSAGE",
    "OUTPUTS_TABLE_COLUMNS",
    "OUTPUTS_TABLE_ID",
    "PAGE_BANNER_ID",
    "RUN_DETAILS_ID",
    "SIDE_PANEL_BANNER_ID",
    "SIDE_PANEL_BODY_ID",
    "SIDE_PANEL_ID",
    "SIDE_PANEL_TABS_ID",
    "SIDE_PANEL_TITLE_ID",
    "STATUS_BAR_ID",
    "TAB_SHORTCUTS",
    "VISUALIZATION_PROGRESS_ID",
]
