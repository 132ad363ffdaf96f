"""All enum definitions for pipewatch.

This module consolidates all enumerations used throughout the application.
"""

from __future__ import annotations

from enum import Enum

# =============================================================================
# Lifecycle Enums
# =============================================================================


class NodePhase(Enum):
    """Lifecycle phase of a run or of one node in its execution graph."""

    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    SKIPPED = "Skipped"
    FAILED = "Failed"
    ERROR = "Error"
    CACHED = "Cached"
    OMITTED = "Omitted"
    TERMINATING = "Terminating"
    TERMINATED = "Terminated"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: object) -> NodePhase:
        """Map a raw phase string to a member, falling back to UNKNOWN."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or ""))
        except ValueError:
            return cls.UNKNOWN


FINISHED_PHASES: frozenset[NodePhase] = frozenset(
    {
        NodePhase.SUCCEEDED,
        NodePhase.CACHED,
        NodePhase.FAILED,
        NodePhase.SKIPPED,
        NodePhase.TERMINATED,
        NodePhase.ERROR,
        NodePhase.OMITTED,
    }
)

# Phases after which a node's outputs no longer change
COMPLETED_NODE_PHASES: frozenset[NodePhase] = frozenset(
    {NodePhase.SUCCEEDED, NodePhase.FAILED, NodePhase.ERROR}
)

# Phases for which a node has no pod to read logs from
NO_LOGS_PHASES: frozenset[NodePhase] = frozenset(
    {NodePhase.PENDING, NodePhase.SKIPPED}
)


def has_finished(phase: NodePhase) -> bool:
    """Return True when the phase is terminal."""
    return phase in FINISHED_PHASES


# =============================================================================
# Presentation Enums
# =============================================================================


class BannerMode(Enum):
    """Severity of a banner notice."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class SidePanelTab(Enum):
    """Detail tabs of the node side panel, in display order."""

    INPUT_OUTPUT = "input-output"
    VISUALIZATIONS = "visualizations"
    TASK_DETAILS = "task-details"
    VOLUMES = "volumes"
    LOGS = "logs"
    POD = "pod"
    EVENTS = "events"
    ML_METADATA = "ml-metadata"
    MANIFEST = "manifest"

    @property
    def label(self) -> str:
        return _TAB_LABELS[self]

    @property
    def requires_fetch(self) -> bool:
        """Whether the tab loads node-scoped data from a remote source."""
        return self in (SidePanelTab.VISUALIZATIONS, SidePanelTab.LOGS)


_TAB_LABELS: dict[SidePanelTab, str] = {
    SidePanelTab.INPUT_OUTPUT: "Input/Output",
    SidePanelTab.VISUALIZATIONS: "Visualizations",
    SidePanelTab.TASK_DETAILS: "Details",
    SidePanelTab.VOLUMES: "Volumes",
    SidePanelTab.LOGS: "Logs",
    SidePanelTab.POD: "Pod",
    SidePanelTab.EVENTS: "Events",
    SidePanelTab.ML_METADATA: "ML Metadata",
    SidePanelTab.MANIFEST: "Manifest",
}

SIDE_PANEL_TABS: tuple[SidePanelTab, ...] = tuple(SidePanelTab)


class VisualizationType(Enum):
    """Visualization kinds the visualization server can build."""

    CUSTOM = "custom"
    ROC = "roc_curve"
    TFDV = "tfdv"
    TFMA = "tfma"
    TABLE = "table"


__all__ = [
    "COMPLETED_NODE_PHASES",
    "FINISHED_PHASES",
    "NO_LOGS_PHASES",
    "SIDE_PANEL_TABS",
    "BannerMode",
    "NodePhase",
    "SidePanelTab",
    "VisualizationType",
    "has_finished",
]
