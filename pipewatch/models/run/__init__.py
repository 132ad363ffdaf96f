"""Run domain models."""

from pipewatch.models.run.errors import (
    DecodeError,
    RunNotFoundError,
    RunServiceError,
    TransportError,
)
from pipewatch.models.run.panel_state import BannerNotice, NodeDetails, NodeSelection
from pipewatch.models.run.run_snapshot import (
    Execution,
    ExperimentMeta,
    NodeArtifact,
    NodeStatus,
    RunSnapshot,
    StoragePath,
)

__all__ = [
    "BannerNotice",
    "DecodeError",
    "Execution",
    "ExperimentMeta",
    "NodeArtifact",
    "NodeDetails",
    "NodeSelection",
    "NodeStatus",
    "RunNotFoundError",
    "RunServiceError",
    "RunSnapshot",
    "StoragePath",
    "TransportError",
]
