"""Collaborator contracts consumed by the run controllers.

The controllers never talk to a transport directly; they receive objects that
satisfy these protocols. ``HttpRunServiceClient`` is the production
implementation of ``RunServiceClient``. ``MetadataClient`` is optional and may
be absent entirely.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol

from pipewatch.constants.enums import VisualizationType
from pipewatch.models.run.run_snapshot import Execution, StoragePath
from pipewatch.models.visualization.viewer_config import ViewerConfig

ProgressSink = Callable[[float], None]


class RunServiceClient(Protocol):
    """Remote run, experiment, log and artifact retrieval."""

    async def fetch_run(self, run_id: str) -> dict[str, Any]:
        """Return the raw run payload (run metadata + pipeline runtime)."""
        ...

    async def fetch_experiment(self, experiment_id: str) -> dict[str, Any]:
        ...

    async def fetch_pod_logs(self, run_id: str, node_id: str, namespace: str) -> str:
        ...

    async def build_viewer_configs(
        self, path: StoragePath, namespace: str | None
    ) -> list[ViewerConfig]:
        """Read a UI-metadata artifact and return the viewer configs it lists."""
        ...

    async def are_custom_visualizations_allowed(self) -> bool:
        ...

    async def build_visualization(
        self,
        arguments: str,
        source: str,
        visualization_type: VisualizationType,
        namespace: str,
    ) -> ViewerConfig:
        ...


class MetadataClient(Protocol):
    """Execution metadata lookup. Implementations may fail freely."""

    async def get_execution_context(self, workflow: dict[str, Any], run_id: str) -> Any:
        ...

    async def list_executions_for_context(self, context: Any) -> list[Execution]:
        ...

    async def build_execution_viewer_configs(
        self,
        execution: Execution,
        namespace: str,
        progress_sink: ProgressSink,
    ) -> list[ViewerConfig]:
        ...


__all__ = [
    "MetadataClient",
    "ProgressSink",
    "RunServiceClient",
]
