"""Run snapshot models.

A RunSnapshot is the latest known state of one monitored run. Snapshots are
frozen and replaced wholesale on every successful poll.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from pipewatch.constants.enums import NodePhase, has_finished


class StoragePath(BaseModel):
    """Location of an artifact in object storage."""

    model_config = ConfigDict(frozen=True)

    source: str = "minio"
    bucket: str
    key: str


class NodeArtifact(BaseModel):
    """Named input or output artifact of a node."""

    model_config = ConfigDict(frozen=True)

    name: str
    path: StoragePath | None = None


class NodeStatus(BaseModel):
    """Status record of one node in the run's execution graph."""

    model_config = ConfigDict(frozen=True)

    id: str
    display_name: str = ""
    node_type: str = ""
    template_name: str = ""
    phase: NodePhase = NodePhase.UNKNOWN
    message: str = ""
    started_at: str = ""
    finished_at: str = ""
    input_parameters: list[tuple[str, str]] = Field(default_factory=list)
    output_parameters: list[tuple[str, str]] = Field(default_factory=list)
    input_artifacts: list[NodeArtifact] = Field(default_factory=list)
    output_artifacts: list[NodeArtifact] = Field(default_factory=list)
    output_paths: list[StoragePath] = Field(default_factory=list)


class ExperimentMeta(BaseModel):
    """Experiment a run belongs to."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    namespace: str | None = None


class Execution(BaseModel):
    """Execution record from the metadata subsystem."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    pod_name: str | None = None
    type_name: str = ""


class RunSnapshot(BaseModel):
    """Latest known state of the monitored run."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    name: str = ""
    description: str = ""
    phase: NodePhase = NodePhase.UNKNOWN
    created_at: str = ""
    started_at: str = ""
    finished_at: str = ""
    namespace: str | None = None
    experiment: ExperimentMeta | None = None
    workflow_name: str = ""
    is_v2: bool = False
    nodes: dict[str, NodeStatus] = Field(default_factory=dict)
    workflow: dict[str, Any] = Field(default_factory=dict)
    executions: list[Execution] | None = None
    graph: Any = None

    @property
    def is_finished(self) -> bool:
        return has_finished(self.phase)

    def node(self, node_id: str | None) -> NodeStatus | None:
        if not node_id:
            return None
        return self.nodes.get(node_id)

    def execution_for_node(self, node_id: str | None) -> Execution | None:
        """Return the execution whose pod corresponds to the node, if any."""
        if not node_id or not self.executions:
            return None
        for execution in self.executions:
            if execution.pod_name == node_id:
                return execution
        return None


__all__ = [
    "Execution",
    "ExperimentMeta",
    "NodeArtifact",
    "NodeStatus",
    "RunSnapshot",
    "StoragePath",
]
