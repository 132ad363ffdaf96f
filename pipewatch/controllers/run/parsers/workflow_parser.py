"""Workflow parser for the run controller - parses raw run state into snapshots."""

from __future__ import annotations

import copy
import json
import logging
from typing import Any

from pipewatch.constants.enums import NodePhase
from pipewatch.controllers.run.parsers.compressed_nodes import decode_compressed_nodes
from pipewatch.models.run.errors import DecodeError
from pipewatch.models.run.run_snapshot import (
    Execution,
    ExperimentMeta,
    NodeArtifact,
    NodeStatus,
    RunSnapshot,
    StoragePath,
)

logger = logging.getLogger(__name__)

TERMINATED_MARKER = "terminated"


class WorkflowParser:
    """Parses raw run payloads and workflow manifests into structured formats."""

    _UI_METADATA_ARTIFACT = "mlpipeline-ui-metadata"
    _V2_ANNOTATION = "pipelines.kubeflow.org/v2_pipeline"
    _EXPERIMENT_REFERENCE = "EXPERIMENT"
    _NAMESPACE_REFERENCE = "NAMESPACE"

    # =========================================================================
    # Run payload
    # =========================================================================

    @staticmethod
    def parse_manifest(raw_state: dict[str, Any]) -> dict[str, Any]:
        """Return the workflow manifest embedded in a run payload.

        Raises:
            DecodeError: If the manifest is not valid JSON.
        """
        runtime = raw_state.get("pipeline_runtime") or {}
        manifest_text = runtime.get("workflow_manifest") or "{}"
        try:
            workflow = json.loads(manifest_text)
        except json.JSONDecodeError as exc:
            raise DecodeError(f"Invalid workflow manifest: {exc}") from exc
        return workflow if isinstance(workflow, dict) else {}

    @staticmethod
    def expand_compressed_nodes(workflow: dict[str, Any]) -> dict[str, Any]:
        """Return a copy of the workflow with compressed nodes decoded inline.

        Decode failures are logged and leave the workflow with an empty node
        map so the rest of the refresh can proceed.
        """
        status = workflow.get("status")
        if not isinstance(status, dict) or status.get("nodes") or not status.get(
            "compressedNodes"
        ):
            return workflow

        expanded = copy.copy(workflow)
        expanded_status = dict(status)
        blob = expanded_status.pop("compressedNodes")
        try:
            expanded_status["nodes"] = decode_compressed_nodes(blob)
        except DecodeError as exc:
            logger.error("%s", exc)
            expanded_status["nodes"] = {}
        expanded["status"] = expanded_status
        return expanded

    @classmethod
    def experiment_id(cls, raw_state: dict[str, Any]) -> str | None:
        """Return the id of the first experiment the run references."""
        run = raw_state.get("run") or {}
        for reference in run.get("resource_references") or []:
            key = reference.get("key") or {}
            if key.get("type") == cls._EXPERIMENT_REFERENCE and key.get("id"):
                return str(key["id"])
        return None

    @classmethod
    def parse_experiment(cls, raw_experiment: dict[str, Any]) -> ExperimentMeta:
        namespace: str | None = None
        for reference in raw_experiment.get("resource_references") or []:
            key = reference.get("key") or {}
            if key.get("type") == cls._NAMESPACE_REFERENCE:
                namespace = key.get("id") or reference.get("name") or None
                break
        return ExperimentMeta(
            id=str(raw_experiment.get("id") or ""),
            name=str(raw_experiment.get("name") or ""),
            namespace=namespace,
        )

    @classmethod
    def build_snapshot(
        cls,
        run_id: str,
        raw_state: dict[str, Any],
        workflow: dict[str, Any],
        *,
        experiment: ExperimentMeta | None = None,
        executions: list[Execution] | None = None,
        graph: Any = None,
    ) -> RunSnapshot:
        """Assemble a snapshot from the run payload and its expanded workflow."""
        run = raw_state.get("run") or {}
        metadata = workflow.get("metadata") or {}
        status = workflow.get("status") or {}
        namespace = metadata.get("namespace") or (
            experiment.namespace if experiment else None
        )
        return RunSnapshot(
            run_id=str(run.get("id") or run_id),
            name=str(run.get("name") or ""),
            description=str(run.get("description") or ""),
            phase=NodePhase.parse(run.get("status") or status.get("phase")),
            created_at=str(metadata.get("creationTimestamp") or run.get("created_at") or ""),
            started_at=str(status.get("startedAt") or ""),
            finished_at=str(status.get("finishedAt") or ""),
            namespace=namespace,
            experiment=experiment,
            workflow_name=str(metadata.get("name") or ""),
            is_v2=cls.is_v2_pipeline(workflow),
            nodes=cls.parse_nodes(workflow),
            workflow=workflow,
            executions=executions,
            graph=graph,
        )

    # =========================================================================
    # Workflow inspection
    # =========================================================================

    @staticmethod
    def get_workflow_error(workflow: dict[str, Any]) -> str:
        """Return the workflow's error message when it failed, else ''."""
        status = workflow.get("status") or {}
        message = str(status.get("message") or "")
        phase = NodePhase.parse(status.get("phase"))
        if message and phase in (NodePhase.ERROR, NodePhase.FAILED):
            return message
        return ""

    @classmethod
    def is_v2_pipeline(cls, workflow: dict[str, Any]) -> bool:
        annotations = (workflow.get("metadata") or {}).get("annotations") or {}
        return str(annotations.get(cls._V2_ANNOTATION, "")).lower() == "true"

    @staticmethod
    def _template_for_node(workflow: dict[str, Any], node_id: str) -> dict[str, Any]:
        nodes = (workflow.get("status") or {}).get("nodes") or {}
        template_name = (nodes.get(node_id) or {}).get("templateName")
        if not template_name:
            return {}
        for template in (workflow.get("spec") or {}).get("templates") or []:
            if template.get("name") == template_name:
                return template
        return {}

    @classmethod
    def get_node_manifest(cls, workflow: dict[str, Any], node_id: str) -> list[tuple[str, str]]:
        """Return the resource manifest of a resource-template node, if any."""
        template = cls._template_for_node(workflow, node_id)
        manifest = (template.get("resource") or {}).get("manifest")
        return [("resource", str(manifest))] if manifest else []

    @classmethod
    def get_node_volume_mounts(
        cls, workflow: dict[str, Any], node_id: str
    ) -> list[tuple[str, str]]:
        """Return (mount path, volume name) pairs of the node's container."""
        template = cls._template_for_node(workflow, node_id)
        mounts = (template.get("container") or {}).get("volumeMounts") or []
        return [
            (str(mount.get("mountPath", "")), str(mount.get("name", "")))
            for mount in mounts
        ]

    @staticmethod
    def get_parameters(workflow: dict[str, Any]) -> list[tuple[str, str]]:
        """Return the run-level workflow parameters."""
        arguments = (workflow.get("spec") or {}).get("arguments") or {}
        return [
            (str(param.get("name", "")), str(param.get("value", "")))
            for param in arguments.get("parameters") or []
        ]

    # =========================================================================
    # Nodes
    # =========================================================================

    @classmethod
    def parse_nodes(cls, workflow: dict[str, Any]) -> dict[str, NodeStatus]:
        raw_nodes = (workflow.get("status") or {}).get("nodes") or {}
        nodes: dict[str, NodeStatus] = {}
        for node_id, raw_node in raw_nodes.items():
            if not isinstance(raw_node, dict):
                continue
            nodes[str(node_id)] = cls.parse_node(str(node_id), raw_node)
        return nodes

    @classmethod
    def parse_node(cls, node_id: str, raw_node: dict[str, Any]) -> NodeStatus:
        inputs = raw_node.get("inputs") or {}
        outputs = raw_node.get("outputs") or {}
        output_artifacts = cls._parse_artifacts(outputs.get("artifacts"))
        return NodeStatus(
            id=str(raw_node.get("id") or node_id),
            display_name=str(raw_node.get("displayName") or raw_node.get("name") or ""),
            node_type=str(raw_node.get("type") or ""),
            template_name=str(raw_node.get("templateName") or ""),
            phase=NodePhase.parse(raw_node.get("phase")),
            message=str(raw_node.get("message") or ""),
            started_at=str(raw_node.get("startedAt") or ""),
            finished_at=str(raw_node.get("finishedAt") or ""),
            input_parameters=cls._parse_parameters(inputs.get("parameters")),
            output_parameters=cls._parse_parameters(outputs.get("parameters")),
            input_artifacts=cls._parse_artifacts(inputs.get("artifacts")),
            output_artifacts=output_artifacts,
            output_paths=[
                artifact.path
                for artifact in output_artifacts
                if artifact.name == cls._UI_METADATA_ARTIFACT and artifact.path is not None
            ],
        )

    @staticmethod
    def _parse_parameters(raw: Any) -> list[tuple[str, str]]:
        return [
            (str(param.get("name", "")), str(param.get("value", "")))
            for param in raw or []
            if isinstance(param, dict)
        ]

    @staticmethod
    def _parse_artifacts(raw: Any) -> list[NodeArtifact]:
        artifacts: list[NodeArtifact] = []
        for artifact in raw or []:
            if not isinstance(artifact, dict):
                continue
            s3 = artifact.get("s3") or {}
            path = None
            if s3.get("key"):
                path = StoragePath(bucket=str(s3.get("bucket") or ""), key=str(s3["key"]))
            artifacts.append(NodeArtifact(name=str(artifact.get("name", "")), path=path))
        return artifacts

    @staticmethod
    def load_all_output_paths_with_step_names(
        snapshot: RunSnapshot,
    ) -> list[tuple[str, StoragePath]]:
        """Return (step name, path) for every UI-metadata output across the run."""
        return [
            (node.display_name or node.id, path)
            for node in snapshot.nodes.values()
            for path in node.output_paths
        ]


__all__ = ["TERMINATED_MARKER", "WorkflowParser"]
