"""Tests for SidePanelController - selection, tab loads and staleness."""

from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from pipewatch.constants.enums import BannerMode, NodePhase, SidePanelTab, VisualizationType
from pipewatch.controllers.run.progress import ProgressInterpolator
from pipewatch.controllers.run.side_panel import (
    LOGS_FAILED_MESSAGE,
    VISUALIZATIONS_FAILED_MESSAGE,
    SidePanelController,
)
from pipewatch.models.run import (
    Execution,
    NodeStatus,
    RunNotFoundError,
    RunSnapshot,
    StoragePath,
    TransportError,
)
from pipewatch.models.state.app_settings import PipewatchSettings
from pipewatch.models.visualization import ViewerConfig


class _GatedLogsClient:
    """Run service whose log fetches block until released one by one."""

    def __init__(self) -> None:
        self.log_calls: list[str] = []
        self.gates: list[asyncio.Event] = []
        self.build_viewer_configs = AsyncMock(return_value=[])
        self.build_visualization = AsyncMock()

    async def fetch_pod_logs(self, run_id: str, node_id: str, namespace: str) -> str:
        self.log_calls.append(node_id)
        call_number = len(self.log_calls)
        gate = asyncio.Event()
        self.gates.append(gate)
        await gate.wait()
        return f"logs-{node_id}-{call_number}"


def _snapshot(
    *nodes: NodeStatus,
    is_v2: bool = False,
    workflow: dict[str, Any] | None = None,
    executions: list[Execution] | None = None,
    namespace: str | None = "team-a",
) -> RunSnapshot:
    return RunSnapshot(
        run_id="run-1",
        phase=NodePhase.RUNNING,
        namespace=namespace,
        is_v2=is_v2,
        nodes={node.id: node for node in nodes},
        workflow=workflow or {},
        executions=executions,
    )


def _quiet_progress() -> ProgressInterpolator:
    return ProgressInterpolator(frame_interval=0, complete_delay=0)


async def _settle(client: _GatedLogsClient, expected_calls: int) -> None:
    for _ in range(100):
        if len(client.gates) >= expected_calls:
            return
        await asyncio.sleep(0)


class TestSidePanelSelection:
    """Tests for select/close and last-selection-wins."""

    @pytest.mark.asyncio
    async def test_last_selection_wins_regardless_of_completion_order(self) -> None:
        """Select a -> b -> a; results resolve in reverse; panel shows the last a."""
        client = _GatedLogsClient()
        panel = SidePanelController(client, progress=_quiet_progress())
        panel.update_snapshot(
            _snapshot(
                NodeStatus(id="a", phase=NodePhase.RUNNING),
                NodeStatus(id="b", phase=NodePhase.RUNNING),
            )
        )
        await panel.switch_tab(SidePanelTab.LOGS)

        first = asyncio.create_task(panel.select("a"))
        await _settle(client, 1)
        second = asyncio.create_task(panel.select("b"))
        await _settle(client, 2)
        third = asyncio.create_task(panel.select("a"))
        await _settle(client, 3)

        client.gates[2].set()
        await third
        client.gates[1].set()
        await second
        client.gates[0].set()
        await first

        assert client.log_calls == ["a", "b", "a"]
        assert panel.selection.node_id == "a"
        assert panel.node_details is not None
        assert panel.node_details.logs == "logs-a-3"
        assert panel.busy is False

    @pytest.mark.asyncio
    async def test_select_keeps_active_tab(self) -> None:
        panel = SidePanelController(_GatedLogsClient(), progress=_quiet_progress())
        panel.update_snapshot(_snapshot(NodeStatus(id="a", phase=NodePhase.PENDING)))

        await panel.switch_tab(SidePanelTab.TASK_DETAILS)
        await panel.select("a")

        assert panel.selection.tab is SidePanelTab.TASK_DETAILS
        assert panel.selection.is_open is True

    @pytest.mark.asyncio
    async def test_close_clears_selection_and_stales_loads(self) -> None:
        client = _GatedLogsClient()
        panel = SidePanelController(client, progress=_quiet_progress())
        panel.update_snapshot(_snapshot(NodeStatus(id="a", phase=NodePhase.RUNNING)))
        await panel.switch_tab(SidePanelTab.LOGS)

        pending = asyncio.create_task(panel.select("a"))
        await _settle(client, 1)
        generation = panel.current_generation
        panel.close()
        client.gates[0].set()
        await pending

        assert panel.current_generation > generation
        assert panel.selection.node_id is None
        assert panel.node_details is None

    @pytest.mark.asyncio
    async def test_phase_message_banner_mode(self) -> None:
        panel = SidePanelController(_GatedLogsClient(), progress=_quiet_progress())
        panel.update_snapshot(
            _snapshot(NodeStatus(id="a", phase=NodePhase.FAILED, message="OOMKilled"))
        )

        await panel.select("a")

        details = panel.node_details
        assert details is not None
        assert details.banner_mode is BannerMode.ERROR
        assert details.phase_message == (
            "This step is in Failed state with this message: OOMKilled"
        )


class TestSidePanelLogs:
    """Tests for the Logs tab."""

    @pytest.mark.asyncio
    async def test_skipped_node_does_not_fetch_logs(self) -> None:
        client = MagicMock()
        client.fetch_pod_logs = AsyncMock(return_value="never")
        panel = SidePanelController(client, progress=_quiet_progress())
        panel.update_snapshot(_snapshot(NodeStatus(id="a", phase=NodePhase.SKIPPED)))
        await panel.switch_tab(SidePanelTab.LOGS)

        await panel.select("a")

        client.fetch_pod_logs.assert_not_called()
        assert panel.logs_banner is None
        assert panel.node_details is not None
        assert panel.node_details.logs is None

    @pytest.mark.asyncio
    async def test_skipped_node_clears_previous_banner_and_logs(self) -> None:
        client = MagicMock()
        client.fetch_pod_logs = AsyncMock(side_effect=TransportError("flaky"))
        panel = SidePanelController(client, progress=_quiet_progress())
        panel.update_snapshot(_snapshot(NodeStatus(id="a", phase=NodePhase.RUNNING)))
        await panel.switch_tab(SidePanelTab.LOGS)
        await panel.select("a")
        assert panel.logs_banner is not None

        panel.update_snapshot(_snapshot(NodeStatus(id="a", phase=NodePhase.SKIPPED)))
        await panel.reload()

        assert client.fetch_pod_logs.await_count == 1
        assert panel.logs_banner is None
        assert panel.node_details is not None
        assert panel.node_details.logs is None

    @pytest.mark.asyncio
    async def test_logs_use_snapshot_namespace(self) -> None:
        client = MagicMock()
        client.fetch_pod_logs = AsyncMock(return_value="line 1\nline 2")
        panel = SidePanelController(client, progress=_quiet_progress())
        panel.update_snapshot(_snapshot(NodeStatus(id="a", phase=NodePhase.RUNNING)))
        await panel.switch_tab(SidePanelTab.LOGS)

        await panel.select("a")

        client.fetch_pod_logs.assert_awaited_once_with("run-1", "a", "team-a")
        assert panel.node_details is not None
        assert panel.node_details.logs == "line 1\nline 2"

    @pytest.mark.asyncio
    async def test_logs_namespace_falls_back_to_settings(self) -> None:
        client = MagicMock()
        client.fetch_pod_logs = AsyncMock(return_value="")
        panel = SidePanelController(
            client,
            settings=PipewatchSettings(namespace="fallback"),
            progress=_quiet_progress(),
        )
        panel.update_snapshot(
            _snapshot(NodeStatus(id="a", phase=NodePhase.RUNNING), namespace=None)
        )
        await panel.switch_tab(SidePanelTab.LOGS)

        await panel.select("a")

        client.fetch_pod_logs.assert_awaited_once_with("run-1", "a", "fallback")

    @pytest.mark.asyncio
    async def test_pod_not_found_is_info_with_stackdriver_hint(self) -> None:
        client = MagicMock()
        client.fetch_pod_logs = AsyncMock(side_effect=RunNotFoundError("pod not found"))
        panel = SidePanelController(
            client,
            settings=PipewatchSettings(gke_project_id="proj", gke_cluster_name="cluster"),
            progress=_quiet_progress(),
        )
        panel.update_snapshot(_snapshot(NodeStatus(id="a", phase=NodePhase.FAILED)))
        await panel.switch_tab(SidePanelTab.LOGS)

        await panel.select("a")

        banner = panel.logs_banner
        assert banner is not None
        assert banner.mode is BannerMode.INFO
        assert banner.message.startswith(LOGS_FAILED_MESSAGE)
        assert "Stackdriver" in banner.message
        assert banner.additional_info.endswith("Error response: pod not found")
        assert banner.retry is not None
        assert "proj" in panel.stackdriver_logs_url()

    @pytest.mark.asyncio
    async def test_pod_not_found_without_gke_has_no_stackdriver_hint(self) -> None:
        client = MagicMock()
        client.fetch_pod_logs = AsyncMock(side_effect=RunNotFoundError("pod not found"))
        panel = SidePanelController(client, progress=_quiet_progress())
        panel.update_snapshot(_snapshot(NodeStatus(id="a", phase=NodePhase.FAILED)))
        await panel.switch_tab(SidePanelTab.LOGS)

        await panel.select("a")

        assert panel.logs_banner is not None
        assert panel.logs_banner.message == LOGS_FAILED_MESSAGE
        assert panel.stackdriver_logs_url() == ""

    @pytest.mark.asyncio
    async def test_other_log_errors_are_errors(self) -> None:
        client = MagicMock()
        client.fetch_pod_logs = AsyncMock(side_effect=TransportError("502 Bad Gateway"))
        panel = SidePanelController(client, progress=_quiet_progress())
        panel.update_snapshot(_snapshot(NodeStatus(id="a", phase=NodePhase.RUNNING)))
        await panel.switch_tab(SidePanelTab.LOGS)

        await panel.select("a")

        assert panel.logs_banner is not None
        assert panel.logs_banner.mode is BannerMode.ERROR
        assert panel.logs_banner.additional_info == "Error response: 502 Bad Gateway"

    @pytest.mark.asyncio
    async def test_reload_refetches_logs(self) -> None:
        client = MagicMock()
        client.fetch_pod_logs = AsyncMock(return_value="x")
        panel = SidePanelController(client, progress=_quiet_progress())
        panel.update_snapshot(_snapshot(NodeStatus(id="a", phase=NodePhase.RUNNING)))
        await panel.switch_tab(SidePanelTab.LOGS)
        await panel.select("a")

        await panel.reload()

        assert client.fetch_pod_logs.await_count == 2

    @pytest.mark.asyncio
    async def test_reload_without_selection_is_noop(self) -> None:
        client = MagicMock()
        client.fetch_pod_logs = AsyncMock(return_value="x")
        panel = SidePanelController(client, progress=_quiet_progress())
        panel.update_snapshot(_snapshot(NodeStatus(id="a", phase=NodePhase.RUNNING)))
        await panel.switch_tab(SidePanelTab.LOGS)

        await panel.reload()

        client.fetch_pod_logs.assert_not_called()


class TestSidePanelTabs:
    """Tests for tab availability."""

    def test_ml_metadata_hidden_for_v2(self) -> None:
        panel = SidePanelController(MagicMock(), progress=_quiet_progress())
        panel.update_snapshot(_snapshot(NodeStatus(id="a"), is_v2=True))

        assert panel.is_tab_available(SidePanelTab.ML_METADATA) is False
        assert SidePanelTab.ML_METADATA not in panel.available_tabs()

    @pytest.mark.asyncio
    async def test_manifest_only_for_resource_templates(self) -> None:
        workflow = {
            "status": {"nodes": {"a": {"templateName": "create-pvc"}, "b": {}}},
            "spec": {
                "templates": [
                    {"name": "create-pvc", "resource": {"manifest": "kind: PersistentVolumeClaim"}}
                ]
            },
        }
        panel = SidePanelController(MagicMock(), progress=_quiet_progress())
        panel.update_snapshot(
            _snapshot(NodeStatus(id="a"), NodeStatus(id="b"), workflow=workflow)
        )

        await panel.select("a")
        assert panel.is_tab_available(SidePanelTab.MANIFEST) is True
        assert panel.manifest() == [("resource", "kind: PersistentVolumeClaim")]

        await panel.select("b")
        assert panel.is_tab_available(SidePanelTab.MANIFEST) is False

    @pytest.mark.asyncio
    async def test_task_details_fields(self) -> None:
        panel = SidePanelController(MagicMock(), progress=_quiet_progress())
        panel.update_snapshot(
            _snapshot(
                NodeStatus(
                    id="a",
                    display_name="train",
                    phase=NodePhase.SUCCEEDED,
                    started_at="2024-01-01T00:00:00Z",
                    finished_at="2024-01-01T00:01:05Z",
                )
            )
        )
        await panel.select("a")

        fields = dict(panel.task_details_fields())

        assert fields["Task ID"] == "a"
        assert fields["Task name"] == "train"
        assert fields["Status"] == "Succeeded"
        assert fields["Duration"] == "0:01:05"


class TestSidePanelVisualizations:
    """Tests for the Visualizations tab."""

    @pytest.mark.asyncio
    async def test_completed_node_loads_output_configs(self) -> None:
        client = MagicMock()
        client.build_viewer_configs = AsyncMock(
            return_value=[ViewerConfig(type="roc", payload={"source": "s3://x"})]
        )
        panel = SidePanelController(client, progress=_quiet_progress())
        path = StoragePath(bucket="mlpipeline", key="artifacts/a/metadata.tgz")
        panel.update_snapshot(
            _snapshot(NodeStatus(id="a", phase=NodePhase.SUCCEEDED, output_paths=[path]))
        )
        await panel.switch_tab(SidePanelTab.VISUALIZATIONS)

        await panel.select("a")

        client.build_viewer_configs.assert_awaited_once_with(path, "team-a")
        assert panel.fanout_result is not None
        assert [item.type for item in panel.fanout_result.items] == ["roc"]
        assert panel.progress_state.real_progress == 100.0
        panel.close()

    @pytest.mark.asyncio
    async def test_running_node_yields_empty_result(self) -> None:
        client = MagicMock()
        client.build_viewer_configs = AsyncMock(return_value=[])
        panel = SidePanelController(client, progress=_quiet_progress())
        panel.update_snapshot(_snapshot(NodeStatus(id="a", phase=NodePhase.RUNNING)))
        await panel.switch_tab(SidePanelTab.VISUALIZATIONS)

        await panel.select("a")

        client.build_viewer_configs.assert_not_called()
        assert panel.fanout_result is not None
        assert panel.fanout_result.items == ()
        panel.close()

    @pytest.mark.asyncio
    async def test_reload_skips_unchanged_episode(self) -> None:
        client = MagicMock()
        client.build_viewer_configs = AsyncMock(return_value=[])
        panel = SidePanelController(client, progress=_quiet_progress())
        path = StoragePath(bucket="b", key="k")
        snapshot = _snapshot(NodeStatus(id="a", phase=NodePhase.SUCCEEDED, output_paths=[path]))
        panel.update_snapshot(snapshot)
        await panel.switch_tab(SidePanelTab.VISUALIZATIONS)
        await panel.select("a")

        panel.update_snapshot(snapshot)
        await panel.reload()

        assert client.build_viewer_configs.await_count == 1
        panel.close()

    @pytest.mark.asyncio
    async def test_reload_reissues_when_node_completes(self) -> None:
        client = MagicMock()
        client.build_viewer_configs = AsyncMock(return_value=[])
        panel = SidePanelController(client, progress=_quiet_progress())
        path = StoragePath(bucket="b", key="k")
        panel.update_snapshot(
            _snapshot(NodeStatus(id="a", phase=NodePhase.RUNNING, output_paths=[path]))
        )
        await panel.switch_tab(SidePanelTab.VISUALIZATIONS)
        await panel.select("a")
        client.build_viewer_configs.assert_not_called()

        panel.update_snapshot(
            _snapshot(NodeStatus(id="a", phase=NodePhase.SUCCEEDED, output_paths=[path]))
        )
        await panel.reload()

        client.build_viewer_configs.assert_awaited_once()
        panel.close()

    @pytest.mark.asyncio
    async def test_failed_task_emits_banner_and_keeps_siblings(self) -> None:
        good = ViewerConfig(type="table")
        client = MagicMock()
        client.build_viewer_configs = AsyncMock(side_effect=[TransportError("nope"), [good]])
        banner_sink = MagicMock()
        panel = SidePanelController(
            client, progress=_quiet_progress(), banner_sink=banner_sink
        )
        paths = [StoragePath(bucket="b", key="k1"), StoragePath(bucket="b", key="k2")]
        panel.update_snapshot(
            _snapshot(NodeStatus(id="a", phase=NodePhase.SUCCEEDED, output_paths=paths))
        )
        await panel.switch_tab(SidePanelTab.VISUALIZATIONS)

        await panel.select("a")

        assert panel.fanout_result is not None
        assert panel.fanout_result.items == (good,)
        notice = banner_sink.call_args.args[0]
        assert notice.mode is BannerMode.ERROR
        assert notice.message == VISUALIZATIONS_FAILED_MESSAGE
        panel.close()

    @pytest.mark.asyncio
    async def test_metadata_task_runs_first(self) -> None:
        execution = Execution(id="7", pod_name="a")
        metadata = MagicMock()
        metadata.build_execution_viewer_configs = AsyncMock(
            return_value=[ViewerConfig(type="metadata")]
        )
        client = MagicMock()
        client.build_viewer_configs = AsyncMock(return_value=[ViewerConfig(type="artifact")])
        panel = SidePanelController(
            client, metadata_client=metadata, progress=_quiet_progress()
        )
        panel.update_snapshot(
            _snapshot(
                NodeStatus(
                    id="a",
                    phase=NodePhase.SUCCEEDED,
                    output_paths=[StoragePath(bucket="b", key="k")],
                ),
                executions=[execution],
            )
        )
        await panel.switch_tab(SidePanelTab.VISUALIZATIONS)

        await panel.select("a")

        assert panel.fanout_result is not None
        assert [item.type for item in panel.fanout_result.items] == ["metadata", "artifact"]
        panel.close()


class TestGenerateVisualization:
    """Tests for generate_visualization()."""

    @pytest.mark.asyncio
    async def test_no_selection_emits_banner(self) -> None:
        banner_sink = MagicMock()
        panel = SidePanelController(
            MagicMock(), progress=_quiet_progress(), banner_sink=banner_sink
        )

        result = await panel.generate_visualization("{}", "gs://x", VisualizationType.ROC)

        assert result is None
        assert "no component selected" in banner_sink.call_args.args[0].message

    @pytest.mark.asyncio
    async def test_invalid_json_emits_banner(self) -> None:
        client = MagicMock()
        client.build_visualization = AsyncMock()
        banner_sink = MagicMock()
        panel = SidePanelController(
            client, progress=_quiet_progress(), banner_sink=banner_sink
        )
        panel.update_snapshot(_snapshot(NodeStatus(id="a", phase=NodePhase.SUCCEEDED)))
        await panel.select("a")

        result = await panel.generate_visualization("{not json", "gs://x", VisualizationType.ROC)

        assert result is None
        client.build_visualization.assert_not_called()
        assert "invalid JSON" in banner_sink.call_args.args[0].message

    @pytest.mark.asyncio
    async def test_success_appends_generated(self) -> None:
        config = ViewerConfig(type="web-app", payload={"htmlContent": "<p/>"})
        client = MagicMock()
        client.build_visualization = AsyncMock(return_value=config)
        panel = SidePanelController(client, progress=_quiet_progress())
        panel.update_snapshot(_snapshot(NodeStatus(id="a", phase=NodePhase.SUCCEEDED)))
        await panel.select("a")

        result = await panel.generate_visualization('{"x": 1}', "gs://x", VisualizationType.TABLE)

        assert result is not None
        assert panel.generated_for_selection() == (result,)
        assert panel.generating is False
        client.build_visualization.assert_awaited_once_with(
            '{"x": 1}', "gs://x", VisualizationType.TABLE, "team-a"
        )
