"""Tests for RunSessionController - refresh, commit and error banners."""

from __future__ import annotations

import asyncio
import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from pipewatch.constants.enums import BannerMode, NodePhase, SidePanelTab
from pipewatch.controllers.run.controller import RunSessionController
from pipewatch.controllers.run.parsers import encode_compressed_nodes
from pipewatch.controllers.run.progress import ProgressInterpolator
from pipewatch.controllers.run.side_panel import SidePanelController
from pipewatch.models.run import Execution, TransportError
from pipewatch.models.state.app_settings import PipewatchSettings
from pipewatch.models.visualization import ViewerConfig


def _raw_state(
    phase: str,
    nodes: dict[str, Any],
    *,
    message: str = "",
    compressed: bool = False,
) -> dict[str, Any]:
    status: dict[str, Any] = {"phase": phase, "message": message}
    if compressed:
        status["compressedNodes"] = encode_compressed_nodes(nodes)
    else:
        status["nodes"] = nodes
    workflow = {
        "metadata": {"name": "wf-1", "namespace": "team-a"},
        "spec": {"arguments": {"parameters": [{"name": "lr", "value": "0.1"}]}},
        "status": status,
    }
    return {
        "run": {"id": "run-1", "name": "nightly", "status": phase},
        "pipeline_runtime": {"workflow_manifest": json.dumps(workflow)},
    }


def _node(node_id: str, phase: str, **extra: Any) -> dict[str, Any]:
    return {"id": node_id, "displayName": node_id, "phase": phase, **extra}


def _client(*states: dict[str, Any]) -> MagicMock:
    client = MagicMock()
    client.fetch_run = AsyncMock(side_effect=list(states))
    client.fetch_experiment = AsyncMock(return_value={})
    client.fetch_pod_logs = AsyncMock(return_value="log line")
    client.build_viewer_configs = AsyncMock(return_value=[])
    client.are_custom_visualizations_allowed = AsyncMock(return_value=False)
    return client


def _controller(client: MagicMock, **kwargs: Any) -> RunSessionController:
    settings = kwargs.pop("settings", PipewatchSettings(refresh_interval=60))
    side_panel = SidePanelController(
        client,
        metadata_client=kwargs.get("metadata_client"),
        settings=settings,
        progress=ProgressInterpolator(frame_interval=0, complete_delay=0),
        banner_sink=kwargs.get("banner_sink"),
    )
    return RunSessionController(
        "run-1", client, settings=settings, side_panel=side_panel, **kwargs
    )


class TestRunSessionRefresh:
    """Tests for refresh() and the poll lifecycle."""

    @pytest.mark.asyncio
    async def test_running_to_succeeded_on_logs_tab(self) -> None:
        """Terminal tick stops polling and issues exactly one more log load."""
        client = _client(
            _raw_state("Running", {"train-1": _node("train-1", "Running")}),
            _raw_state("Succeeded", {"train-1": _node("train-1", "Succeeded")}),
        )
        controller = _controller(client)

        await controller.start()
        assert controller.scheduler.is_armed is True
        await controller.wait_for_loads()
        await controller.side_panel.switch_tab(SidePanelTab.LOGS)
        await controller.side_panel.select("train-1")
        log_loads = client.fetch_pod_logs.await_count

        await controller.reload()
        await controller.wait_for_loads()

        assert controller.run_finished is True
        assert controller.scheduler.is_terminated is True
        assert controller.scheduler.is_armed is False
        assert client.fetch_pod_logs.await_count == log_loads + 1

        await controller.resume()
        assert client.fetch_run.await_count == 2

    @pytest.mark.asyncio
    async def test_snapshot_is_built_from_run_payload(self) -> None:
        client = _client(
            _raw_state(
                "Running",
                {
                    "a": _node("a", "Succeeded", startedAt="2024-01-01T00:00:00Z"),
                    "b": _node("b", "Running"),
                },
            )
        )
        controller = _controller(client)

        finished = await controller.refresh()

        snapshot = controller.snapshot
        assert finished is False
        assert snapshot is not None
        assert snapshot.name == "nightly"
        assert snapshot.namespace == "team-a"
        assert set(snapshot.nodes) == {"a", "b"}
        assert dict(controller.run_parameters()) == {"lr": "0.1"}
        assert dict(controller.run_details_fields())["Workflow name"] == "wf-1"

    @pytest.mark.asyncio
    async def test_compressed_nodes_are_expanded(self) -> None:
        client = _client(
            _raw_state("Running", {"a": _node("a", "Running")}, compressed=True)
        )
        controller = _controller(client)

        await controller.refresh()

        assert controller.snapshot is not None
        assert controller.snapshot.nodes["a"].phase is NodePhase.RUNNING

    @pytest.mark.asyncio
    async def test_run_finished_latches(self) -> None:
        client = _client(
            _raw_state("Succeeded", {}),
            _raw_state("Running", {}),
        )
        controller = _controller(client)

        assert await controller.refresh() is True
        assert await controller.refresh() is True
        assert controller.run_finished is True


class TestRunSessionBanners:
    """Tests for page-level banners."""

    @pytest.mark.asyncio
    async def test_fetch_failure_emits_page_error_and_reraises(self) -> None:
        client = _client()
        client.fetch_run = AsyncMock(side_effect=TransportError("connection refused"))
        banner_sink = MagicMock()
        controller = _controller(client, banner_sink=banner_sink)

        with pytest.raises(TransportError):
            await controller.refresh()

        notices = [call.args[0] for call in banner_sink.call_args_list if call.args[0]]
        assert notices[-1].mode is BannerMode.ERROR
        assert notices[-1].message == "Error: failed to retrieve run: run-1."
        assert notices[-1].additional_info == "connection refused"
        assert notices[-1].retry is not None
        assert controller.snapshot is None

    @pytest.mark.asyncio
    async def test_scheduler_keeps_polling_after_fetch_failure(self) -> None:
        client = _client()
        client.fetch_run = AsyncMock(side_effect=TransportError("down"))
        controller = _controller(client)

        await controller.start()

        assert controller.scheduler.is_armed is True
        assert isinstance(controller.last_error, TransportError)
        controller.stop()

    @pytest.mark.asyncio
    async def test_terminated_run_is_warning(self) -> None:
        client = _client(_raw_state("Failed", {}, message="terminated"))
        banner_sink = MagicMock()
        controller = _controller(client, banner_sink=banner_sink)

        await controller.refresh()

        notice = banner_sink.call_args.args[0]
        assert notice.mode is BannerMode.WARNING
        assert notice.message == "This run was terminated"
        assert "terminated" in notice.additional_info

    @pytest.mark.asyncio
    async def test_workflow_error_is_error_with_retry(self) -> None:
        client = _client(_raw_state("Error", {}, message="pod deleted"))
        banner_sink = MagicMock()
        controller = _controller(client, banner_sink=banner_sink)

        await controller.refresh()

        notice = banner_sink.call_args.args[0]
        assert notice.mode is BannerMode.ERROR
        assert notice.message == "Error: found errors when executing run: run-1."
        assert notice.additional_info == "pod deleted"
        assert notice.retry is not None

    @pytest.mark.asyncio
    async def test_custom_visualization_check_failure_does_not_block_refresh(self) -> None:
        client = _client(_raw_state("Running", {}))
        client.are_custom_visualizations_allowed = AsyncMock(side_effect=TransportError("x"))
        banner_sink = MagicMock()
        controller = _controller(client, banner_sink=banner_sink)

        await controller.refresh()

        messages = [call.args[0].message for call in banner_sink.call_args_list if call.args[0]]
        assert "Error: Unable to enable custom visualizations." in messages
        assert controller.snapshot is not None

    @pytest.mark.asyncio
    async def test_refresh_clears_previous_banner(self) -> None:
        client = _client(_raw_state("Running", {}))
        banner_sink = MagicMock()
        controller = _controller(client, banner_sink=banner_sink)

        await controller.refresh()

        assert banner_sink.call_args_list[0].args == (None,)


class TestRunSessionOutputs:
    """Tests for outputs aggregation and deep links."""

    @pytest.mark.asyncio
    async def test_outputs_are_annotated_with_step_names(self) -> None:
        ui_metadata = {
            "outputs": {
                "artifacts": [
                    {"name": "mlpipeline-ui-metadata", "s3": {"bucket": "b", "key": "k"}}
                ]
            }
        }
        client = _client(
            _raw_state("Running", {"train": _node("train", "Succeeded", **ui_metadata)})
        )
        client.build_viewer_configs = AsyncMock(return_value=[ViewerConfig(type="roc")])
        controller = _controller(client)

        await controller.refresh()
        await controller.wait_for_loads()

        configs = controller.all_artifact_configs
        assert len(configs) == 1
        assert configs[0].step_name == "train"
        assert configs[0].config.type == "roc"

    @pytest.mark.asyncio
    async def test_failed_step_outputs_are_skipped(self) -> None:
        artifact = {
            "outputs": {
                "artifacts": [
                    {"name": "mlpipeline-ui-metadata", "s3": {"bucket": "b", "key": "k"}}
                ]
            }
        }
        client = _client(
            _raw_state(
                "Running",
                {
                    "a": _node("a", "Succeeded", **artifact),
                    "b": _node("b", "Succeeded", **artifact),
                },
            )
        )
        client.build_viewer_configs = AsyncMock(
            side_effect=[TransportError("gone"), [ViewerConfig(type="table")]]
        )
        controller = _controller(client)

        await controller.refresh()
        await controller.wait_for_loads()

        assert [item.config.type for item in controller.all_artifact_configs] == ["table"]

    @pytest.mark.asyncio
    async def test_execution_deep_link_selects_node(self) -> None:
        metadata = MagicMock()
        metadata.get_execution_context = AsyncMock(return_value="ctx")
        metadata.list_executions_for_context = AsyncMock(
            return_value=[Execution(id="7", pod_name="train-1")]
        )
        client = _client(_raw_state("Running", {"train-1": _node("train-1", "Running")}))
        controller = _controller(client, metadata_client=metadata, execution_id="7")

        await controller.refresh()
        await controller.wait_for_loads()

        assert controller.side_panel.selection.node_id == "train-1"

    @pytest.mark.asyncio
    async def test_metadata_failure_is_best_effort(self) -> None:
        metadata = MagicMock()
        metadata.get_execution_context = AsyncMock(side_effect=RuntimeError("no mlmd"))
        client = _client(_raw_state("Running", {"a": _node("a", "Running")}))
        controller = _controller(client, metadata_client=metadata)

        await controller.refresh()

        assert controller.snapshot is not None
        assert controller.snapshot.executions is None


class TestRunSessionBackgroundLoads:
    """Side-panel and outputs loads run beside the tick, never inside it."""

    @pytest.mark.asyncio
    async def test_polling_continues_while_log_fetch_hangs(self) -> None:
        running = _raw_state("Running", {"train-1": _node("train-1", "Running")})
        client = _client(
            running,
            running,
            running,
            _raw_state("Succeeded", {"train-1": _node("train-1", "Succeeded")}),
        )
        controller = _controller(client)
        await controller.start()
        await controller.side_panel.switch_tab(SidePanelTab.LOGS)
        await controller.side_panel.select("train-1")

        release = asyncio.Event()

        async def hanging_logs(*_args: Any) -> str:
            await release.wait()
            return "late log line"

        client.fetch_pod_logs = AsyncMock(side_effect=hanging_logs)

        await asyncio.wait_for(controller.reload(), timeout=1)
        await asyncio.wait_for(controller.reload(), timeout=1)
        assert client.fetch_run.await_count == 3
        assert controller.scheduler.is_armed is True

        await asyncio.wait_for(controller.reload(), timeout=1)
        assert controller.run_finished is True
        assert controller.scheduler.is_terminated is True

        release.set()
        await asyncio.wait_for(controller.wait_for_loads(), timeout=1)
        details = controller.side_panel.node_details
        assert details is not None
        assert details.logs == "late log line"

    @pytest.mark.asyncio
    async def test_failed_background_load_is_logged(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        client = _client(_raw_state("Running", {}))
        controller = _controller(client)
        controller.side_panel.reload = AsyncMock(side_effect=RuntimeError("boom"))

        await controller.refresh()
        await controller.wait_for_loads()

        assert "boom" in caplog.text
        assert controller.snapshot is not None


class TestCustomVisualizationsFlag:
    """The custom visualizations flag is fetched once per session."""

    @pytest.mark.asyncio
    async def test_flag_is_fetched_once(self) -> None:
        client = _client(_raw_state("Running", {}), _raw_state("Running", {}))
        client.are_custom_visualizations_allowed = AsyncMock(return_value=True)
        controller = _controller(client)

        await controller.refresh()
        await controller.refresh()

        assert controller.allow_custom_visualizations is True
        assert client.are_custom_visualizations_allowed.await_count == 1

    @pytest.mark.asyncio
    async def test_failed_check_is_not_repeated(self) -> None:
        client = _client(_raw_state("Running", {}), _raw_state("Running", {}))
        client.are_custom_visualizations_allowed = AsyncMock(side_effect=TransportError("x"))
        controller = _controller(client)

        await controller.refresh()
        await controller.refresh()

        assert controller.allow_custom_visualizations is False
        assert client.are_custom_visualizations_allowed.await_count == 1
