"""Run session controller - top-level owner of one viewing session.

Each poll tick fetches the run, commits a fresh RunSnapshot and then starts
background tasks that re-issue the side panel's active tab and refresh the
aggregate outputs list. The tick does not wait for them. The scheduler stops
for good once the run reaches a terminal phase.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from pipewatch.constants.enums import BannerMode
from pipewatch.controllers.base import BaseController, BannerSink, ChangeListener
from pipewatch.controllers.run.fetchers.base import MetadataClient, RunServiceClient
from pipewatch.controllers.run.parsers import TERMINATED_MARKER, WorkflowParser
from pipewatch.controllers.run.poll_scheduler import PollScheduler
from pipewatch.controllers.run.side_panel import SidePanelController
from pipewatch.models.run import (
    BannerNotice,
    DecodeError,
    Execution,
    ExperimentMeta,
    RunSnapshot,
    StoragePath,
)
from pipewatch.models.state.app_settings import PipewatchSettings
from pipewatch.models.visualization import AnnotatedConfig, ProgressState
from pipewatch.utils.formatting import MISSING_VALUE, format_date_string, format_duration

logger = logging.getLogger(__name__)


class RunSessionController(BaseController):
    """Polls one run and keeps the snapshot, side panel and outputs in sync."""

    def __init__(
        self,
        run_id: str,
        client: RunServiceClient,
        *,
        metadata_client: MetadataClient | None = None,
        settings: PipewatchSettings | None = None,
        execution_id: str | None = None,
        side_panel: SidePanelController | None = None,
        on_progress: Callable[[ProgressState], None] | None = None,
        banner_sink: BannerSink | None = None,
        on_change: ChangeListener | None = None,
    ) -> None:
        """Initialize the run session.

        Args:
            run_id: Run to monitor
            client: Run service client
            metadata_client: Optional execution metadata source
            settings: Application settings (refresh interval, namespace, GKE)
            execution_id: Execution to open in the side panel once known
            side_panel: Side panel override (tests)
            on_progress: Receives visualization progress frames
            banner_sink: Receives page and panel banner notices
            on_change: Called after every state replacement
        """
        super().__init__(banner_sink=banner_sink, on_change=on_change)
        self._run_id = run_id
        self._client = client
        self._metadata_client = metadata_client
        self._settings = settings or PipewatchSettings()
        self._pending_execution_id = execution_id

        self._side_panel = side_panel or SidePanelController(
            client,
            metadata_client=metadata_client,
            settings=self._settings,
            on_progress=on_progress,
            banner_sink=banner_sink,
            on_change=on_change,
        )
        self._scheduler = PollScheduler(
            self.refresh,
            interval=self._settings.refresh_interval,
            on_error=self._on_tick_error,
        )

        self._snapshot: RunSnapshot | None = None
        self._run_finished = False
        self._allow_custom_visualizations = False
        self._custom_visualizations_checked = False
        self._background_loads: set[asyncio.Task[None]] = set()
        self._all_artifact_configs: tuple[AnnotatedConfig, ...] = ()
        self._last_error: Exception | None = None
        self.last_load_ms = 0.0

    # =========================================================================
    # Exposed state
    # =========================================================================

    @property
    def run_id(self) -> str:
        return self._run_id

    @property
    def snapshot(self) -> RunSnapshot | None:
        return self._snapshot

    @property
    def run_finished(self) -> bool:
        return self._run_finished

    @property
    def side_panel(self) -> SidePanelController:
        return self._side_panel

    @property
    def scheduler(self) -> PollScheduler:
        return self._scheduler

    @property
    def allow_custom_visualizations(self) -> bool:
        return self._allow_custom_visualizations

    @property
    def all_artifact_configs(self) -> tuple[AnnotatedConfig, ...]:
        return self._all_artifact_configs

    @property
    def last_error(self) -> Exception | None:
        return self._last_error

    # =========================================================================
    # Lifecycle pass-throughs
    # =========================================================================

    async def start(self) -> None:
        await self._scheduler.start()

    async def resume(self) -> None:
        await self._scheduler.resume()

    def suspend(self) -> None:
        self._scheduler.suspend()

    def stop(self) -> None:
        self._scheduler.stop()

    async def reload(self) -> None:
        """Manual refresh. Failures are already reported through the banner."""
        await self._scheduler.poll_now()

    # =========================================================================
    # Refresh
    # =========================================================================

    async def refresh(self) -> bool:
        """Fetch and commit the run. Returns whether the run has finished.

        Raises:
            Exception: Whatever the run fetch raised, after the page banner is
                emitted. The scheduler logs it and keeps polling.
        """
        self._mark_load_started()
        self._clear_banner()
        await self._load_custom_visualizations_flag()

        try:
            raw_state = await self._client.fetch_run(self._run_id)
            experiment = await self._fetch_experiment(raw_state)
        except Exception as exc:
            self._report_page_error(exc)
            raise

        await self.on_tick(raw_state, experiment=experiment)
        self.last_load_ms = self._load_duration_ms()
        logger.debug("Refreshed run %s in %.0fms", self._run_id, self.last_load_ms)
        return self._run_finished

    async def on_tick(
        self,
        raw_state: dict[str, Any],
        *,
        experiment: ExperimentMeta | None = None,
    ) -> RunSnapshot:
        """Merge a fetched run state into a new snapshot and re-issue loads."""
        try:
            workflow = WorkflowParser.parse_manifest(raw_state)
        except DecodeError as exc:
            self._report_page_error(exc)
            raise
        workflow = WorkflowParser.expand_compressed_nodes(workflow)

        self._report_workflow_error(workflow)
        executions = await self._load_executions(workflow)

        snapshot = WorkflowParser.build_snapshot(
            self._run_id,
            raw_state,
            workflow,
            experiment=experiment,
            executions=executions,
        )
        self._commit(snapshot)

        # Tab and outputs loads run detached so a slow fetch never holds the tick
        deep_linked_node = self._take_deep_linked_node(executions)
        if deep_linked_node:
            self._start_background_load(
                self._side_panel.select(deep_linked_node), name="side-panel-select"
            )
        else:
            self._start_background_load(self._side_panel.reload(), name="side-panel-reload")
        self._start_background_load(self._load_all_outputs(snapshot), name="all-outputs")
        return snapshot

    async def wait_for_loads(self) -> None:
        """Wait until every load started by previous ticks has settled."""
        while self._background_loads:
            await asyncio.gather(*self._background_loads, return_exceptions=True)

    def _start_background_load(self, load: Coroutine[Any, Any, None], *, name: str) -> None:
        task = asyncio.create_task(load, name=f"{name}-{self._run_id}")
        self._background_loads.add(task)
        task.add_done_callback(self._on_background_load_done)

    def _on_background_load_done(self, task: asyncio.Task[None]) -> None:
        self._background_loads.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background load %s failed: %s", task.get_name(), exc)

    def _commit(self, snapshot: RunSnapshot) -> None:
        self._snapshot = snapshot
        if snapshot.is_finished and not self._run_finished:
            logger.info("Run %s finished with phase %s", self._run_id, snapshot.phase.value)
            self._run_finished = True
        self._last_error = None
        self._side_panel.update_snapshot(snapshot)
        self._notify_changed()

    # =========================================================================
    # Refresh steps
    # =========================================================================

    async def _load_custom_visualizations_flag(self) -> None:
        if self._custom_visualizations_checked:
            return
        # Checked once per session, a failure leaves custom visualizations off
        self._custom_visualizations_checked = True
        try:
            self._allow_custom_visualizations = (
                await self._client.are_custom_visualizations_allowed()
            )
        except Exception as exc:
            logger.warning("Custom visualization check failed: %s", exc)
            self._emit_banner(
                BannerNotice(
                    mode=BannerMode.ERROR,
                    message="Error: Unable to enable custom visualizations.",
                    additional_info=str(exc),
                )
            )

    async def _fetch_experiment(self, raw_state: dict[str, Any]) -> ExperimentMeta | None:
        experiment_id = WorkflowParser.experiment_id(raw_state)
        if not experiment_id:
            return None
        raw_experiment = await self._client.fetch_experiment(experiment_id)
        return WorkflowParser.parse_experiment(raw_experiment)

    def _report_workflow_error(self, workflow: dict[str, Any]) -> None:
        workflow_error = WorkflowParser.get_workflow_error(workflow)
        if not workflow_error:
            return
        if workflow_error.strip() == TERMINATED_MARKER:
            notice = BannerNotice(
                mode=BannerMode.WARNING,
                message="This run was terminated",
                additional_info=(
                    f"This run's workflow included the following message: {workflow_error}"
                ),
            )
        else:
            notice = BannerNotice(
                mode=BannerMode.ERROR,
                message=f"Error: found errors when executing run: {self._run_id}.",
                additional_info=workflow_error,
                retry=self.reload,
            )
        self._emit_banner(notice)

    async def _load_executions(self, workflow: dict[str, Any]) -> list[Execution] | None:
        if self._metadata_client is None:
            return None
        try:
            context = await self._metadata_client.get_execution_context(workflow, self._run_id)
            return await self._metadata_client.list_executions_for_context(context)
        except Exception as exc:
            # Metadata only exists for some pipelines
            logger.warning("Execution metadata unavailable for run %s: %s", self._run_id, exc)
            return None

    def _take_deep_linked_node(self, executions: list[Execution] | None) -> str | None:
        execution_id = self._pending_execution_id
        if not execution_id or not executions:
            return None
        for execution in executions:
            if execution.id == execution_id and execution.pod_name:
                self._pending_execution_id = None
                return execution.pod_name
        return None

    async def _load_all_outputs(self, snapshot: RunSnapshot) -> None:
        namespace = snapshot.namespace or self._settings.namespace
        paths = WorkflowParser.load_all_output_paths_with_step_names(snapshot)
        config_lists = await asyncio.gather(
            *(self._load_step_outputs(step, path, namespace) for step, path in paths)
        )
        if self._snapshot is not snapshot:
            return
        self._all_artifact_configs = tuple(
            config for configs in config_lists for config in configs
        )
        self._notify_changed()

    async def _load_step_outputs(
        self, step_name: str, path: StoragePath, namespace: str
    ) -> list[AnnotatedConfig]:
        try:
            configs = await self._client.build_viewer_configs(path, namespace)
        except Exception as exc:
            logger.warning("Skipping outputs of %s at %s: %s", step_name, path.key, exc)
            return []
        return [AnnotatedConfig(config=config, step_name=step_name) for config in configs]

    # =========================================================================
    # Errors
    # =========================================================================

    def _report_page_error(self, exc: Exception) -> None:
        logger.error("Error loading run %s: %s", self._run_id, exc)
        self._last_error = exc
        self._emit_banner(
            BannerNotice(
                mode=BannerMode.ERROR,
                message=f"Error: failed to retrieve run: {self._run_id}.",
                additional_info=str(exc),
                retry=self.reload,
            )
        )
        self._notify_changed()

    def _on_tick_error(self, exc: Exception) -> None:
        self._last_error = exc

    # =========================================================================
    # Run details
    # =========================================================================

    def run_details_fields(self) -> list[tuple[str, str]]:
        snapshot = self._snapshot
        if snapshot is None:
            return []
        return [
            ("Run ID", snapshot.run_id or MISSING_VALUE),
            ("Workflow name", snapshot.workflow_name or MISSING_VALUE),
            ("Status", snapshot.phase.value),
            ("Description", snapshot.description),
            ("Created at", format_date_string(snapshot.created_at)),
            ("Started at", format_date_string(snapshot.started_at)),
            ("Finished at", format_date_string(snapshot.finished_at)),
            ("Duration", format_duration(snapshot.started_at, snapshot.finished_at)),
        ]

    def run_parameters(self) -> list[tuple[str, str]]:
        if self._snapshot is None:
            return []
        return WorkflowParser.get_parameters(self._snapshot.workflow)


__all__ = ["RunSessionController"]
