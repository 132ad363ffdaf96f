"""SidePanelController - node selection, detail tabs and their lazy loads.

Every selection, tab switch and close bumps a load generation. A load captures
the generation it was issued under and applies its result only if that
generation is still current when it settles, so the last selection always
wins regardless of completion order. No in-flight fetch is ever cancelled.

Visualizations additionally run as episodes keyed by (node, execution, node
completed, namespace). A new episode marks the previous one aborted and
resets progress to zero.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from functools import partial

from pipewatch.constants.enums import (
    COMPLETED_NODE_PHASES,
    NO_LOGS_PHASES,
    SIDE_PANEL_TABS,
    BannerMode,
    NodePhase,
    SidePanelTab,
    VisualizationType,
)
from pipewatch.constants.limits import PROGRESS_MAX
from pipewatch.controllers.base import BaseController, BannerSink, ChangeListener
from pipewatch.controllers.run.fanout_loader import AsyncFanoutLoader, FanoutTask
from pipewatch.controllers.run.fetchers.base import (
    MetadataClient,
    ProgressSink,
    RunServiceClient,
)
from pipewatch.controllers.run.parsers import WorkflowParser
from pipewatch.controllers.run.progress import ProgressInterpolator
from pipewatch.models.run import (
    BannerNotice,
    NodeDetails,
    NodeSelection,
    NodeStatus,
    RunNotFoundError,
    RunSnapshot,
    StoragePath,
)
from pipewatch.models.state.app_settings import PipewatchSettings
from pipewatch.models.visualization import (
    FanoutResult,
    GeneratedVisualization,
    ProgressState,
    ViewerConfig,
)
from pipewatch.utils.formatting import MISSING_VALUE, format_date_string, format_duration

logger = logging.getLogger(__name__)

LOGS_FAILED_MESSAGE = "Failed to retrieve pod logs."
LOGS_STACKDRIVER_SUFFIX = " Use Stackdriver Kubernetes Monitoring to view them."
LOGS_POD_GONE_REASONS = (
    "Possible reasons include pod garbage collection, cluster autoscaling and "
    "pod preemption. "
)
VISUALIZATIONS_FAILED_MESSAGE = "Error: failed to load visualizations."

STACKDRIVER_LOGS_URL = (
    "https://console.cloud.google.com/logs/viewer?project={project}"
    "&interval=NO_LIMIT&advancedFilter=resource.type%3D\"k8s_container\"%0A"
    "resource.labels.cluster_name:\"{cluster}\"%0A"
    "resource.labels.pod_name:\"{pod}\""
)

EpisodeKey = tuple[str, str | None, bool, str]
TabPredicate = Callable[[RunSnapshot | None, str | None], bool]


def _always(_snapshot: RunSnapshot | None, _node_id: str | None) -> bool:
    return True


def _metadata_supported(snapshot: RunSnapshot | None, _node_id: str | None) -> bool:
    return snapshot is None or not snapshot.is_v2


def _has_manifest(snapshot: RunSnapshot | None, node_id: str | None) -> bool:
    if snapshot is None or not node_id:
        return False
    return bool(WorkflowParser.get_node_manifest(snapshot.workflow, node_id))


TAB_AVAILABILITY: dict[SidePanelTab, TabPredicate] = {
    SidePanelTab.INPUT_OUTPUT: _always,
    SidePanelTab.VISUALIZATIONS: _always,
    SidePanelTab.TASK_DETAILS: _always,
    SidePanelTab.VOLUMES: _always,
    SidePanelTab.LOGS: _always,
    SidePanelTab.POD: _always,
    SidePanelTab.EVENTS: _always,
    SidePanelTab.ML_METADATA: _metadata_supported,
    SidePanelTab.MANIFEST: _has_manifest,
}


@dataclass
class _VisualizationEpisode:
    key: EpisodeKey
    generation: int
    aborted: bool = False


class SidePanelController(BaseController):
    """Owns NodeSelection and dispatches the loads of the active tab."""

    def __init__(
        self,
        client: RunServiceClient,
        *,
        metadata_client: MetadataClient | None = None,
        settings: PipewatchSettings | None = None,
        progress: ProgressInterpolator | None = None,
        on_progress: Callable[[ProgressState], None] | None = None,
        banner_sink: BannerSink | None = None,
        on_change: ChangeListener | None = None,
    ) -> None:
        """Initialize the side panel controller.

        Args:
            client: Run service used for logs, artifacts and visualizations
            metadata_client: Optional execution metadata source
            settings: Settings providing the fallback namespace and GKE metadata
            progress: Progress interpolator override (tests)
            on_progress: Receives every animated progress frame
            banner_sink: Receives banner notices
            on_change: Called after every state replacement
        """
        super().__init__(banner_sink=banner_sink, on_change=on_change)
        self._client = client
        self._metadata_client = metadata_client
        self._settings = settings or PipewatchSettings()
        self._progress = progress or ProgressInterpolator(
            self._on_progress_complete, on_frame=on_progress
        )

        self._snapshot: RunSnapshot | None = None
        self._selection = NodeSelection()
        self._generation = 0
        self._node_details: NodeDetails | None = None
        self._logs_banner: BannerNotice | None = None
        self._busy = False

        self._episode: _VisualizationEpisode | None = None
        self._fanout_result: FanoutResult | None = None
        self._generated: tuple[GeneratedVisualization, ...] = ()
        self._generating = False

    def set_progress_listener(
        self, on_progress: Callable[[ProgressState], None] | None
    ) -> None:
        """Attach the listener receiving animated progress frames."""
        self._progress.set_frame_listener(on_progress)

    # =========================================================================
    # Exposed state
    # =========================================================================

    @property
    def snapshot(self) -> RunSnapshot | None:
        return self._snapshot

    @property
    def selection(self) -> NodeSelection:
        return self._selection

    @property
    def current_generation(self) -> int:
        return self._generation

    @property
    def node_details(self) -> NodeDetails | None:
        return self._node_details

    @property
    def logs_banner(self) -> BannerNotice | None:
        return self._logs_banner

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def fanout_result(self) -> FanoutResult | None:
        return self._fanout_result

    @property
    def progress_state(self) -> ProgressState:
        return self._progress.state

    @property
    def visualizations_loaded(self) -> bool:
        return self._progress.state.completed

    @property
    def generating(self) -> bool:
        return self._generating

    @property
    def generated_visualizations(self) -> tuple[GeneratedVisualization, ...]:
        return self._generated

    @property
    def namespace(self) -> str:
        if self._snapshot is not None and self._snapshot.namespace:
            return self._snapshot.namespace
        return self._settings.namespace

    def selected_node(self) -> NodeStatus | None:
        if self._snapshot is None:
            return None
        return self._snapshot.node(self._selection.node_id)

    def is_tab_available(self, tab: SidePanelTab) -> bool:
        return TAB_AVAILABILITY[tab](self._snapshot, self._selection.node_id)

    def available_tabs(self) -> tuple[SidePanelTab, ...]:
        """Return the tabs to render for the current snapshot and selection."""
        return tuple(tab for tab in SIDE_PANEL_TABS if self.is_tab_available(tab))

    def generated_for_selection(self) -> tuple[GeneratedVisualization, ...]:
        node_id = self._selection.node_id
        return tuple(item for item in self._generated if item.node_id == node_id)

    # =========================================================================
    # Selection lifecycle
    # =========================================================================

    async def select(self, node_id: str) -> None:
        """Open the panel on a node, keeping the active tab."""
        self._selection = NodeSelection(node_id=node_id, tab=self._selection.tab)
        self._node_details = NodeDetails(node_id=node_id)
        self._logs_banner = None
        self._busy = False
        self._abort_episode()
        generation = self._bump_generation()
        self._refresh_node_details()
        self._notify_changed()
        await self._load_active_tab(generation)

    async def switch_tab(self, tab: SidePanelTab) -> None:
        """Activate a tab for the selected node."""
        self._selection = replace(self._selection, tab=tab)
        self._busy = False
        self._abort_episode()
        generation = self._bump_generation()
        self._notify_changed()
        await self._load_active_tab(generation)

    def close(self) -> None:
        """Clear the selection. In-flight loads become stale."""
        self._selection = NodeSelection(tab=self._selection.tab)
        self._node_details = None
        self._logs_banner = None
        self._busy = False
        self._bump_generation()
        self._abort_episode()
        self._progress.reset()
        self._notify_changed()

    def update_snapshot(self, snapshot: RunSnapshot) -> None:
        """Replace the held snapshot and re-derive node details."""
        self._snapshot = snapshot
        self._refresh_node_details()

    async def reload(self) -> None:
        """Re-issue the active tab's load against the latest snapshot.

        Logs are always fetched again. Visualizations are re-issued only when
        the episode key changed since the last load.
        """
        selection = self._selection
        if not selection.is_open or self._snapshot is None:
            return
        self._refresh_node_details()

        tab = selection.tab
        if not self.is_tab_available(tab) or not tab.requires_fetch:
            self._notify_changed()
            return
        if (
            tab is SidePanelTab.VISUALIZATIONS
            and self._episode is not None
            and self._episode.key == self._episode_key()
        ):
            self._notify_changed()
            return

        generation = self._bump_generation()
        await self._load_active_tab(generation)

    # =========================================================================
    # Tab loads
    # =========================================================================

    def _bump_generation(self) -> int:
        self._generation += 1
        return self._generation

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def _load_active_tab(self, generation: int) -> None:
        selection = self._selection
        if not selection.is_open or self._snapshot is None:
            return
        tab = selection.tab
        if not self.is_tab_available(tab):
            logger.debug("Tab %s unavailable for node %s", tab.value, selection.node_id)
            return

        if tab is SidePanelTab.LOGS:
            await self._load_logs(generation)
        elif tab is SidePanelTab.VISUALIZATIONS:
            await self._load_visualizations(generation)

    def _refresh_node_details(self) -> None:
        node_id = self._selection.node_id
        if not node_id:
            return
        node = self.selected_node()
        previous = self._node_details
        logs = previous.logs if previous is not None and previous.node_id == node_id else None
        if node is None:
            self._node_details = NodeDetails(node_id=node_id, logs=logs)
            return

        phase_message = (
            f"This step is in {node.phase.value} state with this message: {node.message}"
            if node.message
            else None
        )
        banner_mode = (
            BannerMode.ERROR
            if node.phase in (NodePhase.ERROR, NodePhase.FAILED)
            else BannerMode.INFO
        )
        self._node_details = NodeDetails(
            node_id=node_id,
            phase=node.phase,
            phase_message=phase_message,
            banner_mode=banner_mode,
            logs=logs,
        )

    async def _load_logs(self, generation: int) -> None:
        node = self.selected_node()
        snapshot = self._snapshot
        if node is None or snapshot is None:
            return

        if node.phase in NO_LOGS_PHASES:
            self._logs_banner = None
            if self._node_details is not None:
                self._node_details = replace(self._node_details, logs=None)
            self._notify_changed()
            return

        self._busy = True
        self._notify_changed()
        logs: str | None = None
        banner: BannerNotice | None = None
        try:
            logs = await self._client.fetch_pod_logs(snapshot.run_id, node.id, self.namespace)
        except Exception as exc:
            logger.warning("Log fetch for %s failed: %s", node.id, exc)
            banner = self._log_failure_banner(exc)

        if not self._is_current(generation):
            logger.debug("Dropping stale log load for %s (generation %d)", node.id, generation)
            return

        self._busy = False
        self._logs_banner = banner
        if self._node_details is not None and self._node_details.node_id == node.id:
            self._node_details = replace(self._node_details, logs=logs)
        self._notify_changed()

    def _log_failure_banner(self, exc: Exception) -> BannerNotice:
        error_message = str(exc)
        message = LOGS_FAILED_MESSAGE
        additional_info = ""
        if isinstance(exc, RunNotFoundError) or error_message == "pod not found":
            mode = BannerMode.INFO
            if self._settings.gke_project_id:
                message += LOGS_STACKDRIVER_SUFFIX
            additional_info = LOGS_POD_GONE_REASONS
        else:
            mode = BannerMode.ERROR
        additional_info += f"Error response: {error_message}"
        return BannerNotice(
            mode=mode,
            message=message,
            additional_info=additional_info,
            retry=self.reload,
        )

    def _episode_key(self) -> EpisodeKey:
        node_id = self._selection.node_id or ""
        node = self.selected_node()
        execution = self._snapshot.execution_for_node(node_id) if self._snapshot else None
        completed = node is not None and node.phase in COMPLETED_NODE_PHASES
        return (node_id, execution.id if execution else None, completed, self.namespace)

    def _abort_episode(self) -> None:
        if self._episode is not None:
            self._episode.aborted = True
            self._episode = None

    async def _load_visualizations(self, generation: int) -> None:
        key = self._episode_key()
        self._abort_episode()
        episode = _VisualizationEpisode(key=key, generation=generation)
        self._episode = episode
        self._fanout_result = None
        self._progress.reset()
        self._notify_changed()

        node = self.selected_node()
        node_completed = key[2]
        if node is None or not node_completed:
            self._fanout_result = FanoutResult()
            self._progress.update(PROGRESS_MAX)
            self._notify_changed()
            return

        def report_progress(value: float) -> None:
            if not episode.aborted:
                self._progress.update(value)

        def report_error(exc: Exception) -> None:
            if episode.aborted:
                return
            self._emit_banner(
                BannerNotice(
                    mode=BannerMode.ERROR,
                    message=VISUALIZATIONS_FAILED_MESSAGE,
                    additional_info=str(exc),
                )
            )

        tasks = self._visualization_tasks(node)
        loader = AsyncFanoutLoader(error_sink=report_error)
        result = await loader.run(tasks, progress_sink=report_progress)

        if episode.aborted or not self._is_current(generation):
            logger.debug("Dropping stale visualization episode for %s", key[0])
            return
        self._fanout_result = result
        self._notify_changed()

    def _visualization_tasks(self, node: NodeStatus) -> list[FanoutTask]:
        namespace = self.namespace
        tasks: list[FanoutTask] = []
        execution = self._snapshot.execution_for_node(node.id) if self._snapshot else None
        if execution is not None and self._metadata_client is not None:
            tasks.append(
                partial(
                    self._metadata_client.build_execution_viewer_configs,
                    execution,
                    namespace,
                )
            )
        for path in node.output_paths:
            tasks.append(partial(self._build_path_configs, path, namespace))
        return tasks

    async def _build_path_configs(
        self, path: StoragePath, namespace: str, _sink: ProgressSink
    ) -> list[ViewerConfig]:
        return await self._client.build_viewer_configs(path, namespace)

    def _on_progress_complete(self) -> None:
        self._notify_changed()

    # =========================================================================
    # Generated visualizations
    # =========================================================================

    async def generate_visualization(
        self,
        arguments: str,
        source: str,
        visualization_type: VisualizationType,
    ) -> GeneratedVisualization | None:
        """Build a visualization for the selected node on demand.

        Failures are reported as error banners and yield None.
        """
        node_id = self._selection.node_id
        if not node_id:
            self._emit_banner(
                BannerNotice(
                    mode=BannerMode.ERROR,
                    message="Unable to generate visualization, no component selected.",
                )
            )
            return None

        if arguments:
            try:
                json.loads(arguments)
            except json.JSONDecodeError as exc:
                self._emit_banner(
                    BannerNotice(
                        mode=BannerMode.ERROR,
                        message="Unable to generate visualization, invalid JSON provided.",
                        additional_info=str(exc),
                    )
                )
                return None

        self._generating = True
        self._notify_changed()
        try:
            config = await self._client.build_visualization(
                arguments, source, visualization_type, self.namespace
            )
        except Exception as exc:
            logger.warning("Visualization build for %s failed: %s", node_id, exc)
            self._emit_banner(
                BannerNotice(
                    mode=BannerMode.ERROR,
                    message="Unable to generate visualization, an unexpected error was encountered.",
                    additional_info=str(exc),
                )
            )
            return None
        finally:
            self._generating = False

        generated = GeneratedVisualization(node_id=node_id, config=config)
        self._generated = (*self._generated, generated)
        self._notify_changed()
        return generated

    # =========================================================================
    # Synchronous tab content
    # =========================================================================

    def stackdriver_logs_url(self) -> str:
        """Return the Stackdriver logs link for the selected pod, or ''."""
        project = self._settings.gke_project_id
        cluster = self._settings.gke_cluster_name
        node_id = self._selection.node_id
        if not (project and cluster and node_id):
            return ""
        return STACKDRIVER_LOGS_URL.format(project=project, cluster=cluster, pod=node_id)

    def task_details_fields(self) -> list[tuple[str, str]]:
        node = self.selected_node()
        if node is None:
            return []
        return [
            ("Task ID", node.id or MISSING_VALUE),
            ("Task name", node.display_name or MISSING_VALUE),
            ("Status", node.phase.value),
            ("Started at", format_date_string(node.started_at)),
            ("Finished at", format_date_string(node.finished_at)),
            ("Duration", format_duration(node.started_at, node.finished_at)),
        ]

    def volumes(self) -> list[tuple[str, str]]:
        node_id = self._selection.node_id
        if self._snapshot is None or not node_id:
            return []
        return WorkflowParser.get_node_volume_mounts(self._snapshot.workflow, node_id)

    def manifest(self) -> list[tuple[str, str]]:
        node_id = self._selection.node_id
        if self._snapshot is None or not node_id:
            return []
        return WorkflowParser.get_node_manifest(self._snapshot.workflow, node_id)


__all__ = [
    "LOGS_FAILED_MESSAGE",
    "TAB_AVAILABILITY",
    "SidePanelController",
]
