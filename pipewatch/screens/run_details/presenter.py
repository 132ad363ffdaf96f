"""Run details presenter - turns controller state into table rows and renderables."""

from __future__ import annotations

import logging
from typing import Any

from rich.console import RenderableType
from rich.table import Table
from rich.text import Text
from textual.message import Message

from pipewatch.constants.enums import (
    COMPLETED_NODE_PHASES,
    SIDE_PANEL_TABS,
    BannerMode,
    SidePanelTab,
)
from pipewatch.constants.limits import MAX_LOG_LINES_DISPLAY
from pipewatch.controllers.run.controller import RunSessionController
from pipewatch.models.run import BannerNotice, NodeArtifact
from pipewatch.models.visualization import ProgressState, ViewerConfig
from pipewatch.screens.run_details.config import (
    EMPTY_TAB_MESSAGE,
    NO_LOGS_MESSAGE,
    NO_VISUALIZATIONS_MESSAGE,
    NOT_COMPLETED_MESSAGE,
)
from pipewatch.utils.formatting import MISSING_VALUE, format_date_string, format_duration

logger = logging.getLogger(__name__)


# =============================================================================
# Controller Messages
# =============================================================================


class RunStateChanged(Message):
    """Message indicating the run session or side panel state was replaced."""


class BannerRaised(Message):
    """Message carrying a banner notice, or None to clear the page banner."""

    def __init__(self, notice: BannerNotice | None) -> None:
        super().__init__()
        self.notice = notice


class VisualizationProgress(Message):
    """Message carrying one animated progress frame."""

    def __init__(self, state: ProgressState) -> None:
        super().__init__()
        self.state = state


_BANNER_STYLES: dict[BannerMode, str] = {
    BannerMode.ERROR: "bold white on red",
    BannerMode.WARNING: "bold black on yellow",
    BannerMode.INFO: "bold white on blue",
}

_PHASE_STYLES: dict[str, str] = {
    "Succeeded": "green",
    "Cached": "green",
    "Running": "cyan",
    "Pending": "dim",
    "Failed": "red",
    "Error": "red",
    "Skipped": "dim",
    "Terminated": "yellow",
}


def _key_value_table(rows: list[tuple[str, str]], *, title: str | None = None) -> Table:
    table = Table(show_header=False, box=None, title=title, title_justify="left", expand=True)
    table.add_column("key", style="bold", no_wrap=True)
    table.add_column("value", overflow="fold")
    for key, value in rows:
        table.add_row(key, value)
    return table


def banner_text(notice: BannerNotice) -> Text:
    """Render a banner notice as a single styled line plus optional details."""
    text = Text(f" {notice.message} ", style=_BANNER_STYLES[notice.mode])
    if notice.additional_info:
        text.append(f"\n{notice.additional_info}", style="dim")
    if notice.retry is not None:
        text.append("\nPress r to retry.", style="italic")
    return text


class RunDetailsPresenter:
    """Presenter for RunDetailsScreen - formatting only, no I/O."""

    def __init__(self, screen: Any) -> None:
        """Initialize the presenter.

        Args:
            screen: The parent RunDetailsScreen instance.
        """
        self._screen = screen

    @property
    def controller(self) -> RunSessionController:
        return self._screen.controller

    # =========================================================================
    # Run level
    # =========================================================================

    def title(self) -> str:
        snapshot = self.controller.snapshot
        if snapshot is None:
            return f"Run {self.controller.run_id}"
        return f"{snapshot.name or snapshot.run_id} [{snapshot.phase.value}]"

    def node_rows(self) -> list[tuple[str, tuple[str | Text, ...]]]:
        """Return (node id, cells) for every node, ordered by start time."""
        snapshot = self.controller.snapshot
        if snapshot is None:
            return []
        nodes = sorted(
            snapshot.nodes.values(),
            key=lambda node: (node.started_at or "~", node.display_name),
        )
        return [
            (
                node.id,
                (
                    node.display_name or node.id,
                    Text(node.phase.value, style=_PHASE_STYLES.get(node.phase.value, "")),
                    format_date_string(node.started_at),
                    format_duration(node.started_at, node.finished_at),
                ),
            )
            for node in nodes
        ]

    def output_rows(self) -> list[tuple[str, str, str]]:
        return [
            (item.step_name, item.config.type, self._config_source(item.config))
            for item in self.controller.all_artifact_configs
        ]

    def run_details(self) -> RenderableType:
        fields = self.controller.run_details_fields()
        if not fields:
            return Text("Loading run...", style="dim")
        details = _key_value_table(fields)
        parameters = self.controller.run_parameters()
        if not parameters:
            return details
        grid = Table.grid(expand=True)
        grid.add_row(details)
        grid.add_row(_key_value_table(parameters, title="Run parameters"))
        return grid

    def status_line(self) -> str:
        controller = self.controller
        state = "finished" if controller.run_finished else (
            "polling" if controller.scheduler.is_armed else "paused"
        )
        return (
            f"Run: {controller.run_id}  Refresh: {state}  "
            f"Ticks: {controller.scheduler.tick_count}  "
            f"Last load: {controller.last_load_ms:.0f}ms"
        )

    # =========================================================================
    # Side panel
    # =========================================================================

    def side_panel_title(self) -> str:
        panel = self.controller.side_panel
        node = panel.selected_node()
        if node is None:
            return panel.selection.node_id or ""
        return node.display_name or node.id

    def tab_bar(self) -> Text:
        panel = self.controller.side_panel
        active = panel.selection.tab
        text = Text()
        for index, tab in enumerate(SIDE_PANEL_TABS, start=1):
            if not panel.is_tab_available(tab):
                continue
            style = "bold reverse" if tab is active else ""
            text.append(f" {index}:{tab.label} ", style=style)
        return text

    def side_panel_banner(self) -> Text | None:
        """Return the logs banner on the Logs tab, else the node phase notice."""
        panel = self.controller.side_panel
        if panel.selection.tab is SidePanelTab.LOGS and panel.logs_banner is not None:
            return banner_text(panel.logs_banner)
        details = panel.node_details
        if details is not None and details.phase_message:
            return banner_text(
                BannerNotice(mode=details.banner_mode, message=details.phase_message)
            )
        return None

    def tab_body(self) -> RenderableType:
        panel = self.controller.side_panel
        tab = panel.selection.tab
        if not panel.is_tab_available(tab):
            return Text(EMPTY_TAB_MESSAGE, style="dim")
        renderers = {
            SidePanelTab.INPUT_OUTPUT: self._input_output_body,
            SidePanelTab.VISUALIZATIONS: self._visualizations_body,
            SidePanelTab.TASK_DETAILS: self._task_details_body,
            SidePanelTab.VOLUMES: self._volumes_body,
            SidePanelTab.LOGS: self._logs_body,
            SidePanelTab.POD: self._pod_body,
            SidePanelTab.EVENTS: self._events_body,
            SidePanelTab.ML_METADATA: self._ml_metadata_body,
            SidePanelTab.MANIFEST: self._manifest_body,
        }
        return renderers[tab]()

    def _input_output_body(self) -> RenderableType:
        node = self.controller.side_panel.selected_node()
        if node is None:
            return Text(EMPTY_TAB_MESSAGE, style="dim")
        grid = Table.grid(expand=True)
        sections = [
            ("Input parameters", node.input_parameters),
            ("Input artifacts", self._artifact_rows(node.input_artifacts)),
            ("Output parameters", node.output_parameters),
            ("Output artifacts", self._artifact_rows(node.output_artifacts)),
        ]
        for title, rows in sections:
            if rows:
                grid.add_row(_key_value_table(rows, title=title))
        if not grid.rows:
            return Text(EMPTY_TAB_MESSAGE, style="dim")
        return grid

    @staticmethod
    def _artifact_rows(artifacts: list[NodeArtifact]) -> list[tuple[str, str]]:
        return [
            (
                artifact.name,
                f"{artifact.path.source}://{artifact.path.bucket}/{artifact.path.key}"
                if artifact.path is not None
                else MISSING_VALUE,
            )
            for artifact in artifacts
        ]

    def _visualizations_body(self) -> RenderableType:
        panel = self.controller.side_panel
        node = panel.selected_node()
        if not panel.visualizations_loaded:
            return Text(f"Loading visualizations... {panel.progress_state.visual_progress:.0f}%")

        configs: list[ViewerConfig] = list(panel.fanout_result.items if panel.fanout_result else ())
        configs.extend(item.config for item in panel.generated_for_selection())
        if not configs:
            completed = node is not None and node.phase in COMPLETED_NODE_PHASES
            message = NO_VISUALIZATIONS_MESSAGE if completed else NOT_COMPLETED_MESSAGE
            return Text(message, style="dim")

        table = Table(expand=True)
        table.add_column("Viewer", no_wrap=True)
        table.add_column("Source", overflow="fold")
        for config in configs:
            table.add_row(config.type, self._config_source(config))
        if panel.generating:
            table.caption = "Generating visualization..."
        return table

    def _task_details_body(self) -> RenderableType:
        fields = self.controller.side_panel.task_details_fields()
        if not fields:
            return Text(EMPTY_TAB_MESSAGE, style="dim")
        return _key_value_table(fields)

    def _volumes_body(self) -> RenderableType:
        mounts = self.controller.side_panel.volumes()
        if not mounts:
            return Text(EMPTY_TAB_MESSAGE, style="dim")
        return _key_value_table(mounts, title="Volume mounts")

    def _logs_body(self) -> RenderableType:
        panel = self.controller.side_panel
        if panel.busy:
            return Text("Loading logs...", style="dim")
        text = Text()
        details = panel.node_details
        if panel.logs_banner is None and details is not None and details.logs:
            lines = details.logs.splitlines()[-MAX_LOG_LINES_DISPLAY:]
            text.append("\n".join(lines))
        elif panel.logs_banner is None:
            text.append(NO_LOGS_MESSAGE, style="dim")
        url = panel.stackdriver_logs_url()
        if url:
            text.append(f"\n\nLogs can also be viewed in Stackdriver Kubernetes Monitoring: {url}")
        return text

    def _pod_body(self) -> RenderableType:
        panel = self.controller.side_panel
        node = panel.selected_node()
        if node is None:
            return Text(EMPTY_TAB_MESSAGE, style="dim")
        return _key_value_table(
            [
                ("Pod name", node.id),
                ("Namespace", panel.namespace),
                ("Template", node.template_name or MISSING_VALUE),
                ("Type", node.node_type or MISSING_VALUE),
            ]
        )

    def _events_body(self) -> RenderableType:
        node = self.controller.side_panel.selected_node()
        if node is None or not node.message:
            return Text(EMPTY_TAB_MESSAGE, style="dim")
        return _key_value_table([(node.phase.value, node.message)])

    def _ml_metadata_body(self) -> RenderableType:
        panel = self.controller.side_panel
        snapshot = panel.snapshot
        execution = snapshot.execution_for_node(panel.selection.node_id) if snapshot else None
        if execution is None:
            return Text("No execution metadata for this step.", style="dim")
        return _key_value_table(
            [
                ("Execution ID", execution.id),
                ("Name", execution.name or MISSING_VALUE),
                ("Type", execution.type_name or MISSING_VALUE),
            ]
        )

    def _manifest_body(self) -> RenderableType:
        manifest = self.controller.side_panel.manifest()
        return Text("\n".join(body for _kind, body in manifest))

    @staticmethod
    def _config_source(config: ViewerConfig) -> str:
        payload = config.payload
        return str(payload.get("source") or payload.get("storage") or "")


__all__ = [
    "BannerRaised",
    "RunDetailsPresenter",
    "RunStateChanged",
    "VisualizationProgress",
    "banner_text",
]
