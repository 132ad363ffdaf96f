"""Run details screen - live view of one run, its steps and the node side panel."""

from __future__ import annotations

import logging
from contextlib import suppress

from textual import on
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.css.query import NoMatches, WrongType
from textual.screen import Screen
from textual.widgets import DataTable, Footer, Header, ProgressBar, Static

from pipewatch.constants.enums import SidePanelTab
from pipewatch.controllers.run.controller import RunSessionController
from pipewatch.keyboard import RUN_DETAILS_SCREEN_BINDINGS
from pipewatch.models.run import BannerNotice
from pipewatch.models.visualization import ProgressState
from pipewatch.screens.mixins.worker_mixin import WorkerMixin
from pipewatch.screens.run_details.config import (
    NODES_TABLE_COLUMNS,
    NODES_TABLE_ID,
    OUTPUTS_TABLE_COLUMNS,
    OUTPUTS_TABLE_ID,
    PAGE_BANNER_ID,
    RUN_DETAILS_ID,
    SIDE_PANEL_BANNER_ID,
    SIDE_PANEL_BODY_ID,
    SIDE_PANEL_ID,
    SIDE_PANEL_TABS_ID,
    SIDE_PANEL_TITLE_ID,
    STATUS_BAR_ID,
    TAB_SHORTCUTS,
    VISUALIZATION_PROGRESS_ID,
)
from pipewatch.screens.run_details.generate_dialog import (
    GenerateVisualizationDialog,
    VisualizationRequest,
)
from pipewatch.screens.run_details.presenter import (
    BannerRaised,
    RunDetailsPresenter,
    RunStateChanged,
    VisualizationProgress,
    banner_text,
)

logger = logging.getLogger(__name__)


class RunDetailsScreen(WorkerMixin, Screen[None]):
    """Live run view: step table, run details, outputs and the node side panel.

    The screen is a thin adapter. Controller listeners post messages, and the
    message handlers re-render from controller state. Polling is suspended
    while the screen (or the terminal) is in the background.
    """

    BINDINGS = RUN_DETAILS_SCREEN_BINDINGS
    CSS_PATH = "../../css/screens/run_details_screen.tcss"

    def __init__(self, controller: RunSessionController) -> None:
        super().__init__()
        self.controller = controller
        self._presenter = RunDetailsPresenter(self)
        self._page_banner: BannerNotice | None = None

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static("", id=PAGE_BANNER_ID)
        with Horizontal(id="run-body"):
            with Vertical(id="run-main"):
                yield DataTable(id=NODES_TABLE_ID, cursor_type="row", zebra_stripes=True)
                yield Static("", id=RUN_DETAILS_ID)
                yield DataTable(id=OUTPUTS_TABLE_ID, cursor_type="row")
            with Vertical(id=SIDE_PANEL_ID):
                yield Static("", id=SIDE_PANEL_TITLE_ID)
                yield Static("", id=SIDE_PANEL_TABS_ID)
                yield Static("", id=SIDE_PANEL_BANNER_ID)
                yield ProgressBar(
                    total=100, show_eta=False, id=VISUALIZATION_PROGRESS_ID
                )
                with VerticalScroll(id="side-panel-scroll"):
                    yield Static("", id=SIDE_PANEL_BODY_ID)
        yield Static("", id=STATUS_BAR_ID)
        yield Footer()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def on_mount(self) -> None:
        self.title = self._presenter.title()
        nodes_table = self.query_one(f"#{NODES_TABLE_ID}", DataTable)
        for name, width in NODES_TABLE_COLUMNS:
            nodes_table.add_column(name, width=width)
        outputs_table = self.query_one(f"#{OUTPUTS_TABLE_ID}", DataTable)
        for name, width in OUTPUTS_TABLE_COLUMNS:
            outputs_table.add_column(name, width=width)

        self.controller.set_listeners(
            banner_sink=self._on_banner,
            on_change=self._on_controller_changed,
        )
        self.controller.side_panel.set_listeners(
            banner_sink=self._on_banner,
            on_change=self._on_controller_changed,
        )
        self.controller.side_panel.set_progress_listener(self._on_progress_frame)
        self._render_side_panel()
        self.start_worker(self.controller.start, group="poll", name="run-poll-start")

    def on_unmount(self) -> None:
        """Stop polling and cancel workers when the screen is removed."""
        self.controller.stop()
        self.cancel_workers()

    def on_screen_suspend(self) -> None:
        """Pause polling while another screen is active."""
        self.suspend_polling()

    def on_screen_resume(self) -> None:
        self.resume_polling()

    def suspend_polling(self) -> None:
        self.controller.suspend()
        self._render_status()

    def resume_polling(self) -> None:
        if self.controller.run_finished:
            return
        self.start_worker(self.controller.resume, group="poll", name="run-poll-resume")

    # =========================================================================
    # Controller listeners
    # =========================================================================

    def _on_banner(self, notice: BannerNotice | None) -> None:
        self.post_message(BannerRaised(notice))

    def _on_controller_changed(self) -> None:
        self.post_message(RunStateChanged())

    def _on_progress_frame(self, state: ProgressState) -> None:
        self.post_message(VisualizationProgress(state))

    def on_banner_raised(self, message: BannerRaised) -> None:
        self._page_banner = message.notice
        with suppress(NoMatches, WrongType):
            banner = self.query_one(f"#{PAGE_BANNER_ID}", Static)
            banner.update(banner_text(message.notice) if message.notice else "")
            banner.display = message.notice is not None

    def on_run_state_changed(self, _message: RunStateChanged) -> None:
        self.title = self._presenter.title()
        self._render_nodes()
        self._render_outputs()
        with suppress(NoMatches, WrongType):
            self.query_one(f"#{RUN_DETAILS_ID}", Static).update(self._presenter.run_details())
        self._render_side_panel()
        self._render_status()

    def on_visualization_progress(self, message: VisualizationProgress) -> None:
        with suppress(NoMatches, WrongType):
            bar = self.query_one(f"#{VISUALIZATION_PROGRESS_ID}", ProgressBar)
            bar.update(progress=message.state.visual_progress)
            bar.display = (
                self.controller.side_panel.selection.tab is SidePanelTab.VISUALIZATIONS
                and not message.state.completed
            )

    # =========================================================================
    # Rendering
    # =========================================================================

    def _render_nodes(self) -> None:
        rows = self._presenter.node_rows()
        with suppress(NoMatches, WrongType):
            table = self.query_one(f"#{NODES_TABLE_ID}", DataTable)
            cursor_row = table.cursor_row
            table.clear()
            for node_id, cells in rows:
                table.add_row(*cells, key=node_id)
            if rows:
                table.move_cursor(row=min(cursor_row, len(rows) - 1))

    def _render_outputs(self) -> None:
        with suppress(NoMatches, WrongType):
            table = self.query_one(f"#{OUTPUTS_TABLE_ID}", DataTable)
            table.clear()
            for row in self._presenter.output_rows():
                table.add_row(*row)

    def _render_side_panel(self) -> None:
        panel = self.controller.side_panel
        with suppress(NoMatches, WrongType):
            container = self.query_one(f"#{SIDE_PANEL_ID}", Vertical)
            container.display = panel.selection.is_open
            if not panel.selection.is_open:
                return
            self.query_one(f"#{SIDE_PANEL_TITLE_ID}", Static).update(
                self._presenter.side_panel_title()
            )
            self.query_one(f"#{SIDE_PANEL_TABS_ID}", Static).update(self._presenter.tab_bar())
            banner = self._presenter.side_panel_banner()
            banner_widget = self.query_one(f"#{SIDE_PANEL_BANNER_ID}", Static)
            banner_widget.update(banner or "")
            banner_widget.display = banner is not None
            self.query_one(f"#{VISUALIZATION_PROGRESS_ID}", ProgressBar).display = (
                panel.selection.tab is SidePanelTab.VISUALIZATIONS
                and not panel.visualizations_loaded
            )
            self.query_one(f"#{SIDE_PANEL_BODY_ID}", Static).update(self._presenter.tab_body())

    def _render_status(self) -> None:
        with suppress(NoMatches, WrongType):
            status = self.query_one(f"#{STATUS_BAR_ID}", Static)
            status.update(self._presenter.status_line())
            status.remove_class("error-text")

    # =========================================================================
    # User input
    # =========================================================================

    @on(DataTable.RowSelected, f"#{NODES_TABLE_ID}")
    def _on_node_selected(self, event: DataTable.RowSelected) -> None:
        node_id = event.row_key.value
        if not node_id:
            return
        self.select_node(str(node_id))

    def select_node(self, node_id: str) -> None:
        self.run_worker(
            self.controller.side_panel.select(node_id),
            group="side-panel",
            name=f"select-{node_id}",
            exit_on_error=False,
        )

    def action_close_panel(self) -> None:
        self.controller.side_panel.close()

    def action_refresh(self) -> None:
        retry = self._page_banner.retry if self._page_banner is not None else None
        if retry is None:
            panel_banner = self.controller.side_panel.logs_banner
            retry = panel_banner.retry if panel_banner is not None else None
        target = retry or self.controller.reload
        self.run_worker(target(), group="refresh", name="manual-refresh", exit_on_error=False)

    def action_toggle_polling(self) -> None:
        if self.controller.scheduler.is_armed:
            self.suspend_polling()
        else:
            self.resume_polling()

    def action_switch_tab(self, shortcut: str) -> None:
        tab = TAB_SHORTCUTS.get(shortcut)
        if tab is not None:
            self._switch_tab(tab)

    def action_next_tab(self) -> None:
        self._cycle_tab(1)

    def action_previous_tab(self) -> None:
        self._cycle_tab(-1)

    def action_generate_visualization(self) -> None:
        selection = self.controller.side_panel.selection
        if not selection.is_open or selection.tab is not SidePanelTab.VISUALIZATIONS:
            return
        self.app.push_screen(
            GenerateVisualizationDialog(
                allow_custom=self.controller.allow_custom_visualizations
            ),
            self._on_generate_dismissed,
        )

    def _on_generate_dismissed(self, request: VisualizationRequest | None) -> None:
        if request is None:
            return
        self.run_worker(
            self.controller.side_panel.generate_visualization(
                request.arguments, request.source, request.visualization_type
            ),
            group="side-panel",
            name="generate-visualization",
            exit_on_error=False,
        )

    def _cycle_tab(self, step: int) -> None:
        panel = self.controller.side_panel
        tabs = panel.available_tabs()
        if not tabs or not panel.selection.is_open:
            return
        current = panel.selection.tab
        index = tabs.index(current) if current in tabs else -step
        self._switch_tab(tabs[(index + step) % len(tabs)])

    def _switch_tab(self, tab: SidePanelTab) -> None:
        panel = self.controller.side_panel
        if not panel.selection.is_open or not panel.is_tab_available(tab):
            return
        self.run_worker(
            panel.switch_tab(tab),
            group="side-panel",
            name=f"tab-{tab.value}",
            exit_on_error=False,
        )


__all__ = ["RunDetailsScreen"]
