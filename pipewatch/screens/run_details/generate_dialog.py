"""Modal dialog collecting the inputs for an on-demand visualization."""

from __future__ import annotations

from dataclasses import dataclass

from textual import on
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Select, Static

from pipewatch.constants.enums import VisualizationType

GENERATE_TYPE_ID = "generate-visualization-type"
GENERATE_SOURCE_ID = "generate-visualization-source"
GENERATE_ARGUMENTS_ID = "generate-visualization-arguments"
GENERATE_SUBMIT_ID = "generate-visualization-submit"
GENERATE_CANCEL_ID = "generate-visualization-cancel"


@dataclass(frozen=True)
class VisualizationRequest:
    """Inputs passed to SidePanelController.generate_visualization."""

    visualization_type: VisualizationType
    source: str
    arguments: str


def visualization_type_options(
    allow_custom: bool,
) -> list[tuple[str, VisualizationType]]:
    """Select options for the type picker. CUSTOM needs the server flag."""
    return [
        (kind.value, kind)
        for kind in VisualizationType
        if allow_custom or kind is not VisualizationType.CUSTOM
    ]


class GenerateVisualizationDialog(ModalScreen[VisualizationRequest | None]):
    """Ask for a visualization type, a source path and JSON arguments."""

    BINDINGS = [("escape", "cancel", "Cancel")]

    DEFAULT_CSS = """
    GenerateVisualizationDialog {
        align: center middle;
    }

    GenerateVisualizationDialog > Vertical {
        width: 72;
        height: auto;
        padding: 1 2;
        border: thick $primary;
        background: $surface;
    }

    GenerateVisualizationDialog .dialog-title {
        text-style: bold;
        margin-bottom: 1;
    }

    GenerateVisualizationDialog Horizontal {
        height: auto;
        margin-top: 1;
    }
    """

    def __init__(self, *, allow_custom: bool) -> None:
        super().__init__()
        self._options = visualization_type_options(allow_custom)

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Static("Generate visualization", classes="dialog-title", markup=False)
            yield Select(
                self._options,
                value=self._options[0][1],
                allow_blank=False,
                id=GENERATE_TYPE_ID,
            )
            yield Input(placeholder="Source (gs://, s3:// ...)", id=GENERATE_SOURCE_ID)
            yield Input(placeholder="Arguments (JSON)", id=GENERATE_ARGUMENTS_ID)
            with Horizontal():
                yield Button("Generate", id=GENERATE_SUBMIT_ID, variant="primary")
                yield Button("Cancel", id=GENERATE_CANCEL_ID)

    def on_mount(self) -> None:
        self.query_one(f"#{GENERATE_SOURCE_ID}", Input).focus()

    def action_cancel(self) -> None:
        self.dismiss(None)

    @on(Button.Pressed, f"#{GENERATE_CANCEL_ID}")
    def _on_cancel_pressed(self) -> None:
        self.dismiss(None)

    @on(Button.Pressed, f"#{GENERATE_SUBMIT_ID}")
    @on(Input.Submitted)
    def _on_submit(self) -> None:
        self.dismiss(self.request())

    def request(self) -> VisualizationRequest:
        """Build the request from the current field values."""
        kind = self.query_one(f"#{GENERATE_TYPE_ID}", Select).value
        return VisualizationRequest(
            visualization_type=(
                kind if isinstance(kind, VisualizationType) else self._options[0][1]
            ),
            source=self.query_one(f"#{GENERATE_SOURCE_ID}", Input).value.strip(),
            arguments=self.query_one(f"#{GENERATE_ARGUMENTS_ID}", Input).value.strip(),
        )


__all__ = [
    "GENERATE_ARGUMENTS_ID",
    "GENERATE_CANCEL_ID",
    "GENERATE_SOURCE_ID",
    "GENERATE_SUBMIT_ID",
    "GENERATE_TYPE_ID",
    "GenerateVisualizationDialog",
    "VisualizationRequest",
    "visualization_type_options",
]
