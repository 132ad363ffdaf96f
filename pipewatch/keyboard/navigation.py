"""Screen-specific keyboard bindings."""

from typing import Annotated

# ============================================================================
# Run Details Screen Bindings
# ============================================================================

RUN_DETAILS_SCREEN_BINDINGS: list[
    Annotated[tuple[str, str, str], "key, action, description"]
] = [
    ("escape", "close_panel", "Close panel"),
    ("r", "refresh", "Refresh"),
    ("p", "toggle_polling", "Pause/Resume"),
    ("g", "generate_visualization", "Generate"),
    ("right_square_bracket", "next_tab", "Next tab"),
    ("left_square_bracket", "previous_tab", "Prev tab"),
    ("1", "switch_tab('1')", "I/O"),
    ("2", "switch_tab('2')", "Visualizations"),
    ("3", "switch_tab('3')", "Details"),
    ("4", "switch_tab('4')", "Volumes"),
    ("5", "switch_tab('5')", "Logs"),
    ("6", "switch_tab('6')", "Pod"),
    ("7", "switch_tab('7')", "Events"),
    ("8", "switch_tab('8')", "ML Metadata"),
    ("9", "switch_tab('9')", "Manifest"),
]

__all__ = [
    "RUN_DETAILS_SCREEN_BINDINGS",
]
