"""Side panel state records.

Every record here is frozen and replaced wholesale by its owning controller.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from pipewatch.constants.enums import BannerMode, NodePhase, SidePanelTab


@dataclass(frozen=True)
class NodeSelection:
    """Currently inspected node (or none) and the active detail tab."""

    node_id: str | None = None
    tab: SidePanelTab = SidePanelTab.INPUT_OUTPUT

    @property
    def is_open(self) -> bool:
        return bool(self.node_id)


@dataclass(frozen=True)
class BannerNotice:
    """A dismissible notice shown above a page or panel."""

    mode: BannerMode
    message: str
    additional_info: str = ""
    retry: Callable[[], Awaitable[None]] | None = field(
        default=None, compare=False, repr=False
    )


@dataclass(frozen=True)
class NodeDetails:
    """Details of the selected node derived from the current snapshot."""

    node_id: str
    phase: NodePhase | None = None
    phase_message: str | None = None
    banner_mode: BannerMode = BannerMode.WARNING
    logs: str | None = None


__all__ = [
    "BannerNotice",
    "NodeDetails",
    "NodeSelection",
]
