"""Viewer configuration and progress models for visualization loading."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ViewerConfig(BaseModel):
    """Opaque payload describing one visualization to render."""

    model_config = ConfigDict(frozen=True)

    type: str
    payload: dict[str, Any] = Field(default_factory=dict)


class AnnotatedConfig(BaseModel):
    """Viewer configuration tagged with the step that produced it."""

    model_config = ConfigDict(frozen=True)

    config: ViewerConfig
    step_name: str


class GeneratedVisualization(BaseModel):
    """Visualization built on demand for one node."""

    model_config = ConfigDict(frozen=True)

    node_id: str
    config: ViewerConfig


@dataclass(frozen=True)
class FanoutError:
    """Failure of one task in a fan-out load."""

    task_index: int
    error: Exception


@dataclass(frozen=True)
class FanoutResult:
    """Concatenated task outputs in submission order plus per-task failures."""

    items: tuple[ViewerConfig, ...] = ()
    errors: tuple[FanoutError, ...] = ()

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)


@dataclass(frozen=True)
class ProgressState:
    """Real vs. visual progress of one loading episode."""

    real_progress: float = 0.0
    visual_progress: float = 0.0
    completed: bool = False


__all__ = [
    "AnnotatedConfig",
    "FanoutError",
    "FanoutResult",
    "GeneratedVisualization",
    "ProgressState",
    "ViewerConfig",
]
