"""Main application class for pipewatch."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError
from textual import events
from textual.app import App
from textual.binding import Binding

from pipewatch.constants import APP_TITLE
from pipewatch.controllers.run.controller import RunSessionController
from pipewatch.controllers.run.fetchers import HttpRunServiceClient, MetadataClient, RunServiceClient
from pipewatch.keyboard.app import APP_BINDINGS
from pipewatch.models.state.config_manager import (
    ConfigLoadError,
    ConfigManager,
    ConfigSaveError,
    PipewatchSettings,
)
from pipewatch.screens.run_details import RunDetailsScreen

logger = logging.getLogger(__name__)


class PipewatchApp(App[None]):
    """Terminal monitor for one pipeline run."""

    TITLE = APP_TITLE
    CSS_PATH = "css/app.tcss"
    BINDINGS: list[Binding] = APP_BINDINGS

    settings: PipewatchSettings

    def __init__(
        self,
        run_id: str,
        *,
        api_url: str | None = None,
        namespace: str | None = None,
        refresh_interval: float | None = None,
        execution_id: str | None = None,
        client: RunServiceClient | None = None,
        metadata_client: MetadataClient | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.run_id = run_id
        self._load_settings(
            api_url=api_url,
            namespace=namespace,
            refresh_interval=refresh_interval,
        )

        self._owns_client = client is None
        self.client: RunServiceClient = client or HttpRunServiceClient(
            self.settings.api_url,
            timeout=self.settings.request_timeout,
        )
        self.controller = RunSessionController(
            run_id,
            self.client,
            metadata_client=metadata_client,
            settings=self.settings,
            execution_id=execution_id,
        )

    def _load_settings(self, **overrides: Any) -> None:
        """Load settings from disk, then apply CLI overrides."""
        try:
            settings = ConfigManager.load()
        except ConfigLoadError as e:
            logger.warning(f"Using default settings: {e}")
            settings = PipewatchSettings()

        updates = {key: value for key, value in overrides.items() if value is not None}
        if not updates:
            self.settings = settings
            return
        try:
            self.settings = PipewatchSettings.model_validate(
                {**settings.model_dump(), **updates}
            )
        except ValidationError as e:
            logger.warning(f"Ignoring invalid command line settings: {e}")
            self.settings = settings

    def on_mount(self) -> None:
        self.push_screen(RunDetailsScreen(self.controller))

    def on_app_focus(self, _event: events.AppFocus) -> None:
        """Resume polling when the terminal regains focus."""
        if isinstance(self.screen, RunDetailsScreen):
            self.screen.resume_polling()

    def on_app_blur(self, _event: events.AppBlur) -> None:
        """Suspend polling while the terminal is in the background."""
        if isinstance(self.screen, RunDetailsScreen):
            self.screen.suspend_polling()

    def action_save_settings(self) -> None:
        """Persist the effective settings."""
        try:
            ConfigManager.save(self.settings)
        except ConfigSaveError as e:
            self.notify(f"Failed to save settings: {e}", severity="error")
            return
        self.notify(f"Settings saved to {ConfigManager.config_path()}", severity="information")

    async def on_unmount(self) -> None:
        """Stop polling and release the HTTP client."""
        self.controller.stop()
        if self._owns_client and isinstance(self.client, HttpRunServiceClient):
            await self.client.aclose()


__all__ = [
    "PipewatchApp",
]
