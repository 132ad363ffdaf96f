"""HTTP run-service client - talks to the pipelines API server and UI server."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from pipewatch.constants.enums import VisualizationType
from pipewatch.constants.timeouts import API_REQUEST_TIMEOUT
from pipewatch.models.run.errors import RunNotFoundError, TransportError
from pipewatch.models.run.run_snapshot import StoragePath
from pipewatch.models.visualization.viewer_config import ViewerConfig

logger = logging.getLogger(__name__)

POD_NOT_FOUND_MESSAGE = "pod not found"


class HttpRunServiceClient:
    """RunServiceClient backed by ``httpx.AsyncClient``.

    404 responses raise RunNotFoundError, every other HTTP or transport
    failure raises TransportError.
    """

    _API_PREFIX = "/apis/v1beta1"
    _HTML_VIEWER_TYPE = "web-app"

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = API_REQUEST_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Root URL of the pipelines UI/API server
            timeout: Per-request timeout in seconds
            transport: Optional transport override (used by tests)
        """
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> HttpRunServiceClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            body = exc.response.text.strip()
            if exc.response.status_code == 404:
                raise RunNotFoundError(body or f"{url} not found") from exc
            raise TransportError(
                f"{exc.response.status_code} {exc.response.reason_phrase}: {body}".strip()
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"Request to {url} failed: {exc}") from exc
        return response

    async def _request_json(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        response = await self._request(method, url, **kwargs)
        try:
            payload = response.json()
        except json.JSONDecodeError as exc:
            raise TransportError(f"Invalid JSON from {url}: {exc}") from exc
        return payload if isinstance(payload, dict) else {}

    async def fetch_run(self, run_id: str) -> dict[str, Any]:
        return await self._request_json("GET", f"{self._API_PREFIX}/runs/{run_id}")

    async def fetch_experiment(self, experiment_id: str) -> dict[str, Any]:
        return await self._request_json("GET", f"{self._API_PREFIX}/experiments/{experiment_id}")

    async def fetch_pod_logs(self, run_id: str, node_id: str, namespace: str) -> str:
        params = {"podname": node_id, "runid": run_id, "podnamespace": namespace}
        try:
            response = await self._request("GET", "/k8s/pod/logs", params=params)
        except RunNotFoundError as exc:
            raise RunNotFoundError(POD_NOT_FOUND_MESSAGE) from exc
        except TransportError as exc:
            # The UI server reports a missing pod as a 500 with this body
            if POD_NOT_FOUND_MESSAGE in str(exc).lower():
                raise RunNotFoundError(POD_NOT_FOUND_MESSAGE) from exc
            raise
        return response.text

    async def build_viewer_configs(
        self, path: StoragePath, namespace: str | None
    ) -> list[ViewerConfig]:
        params = {"source": path.source, "bucket": path.bucket, "key": path.key}
        if namespace:
            params["namespace"] = namespace
        response = await self._request("GET", "/artifacts/get", params=params)
        try:
            metadata = json.loads(response.text or "{}")
        except json.JSONDecodeError as exc:
            raise TransportError(f"Invalid UI metadata at {path.key}: {exc}") from exc

        outputs = metadata.get("outputs") if isinstance(metadata, dict) else None
        configs: list[ViewerConfig] = []
        for output in outputs or []:
            if not isinstance(output, dict) or not output.get("type"):
                logger.warning("Skipping malformed viewer output in %s", path.key)
                continue
            configs.append(ViewerConfig(type=str(output["type"]), payload=output))
        return configs

    async def are_custom_visualizations_allowed(self) -> bool:
        response = await self._request("GET", "/visualizations/allowed")
        return response.text.strip().lower() == "true"

    async def build_visualization(
        self,
        arguments: str,
        source: str,
        visualization_type: VisualizationType,
        namespace: str,
    ) -> ViewerConfig:
        body = {
            "arguments": arguments,
            "source": source,
            "type": visualization_type.value.upper(),
        }
        payload = await self._request_json(
            "POST", f"{self._API_PREFIX}/visualizations/{namespace}", json=body
        )
        return ViewerConfig(
            type=self._HTML_VIEWER_TYPE,
            payload={"htmlContent": str(payload.get("html") or "")},
        )


__all__ = ["POD_NOT_FOUND_MESSAGE", "HttpRunServiceClient"]
