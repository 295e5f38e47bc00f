from __future__ import annotations

from typing import Any, Dict, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the telemetry collector service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def submit_reading(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/api/sensor-data", json=payload)

    def latest(self) -> Dict[str, Any]:
        return self._request("GET", "/api/latest-data")

    def recent(self, limit: Optional[int] = None) -> Dict[str, Any]:
        params = {"limit": limit} if limit is not None else None
        return self._request("GET", "/api/sensor-data", params=params)

    def stats(self) -> Dict[str, Any]:
        return self._request("GET", "/api/stats")

    def reset_info(self) -> Dict[str, Any]:
        return self._request("GET", "/api/reset-info")

    def force_reset(self) -> Dict[str, Any]:
        return self._request("POST", "/api/force-reset")

    def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            response = self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.TransportError as exc:
            typer.secho(
                f"Could not reach {self._config.base_url}: {exc}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(code=1)
        payload = response.json()
        if not isinstance(payload, dict):
            raise typer.BadParameter(f"Unexpected response payload from {path}.")
        return payload

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: Any = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        if isinstance(detail, dict):
            detail = detail.get("message") or detail
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
