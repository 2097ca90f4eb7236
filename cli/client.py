from __future__ import annotations

from typing import Any, Dict, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the telemetry API."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def send_reading(self, temp: float, hum: float, timestamp: str) -> str:
        payload = self._request(
            "POST",
            "/api/datos",
            json={"temp": temp, "hum": hum, "timestamp": timestamp},
        )
        reading_id = payload.get("id")
        if not isinstance(reading_id, str):
            raise typer.BadParameter("Unexpected response payload when sending a reading.")
        return reading_id

    def recent(self, limit: int) -> Dict[str, Any]:
        return self._request("GET", "/api/datos", params={"limit": limit})

    def page(self, page: int, page_size: int) -> Dict[str, Any]:
        return self._request(
            "GET", "/api/datos", params={"page": page, "pageSize": page_size}
        )

    def count(self) -> int:
        return int(self._request("GET", "/api/datos/count")["total_registros"])

    def interval(self) -> int:
        return int(self._request("GET", "/api/update")["intervalSeconds"])

    def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            response = self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.TransportError as exc:
            typer.secho(f"Could not reach {self._config.base_url}: {exc}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1) from exc
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: Optional[str] = None
        try:
            data = exc.response.json()
            detail = data.get("error")
        except (ValueError, AttributeError):
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
