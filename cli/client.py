from __future__ import annotations

from typing import List, Optional

import httpx

from cli.config import CLIConfig
from dashboard.poller import PollError, parse_readings
from models.records import Reading

DATA_PATH = "/api/data"


class ApiClient:
    """HTTP client for the aggregator endpoint."""

    def __init__(
        self,
        config: CLIConfig,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=None, transport=transport)

    def close(self) -> None:
        self._client.close()

    def fetch_readings(self) -> List[Reading]:
        try:
            response = self._client.get(DATA_PATH)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise PollError(self._describe_error(exc)) from exc
        except httpx.HTTPError as exc:
            raise PollError(f"Request to {self._config.base_url}{DATA_PATH} failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise PollError("Response body is not valid JSON.") from exc
        return parse_readings(payload)

    @staticmethod
    def _describe_error(exc: httpx.HTTPStatusError) -> str:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("error") if isinstance(data, dict) else None
        except ValueError:
            detail = exc.response.text.strip()
        return (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
