"""Periodic refresh of the dashboard from the aggregator endpoint."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, List, Optional, Protocol

from dashboard.renderer import Dashboard
from models.records import Reading, parse_timestamp

logger = logging.getLogger(__name__)


class PollError(RuntimeError):
    """The aggregator could not be reached or returned an unusable response."""


class ReadingSource(Protocol):
    def fetch_readings(self) -> List[Reading]:
        ...


def parse_readings(payload: Any) -> List[Reading]:
    """Convert the ``/api/data`` JSON array into readings."""
    if not isinstance(payload, list):
        raise PollError("Expected a JSON array of readings.")
    readings: List[Reading] = []
    for index, item in enumerate(payload):
        try:
            readings.append(
                Reading(
                    channel=str(item["sensor"]),
                    timestamp=parse_timestamp(str(item["current_time"])),
                    value=float(item["sensor_value"]),
                )
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise PollError(f"Malformed reading at index {index}: {exc}") from exc
    return readings


class Poller:
    def __init__(self, source: ReadingSource, dashboard: Dashboard) -> None:
        self.source = source
        self.dashboard = dashboard

    def refresh(self) -> bool:
        """Fetch once and apply the result; failures keep the current history."""
        history = self.dashboard.history
        sequence = history.begin_poll()
        logger.debug("Fetching data...", extra={"sequence": sequence})
        try:
            readings = self.source.fetch_readings()
        except PollError as exc:
            logger.error("Data fetch error: %s", exc, extra={"sequence": sequence})
            return False

        if not history.replace(sequence, readings):
            logger.info("Discarding response of a superseded poll", extra={"sequence": sequence})
            return False

        logger.info(
            "Fetched %d readings",
            len(readings),
            extra={"sequence": sequence, "row_count": len(readings)},
        )
        self.dashboard.on_history_replaced()
        return True

    def run(
        self,
        interval: float,
        iterations: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> int:
        """Refresh now and then every ``interval`` seconds; returns successful refreshes."""
        successes = 0
        completed = 0
        next_tick = time.monotonic()
        while iterations is None or completed < iterations:
            if self.refresh():
                successes += 1
            completed += 1
            if iterations is not None and completed >= iterations:
                break
            next_tick += interval
            sleep(max(0.0, next_tick - time.monotonic()))
        return successes
