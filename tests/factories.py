"""Builders for readings and store rows anchored at a fixed clock."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from models.records import HistoricalRow, Reading

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def reading(channel: str, minutes_ago: float, value: float) -> Reading:
    return Reading(channel=channel, timestamp=NOW - timedelta(minutes=minutes_ago), value=value)


def row(sensor: str, minutes_ago: float, value: float, batch_id: int = 1) -> HistoricalRow:
    return HistoricalRow(
        batch_id=batch_id,
        sensor=sensor,
        timestamp=0,
        sensor_value=value,
        current_time=NOW - timedelta(minutes=minutes_ago),
    )
