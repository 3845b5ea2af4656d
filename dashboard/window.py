"""Recency windows and the visible subset of the history."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Iterable, List, Optional

from models.records import Reading


class RecencyWindow(str, Enum):
    five_minutes = "5min"
    fifteen_minutes = "15min"
    one_hour = "1hour"
    one_day = "1day"
    one_year = "1year"

    @property
    def duration(self) -> timedelta:
        return _DURATIONS[self]


_DURATIONS = {
    RecencyWindow.five_minutes: timedelta(minutes=5),
    RecencyWindow.fifteen_minutes: timedelta(minutes=15),
    RecencyWindow.one_hour: timedelta(hours=1),
    RecencyWindow.one_day: timedelta(days=1),
    RecencyWindow.one_year: timedelta(days=365),
}

WINDOW_CHOICES = tuple(window.value for window in RecencyWindow)


def window_start(selector: str, now: datetime) -> datetime:
    """Start of the window ending at ``now``.

    An unrecognised selector yields ``now`` itself, which leaves an empty window.
    """
    try:
        window = RecencyWindow(selector)
    except ValueError:
        return now
    return now - window.duration


def compute_visible_window(
    readings: Iterable[Reading],
    selector: str,
    now: Optional[datetime] = None,
) -> List[Reading]:
    """Readings at or after the window start, in their original order."""
    current = now or datetime.now(timezone.utc)
    start = window_start(selector, current)
    return [reading for reading in readings if reading.timestamp >= start]
