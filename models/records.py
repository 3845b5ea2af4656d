"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Tuple

CHANNELS: Tuple[str, ...] = ("sensor1", "sensor2", "sensor3", "sensor4", "sensor5")


def is_known_channel(name: str) -> bool:
    return name in CHANNELS


@dataclass(frozen=True, slots=True)
class StoredReading:
    """A row as returned by the store for a single channel query."""

    current_time: datetime
    sensor_value: float


@dataclass(frozen=True, slots=True)
class Reading:
    """A single sensor sample tagged with its originating channel."""

    channel: str
    timestamp: datetime
    value: float


@dataclass(frozen=True, slots=True)
class HistoricalValue:
    """One ``(t, v)`` pair of an ingest batch; ``t`` is epoch milliseconds."""

    t: int
    v: float


@dataclass(frozen=True, slots=True)
class HistoricalBatch:
    """A batch of samples for one sensor, as delivered to the ingest pipeline."""

    batch_id: int
    sensor: str
    values: Tuple[HistoricalValue, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class HistoricalRow:
    """A row of the ``historical_data`` table."""

    batch_id: int
    sensor: str
    timestamp: int
    sensor_value: float
    current_time: datetime


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime; naive values are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def isoformat_utc(value: datetime) -> str:
    """Render ``value`` as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    return as_utc(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 string (``Z`` suffix allowed) into an aware UTC datetime."""
    candidate = value.strip()
    if not candidate:
        raise ValueError("Timestamp is empty.")

    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise ValueError("Invalid timestamp format") from exc

    return as_utc(parsed)
