"""Reading store contract shared by the Cassandra and in-memory backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from models.records import HistoricalRow, StoredReading
from settings import get_settings


class StoreError(RuntimeError):
    """Raised when the underlying store cannot serve a query or a write."""


class RollupPeriod(str, Enum):
    """Rollup tables written by the ingest pipeline."""

    daily = "historical_data_daily"
    weekly = "historical_data_weekly"
    monthly = "historical_data_monthly"


class ReadingStore(ABC):
    """Access to the ``historical_data`` table and its rollups."""

    @abstractmethod
    def fetch_channel(self, channel: str) -> List[StoredReading]:
        """Return every stored reading for ``channel``, in store order."""

    @abstractmethod
    def insert_reading(self, row: HistoricalRow) -> None:
        ...

    @abstractmethod
    def upsert_rollup(
        self, period: RollupPeriod, period_key: str, sensor: str, total: float
    ) -> None:
        ...

    def close(self) -> None:
        return None


def parse_contact_point(value: str, default_port: int = 9042) -> tuple[str, int]:
    """Split ``host[:port]`` into its parts."""
    host, sep, port = value.strip().rpartition(":")
    if not sep:
        return value.strip(), default_port
    try:
        return host, int(port)
    except ValueError as exc:
        raise ValueError(f"Invalid contact point {value!r}.") from exc


@lru_cache
def build_default_store(backend: Optional[str] = None) -> ReadingStore:
    settings = get_settings()
    selected = settings.store_backend if backend is None else backend
    if selected == "memory":
        from datastore.memory_store import InMemoryReadingStore

        path = Path(settings.store_path) if settings.store_path else None
        return InMemoryReadingStore(persistence_path=path)

    from datastore.cassandra_store import CassandraReadingStore

    host, port = parse_contact_point(settings.contact_point)
    return CassandraReadingStore(
        host=host,
        port=port,
        local_datacenter=settings.local_datacenter,
        keyspace=settings.keyspace,
    )
