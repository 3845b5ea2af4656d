"""Fan-out of per-channel store queries merged into one timeline."""

from __future__ import annotations

import asyncio
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from functools import lru_cache
from typing import Iterable, List, Optional, Sequence

from datastore.store import ReadingStore, build_default_store
from models.records import CHANNELS, Reading, StoredReading

logger = logging.getLogger(__name__)


class AggregationError(RuntimeError):
    """Raised when any channel query fails; no partial result is produced."""


def tag_readings(channel: str, rows: Iterable[StoredReading]) -> List[Reading]:
    return [
        Reading(channel=channel, timestamp=row.current_time, value=row.sensor_value)
        for row in rows
    ]


def merge_readings(groups: Iterable[Iterable[Reading]]) -> List[Reading]:
    """Flatten per-channel groups and order the result newest first.

    The sort is stable, so readings sharing a timestamp keep channel order.
    """
    merged = [reading for group in groups for reading in group]
    merged.sort(key=lambda reading: reading.timestamp, reverse=True)
    return merged


class Aggregator:
    """Queries every known channel concurrently and joins the results."""

    def __init__(
        self,
        store: ReadingStore,
        channels: Sequence[str] = CHANNELS,
        workers: Optional[int] = None,
    ) -> None:
        self.store = store
        self.channels = tuple(channels)
        self.executor = ThreadPoolExecutor(
            max_workers=workers or len(self.channels),
            thread_name_prefix="channel-query",
        )

    async def fetch_all_readings(self) -> List[Reading]:
        loop = asyncio.get_running_loop()
        start_time = time.perf_counter()
        pending = [
            loop.run_in_executor(self.executor, self._query_channel, channel)
            for channel in self.channels
        ]
        try:
            groups = await asyncio.gather(*pending)
        except Exception as exc:
            logger.error("Error fetching data from the reading store", exc_info=True)
            raise AggregationError("Error fetching data") from exc

        merged = merge_readings(groups)
        logger.info(
            "Fetched %d records",
            len(merged),
            extra={
                "row_count": len(merged),
                "elapsed_ms": int((time.perf_counter() - start_time) * 1000),
            },
        )
        return merged

    def shutdown(self) -> None:
        self.executor.shutdown(wait=False, cancel_futures=True)

    def _query_channel(self, channel: str) -> List[Reading]:
        rows = self.store.fetch_channel(channel)
        logger.debug("Channel query returned %d rows", len(rows), extra={"channel": channel})
        return tag_readings(channel, rows)


@lru_cache
def build_default_aggregator() -> Aggregator:
    """Factory that wires the aggregator to the configured store."""
    return Aggregator(store=build_default_store())
