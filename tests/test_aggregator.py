"""Unit tests for the channel fan-out and merge."""

from __future__ import annotations

import asyncio
import threading
from typing import List

import pytest

from datastore.memory_store import InMemoryReadingStore
from datastore.store import StoreError
from models.records import CHANNELS, StoredReading
from services.aggregator import AggregationError, Aggregator, merge_readings, tag_readings

from factories import NOW, row


def _fetch(aggregator: Aggregator):
    return asyncio.run(aggregator.fetch_all_readings())


def test_every_reading_is_tagged_with_its_channel() -> None:
    rows = [row(channel, minutes_ago=index, value=float(index)) for index, channel in enumerate(CHANNELS)]
    rows.append(row("sensor2", minutes_ago=30, value=7.0))
    aggregator = Aggregator(store=InMemoryReadingStore(rows))

    readings = _fetch(aggregator)
    aggregator.shutdown()

    expected = sorted((item.sensor, item.sensor_value) for item in rows)
    assert sorted((reading.channel, reading.value) for reading in readings) == expected


def test_merged_list_is_sorted_newest_first_with_empty_channels() -> None:
    store = InMemoryReadingStore(
        [
            row("sensor1", minutes_ago=10, value=1.0),
            row("sensor4", minutes_ago=1, value=2.0),
            row("sensor1", minutes_ago=3, value=3.0),
            row("sensor4", minutes_ago=20, value=4.0),
        ]
    )
    aggregator = Aggregator(store=store)

    readings = _fetch(aggregator)
    aggregator.shutdown()

    timestamps = [reading.timestamp for reading in readings]
    assert timestamps == sorted(timestamps, reverse=True)
    assert [reading.value for reading in readings] == [2.0, 3.0, 1.0, 4.0]


def test_fetch_returns_empty_list_when_store_is_empty() -> None:
    aggregator = Aggregator(store=InMemoryReadingStore())

    assert _fetch(aggregator) == []
    aggregator.shutdown()


def test_single_channel_failure_fails_the_whole_fetch() -> None:
    class FailingStore(InMemoryReadingStore):
        def fetch_channel(self, channel: str) -> List[StoredReading]:
            if channel == "sensor3":
                raise StoreError("connection reset")
            return super().fetch_channel(channel)

    aggregator = Aggregator(store=FailingStore([row("sensor1", 1, 1.0)]))

    with pytest.raises(AggregationError) as excinfo:
        _fetch(aggregator)
    aggregator.shutdown()

    assert isinstance(excinfo.value.__cause__, StoreError)


def test_channel_queries_run_concurrently() -> None:
    barrier = threading.Barrier(len(CHANNELS))

    class CoordinatedStore(InMemoryReadingStore):
        def fetch_channel(self, channel: str) -> List[StoredReading]:
            try:
                barrier.wait(timeout=2.0)
            except threading.BrokenBarrierError as exc:
                raise AssertionError("Channel queries did not run concurrently") from exc
            return super().fetch_channel(channel)

    aggregator = Aggregator(store=CoordinatedStore([row("sensor5", 1, 9.0)]))

    readings = _fetch(aggregator)
    aggregator.shutdown()

    assert [reading.channel for reading in readings] == ["sensor5"]


def test_merge_keeps_channel_order_for_equal_timestamps() -> None:
    groups = [
        tag_readings("sensor1", [StoredReading(current_time=NOW, sensor_value=1.0)]),
        tag_readings("sensor2", [StoredReading(current_time=NOW, sensor_value=2.0)]),
        tag_readings("sensor3", []),
    ]

    merged = merge_readings(groups)

    assert [reading.channel for reading in merged] == ["sensor1", "sensor2"]
