"""Writes sensor batches into the historical table and its rollups."""

from __future__ import annotations

import csv
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, TextIO, Tuple

from datastore.store import ReadingStore, RollupPeriod, StoreError
from models.records import (
    HistoricalBatch,
    HistoricalRow,
    HistoricalValue,
    is_known_channel,
    parse_timestamp,
)

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("sensor", "timestamp", "value")


@dataclass(frozen=True)
class RowError:
    row_number: int
    reason: str


@dataclass
class IngestReport:
    """Outcome of ingesting a CSV file."""

    batches: int = 0
    rows_written: int = 0
    failed_writes: int = 0
    errors: List[RowError] = field(default_factory=list)


def rollup_keys(moment: datetime) -> List[Tuple[RollupPeriod, str]]:
    iso_year, iso_week, _ = moment.isocalendar()
    return [
        (RollupPeriod.daily, moment.strftime("%Y-%m-%d")),
        (RollupPeriod.weekly, f"{iso_year:04d}-{iso_week:02d}"),
        (RollupPeriod.monthly, moment.strftime("%Y-%m")),
    ]


class IngestService:
    """Stores batches the way the broker consumer did.

    Every value becomes one ``historical_data`` row stamped with the ingestion clock,
    and the batch total is written to the daily, weekly and monthly rollup tables. A
    failed write is logged and the rest of the batch still goes through.
    """

    def __init__(
        self,
        store: ReadingStore,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.store = store
        self._clock = clock

    def record_batch(self, batch: HistoricalBatch) -> Tuple[int, int]:
        """Persist ``batch``; returns ``(rows_written, failed_writes)``."""
        current_time = self._clock()
        total = 0.0
        written = 0
        failed = 0
        context = {"channel": batch.sensor, "batch_id": batch.batch_id}

        for value in batch.values:
            row = HistoricalRow(
                batch_id=batch.batch_id,
                sensor=batch.sensor,
                timestamp=value.t,
                sensor_value=value.v,
                current_time=current_time,
            )
            try:
                self.store.insert_reading(row)
            except StoreError:
                failed += 1
                logger.error("Failed to insert into historical_data", exc_info=True, extra=context)
            else:
                written += 1
            total += value.v

        for period, key in rollup_keys(current_time):
            try:
                self.store.upsert_rollup(period, key, batch.sensor, total)
            except StoreError:
                failed += 1
                logger.error(
                    "Failed to write %s rollup", period.name, exc_info=True, extra=context
                )

        logger.info(
            "Recorded batch with %d values",
            len(batch.values),
            extra={**context, "row_count": written},
        )
        return written, failed

    def ingest_csv(self, stream: TextIO, first_batch_id: Optional[int] = None) -> IngestReport:
        """Group valid CSV rows into one batch per sensor and record them."""
        report = IngestReport()
        reader = csv.DictReader(stream)
        if not reader.fieldnames:
            raise ValueError("CSV file is missing a header row.")

        normalized = {name.lower().strip(): name for name in reader.fieldnames}
        missing = sorted(set(REQUIRED_COLUMNS) - normalized.keys())
        if missing:
            raise ValueError(f"CSV missing required columns: {', '.join(missing)}")

        grouped: Dict[str, List[HistoricalValue]] = {}
        for row_number, row in enumerate(reader, start=2):
            parsed = self._parse_row(row, normalized, row_number)
            if isinstance(parsed, RowError):
                report.errors.append(parsed)
                logger.warning(
                    "Skipping row: %s",
                    parsed.reason,
                    extra={"row_number": row_number, "reason": parsed.reason},
                )
                continue
            sensor, value = parsed
            grouped.setdefault(sensor, []).append(value)

        batch_id = first_batch_id if first_batch_id is not None else int(time.time() * 1000)
        for offset, (sensor, values) in enumerate(grouped.items()):
            written, failed = self.record_batch(
                HistoricalBatch(batch_id=batch_id + offset, sensor=sensor, values=tuple(values))
            )
            report.batches += 1
            report.rows_written += written
            report.failed_writes += failed

        return report

    @staticmethod
    def _parse_row(
        row: Dict[str, Optional[str]], columns: Dict[str, str], row_number: int
    ) -> Tuple[str, HistoricalValue] | RowError:
        sensor_raw = (row.get(columns["sensor"]) or "").strip()
        timestamp_raw = (row.get(columns["timestamp"]) or "").strip()
        value_raw = (row.get(columns["value"]) or "").strip()

        if not sensor_raw:
            return RowError(row_number, "missing sensor")
        if not is_known_channel(sensor_raw):
            return RowError(row_number, "unknown sensor")
        if not timestamp_raw:
            return RowError(row_number, "missing timestamp")
        try:
            timestamp = parse_timestamp(timestamp_raw)
        except ValueError:
            return RowError(row_number, "invalid timestamp")
        if not value_raw:
            return RowError(row_number, "missing value")
        try:
            value = float(value_raw)
        except ValueError:
            return RowError(row_number, "invalid numeric value")

        return sensor_raw, HistoricalValue(t=int(timestamp.timestamp() * 1000), v=value)
