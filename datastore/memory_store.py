from __future__ import annotations
import json
from datetime import datetime
from pathlib import Path
from threading import Lock
from typing import Dict, Iterable, List, Optional, Tuple

from datastore.store import ReadingStore, RollupPeriod, StoreError
from models.records import HistoricalRow, StoredReading, as_utc


class InMemoryReadingStore(ReadingStore):
    """Process-local reading store, optionally mirrored to a JSON file.

    When a persistence path is configured the file is reloaded whenever it changed on
    disk, so a server process sees rows written by a separate ``ingest`` run.
    """

    def __init__(
        self,
        rows: Iterable[HistoricalRow] = (),
        persistence_path: Optional[Path] = None,
    ) -> None:
        self._rows: List[HistoricalRow] = list(rows)
        self._rollups: Dict[Tuple[str, str, str], float] = {}
        self.persistence_path = persistence_path
        self._loaded_mtime: Optional[float] = None
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def fetch_channel(self, channel: str) -> List[StoredReading]:
        with self._lock:
            self._reload_if_changed()
            return [
                StoredReading(current_time=row.current_time, sensor_value=row.sensor_value)
                for row in self._rows
                if row.sensor == channel
            ]

    def insert_reading(self, row: HistoricalRow) -> None:
        with self._lock:
            self._reload_if_changed()
            self._rows.append(row)
            self._persist()

    def upsert_rollup(
        self, period: RollupPeriod, period_key: str, sensor: str, total: float
    ) -> None:
        with self._lock:
            self._reload_if_changed()
            self._rollups[(period.value, period_key, sensor)] = total
            self._persist()

    def rollup(self, period: RollupPeriod, period_key: str, sensor: str) -> Optional[float]:
        with self._lock:
            return self._rollups.get((period.value, period_key, sensor))

    def rows(self) -> list[HistoricalRow]:
        with self._lock:
            return list(self._rows)

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = {
            "historical_data": [
                {
                    "batch_id": row.batch_id,
                    "sensor": row.sensor,
                    "timestamp": row.timestamp,
                    "sensor_value": row.sensor_value,
                    "current_time": row.current_time.isoformat(),
                }
                for row in self._rows
            ],
            "rollups": [
                {"table": table, "key": key, "sensor": sensor, "total": total}
                for (table, key, sensor), total in sorted(self._rollups.items())
            ],
        }
        try:
            self.persistence_path.write_text(json.dumps(payload, indent=2))
            self._loaded_mtime = self.persistence_path.stat().st_mtime
        except OSError as exc:
            raise StoreError(f"Failed to persist readings to {self.persistence_path}.") from exc

    def _reload_if_changed(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return
        if self.persistence_path.stat().st_mtime != self._loaded_mtime:
            self._load_from_disk()

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
            mtime = self.persistence_path.stat().st_mtime
        except (OSError, json.JSONDecodeError):
            return

        self._rows = [
            HistoricalRow(
                batch_id=int(item["batch_id"]),
                sensor=item["sensor"],
                timestamp=int(item["timestamp"]),
                sensor_value=float(item["sensor_value"]),
                current_time=as_utc(datetime.fromisoformat(item["current_time"])),
            )
            for item in data.get("historical_data", [])
        ]
        self._rollups = {
            (item["table"], item["key"], item["sensor"]): float(item["total"])
            for item in data.get("rollups", [])
        }
        self._loaded_mtime = mtime
