from __future__ import annotations

import logging
from threading import Lock
from typing import Any, Dict, List, Optional

from cassandra import DriverException, OperationTimedOut
from cassandra.cluster import EXEC_PROFILE_DEFAULT, Cluster, ExecutionProfile, NoHostAvailable
from cassandra.policies import DCAwareRoundRobinPolicy

from datastore.store import ReadingStore, RollupPeriod, StoreError
from models.records import HistoricalRow, StoredReading, as_utc

logger = logging.getLogger(__name__)

_DRIVER_ERRORS = (DriverException, NoHostAvailable, OperationTimedOut)

SELECT_CHANNEL_CQL = (
    "SELECT current_time, sensor_value FROM historical_data "
    "WHERE sensor = ? ALLOW FILTERING"
)
INSERT_READING_CQL = (
    "INSERT INTO historical_data (batch_id, sensor, timestamp, sensor_value, current_time) "
    "VALUES (?, ?, ?, ?, ?)"
)
_ROLLUP_KEY_COLUMNS = {
    RollupPeriod.daily: "date",
    RollupPeriod.weekly: "week_start_date",
    RollupPeriod.monthly: "month_start_date",
}


def rollup_cql(period: RollupPeriod) -> str:
    key_column = _ROLLUP_KEY_COLUMNS[period]
    return (
        f"INSERT INTO {period.value} ({key_column}, sensor, total_sensor_value) "
        "VALUES (?, ?, ?)"
    )


class CassandraReadingStore(ReadingStore):
    """Reading store backed by a Cassandra keyspace.

    The session is opened on first use; the driver pools connections internally.
    """

    def __init__(
        self,
        host: str,
        port: int,
        local_datacenter: str,
        keyspace: str,
        cluster: Optional[Cluster] = None,
    ) -> None:
        self.host = host
        self.port = port
        self.local_datacenter = local_datacenter
        self.keyspace = keyspace
        self._cluster = cluster
        self._session: Any = None
        self._prepared: Dict[str, Any] = {}
        self._lock = Lock()

    def fetch_channel(self, channel: str) -> List[StoredReading]:
        rows = self._execute(SELECT_CHANNEL_CQL, (channel,))
        return [
            StoredReading(
                current_time=as_utc(row.current_time),
                sensor_value=float(row.sensor_value),
            )
            for row in rows
        ]

    def insert_reading(self, row: HistoricalRow) -> None:
        self._execute(
            INSERT_READING_CQL,
            (row.batch_id, row.sensor, row.timestamp, row.sensor_value, row.current_time),
        )

    def upsert_rollup(
        self, period: RollupPeriod, period_key: str, sensor: str, total: float
    ) -> None:
        self._execute(rollup_cql(period), (period_key, sensor, total))

    def close(self) -> None:
        with self._lock:
            if self._cluster is not None:
                self._cluster.shutdown()
                logger.info("Cassandra client connection closed.")
            self._cluster = None
            self._session = None
            self._prepared.clear()

    def _execute(self, cql: str, parameters: tuple) -> Any:
        try:
            session = self._connect()
            statement = self._prepare(session, cql)
            return session.execute(statement, parameters)
        except _DRIVER_ERRORS as exc:
            raise StoreError(f"Cassandra query failed: {exc}") from exc

    def _connect(self) -> Any:
        with self._lock:
            if self._session is not None:
                return self._session
            if self._cluster is None:
                profile = ExecutionProfile(
                    load_balancing_policy=DCAwareRoundRobinPolicy(local_dc=self.local_datacenter)
                )
                self._cluster = Cluster(
                    contact_points=[self.host],
                    port=self.port,
                    execution_profiles={EXEC_PROFILE_DEFAULT: profile},
                )
            self._session = self._cluster.connect(self.keyspace)
            logger.info(
                "Connected to Cassandra at %s:%s (keyspace %s)",
                self.host,
                self.port,
                self.keyspace,
            )
            return self._session

    def _prepare(self, session: Any, cql: str) -> Any:
        with self._lock:
            statement = self._prepared.get(cql)
            if statement is None:
                statement = session.prepare(cql)
                self._prepared[cql] = statement
            return statement
