"""Latest dataset pulled from the aggregator."""

from __future__ import annotations

from threading import Lock
from typing import Iterable, Tuple

from models.records import Reading


class ClientHistory:
    """Single-writer cache of the most recent complete poll.

    Every poll takes a sequence number from :meth:`begin_poll`; a response is only
    applied when its number is the latest one issued, so a slow response can never
    overwrite data from a newer poll.
    """

    def __init__(self) -> None:
        self._readings: Tuple[Reading, ...] = ()
        self._issued = 0
        self._lock = Lock()

    def begin_poll(self) -> int:
        with self._lock:
            self._issued += 1
            return self._issued

    def replace(self, sequence: int, readings: Iterable[Reading]) -> bool:
        with self._lock:
            if sequence != self._issued:
                return False
            self._readings = tuple(readings)
            return True

    def read(self) -> Tuple[Reading, ...]:
        with self._lock:
            return self._readings

    def __len__(self) -> int:
        return len(self._readings)
