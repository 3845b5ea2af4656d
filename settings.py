from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_PORT_ENV = "PORT"
_STORE_BACKEND_ENV = "READING_STORE_BACKEND"
_STORE_PATH_ENV = "READING_STORE_PATH"
_CONTACT_POINT_ENV = "CASSANDRA_CONTACT_POINT"
_LOCAL_DC_ENV = "CASSANDRA_LOCAL_DC"
_KEYSPACE_ENV = "CASSANDRA_KEYSPACE"
_STATIC_DIR_ENV = "DASHBOARD_STATIC_DIR"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_STORE_BACKENDS = ("cassandra", "memory")


@dataclass(frozen=True)
class Settings:
    port: int
    store_backend: str
    store_path: Optional[str]
    contact_point: str
    local_datacenter: str
    keyspace: str
    static_dir: str
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_port(default: int) -> int:
    value = os.getenv(_PORT_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if 0 < parsed < 65536 else default


def _read_store_backend(default: str) -> str:
    candidate = _read_str_env(_STORE_BACKEND_ENV, default).lower()
    return candidate if candidate in _STORE_BACKENDS else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        port=_read_port(3000),
        store_backend=_read_store_backend("cassandra"),
        store_path=_read_optional_env(_STORE_PATH_ENV, None),
        contact_point=_read_str_env(_CONTACT_POINT_ENV, "localhost:9999"),
        local_datacenter=_read_str_env(_LOCAL_DC_ENV, "datacenter1"),
        keyspace=_read_str_env(_KEYSPACE_ENV, "rabbitmq"),
        static_dir=_read_str_env(_STATIC_DIR_ENV, "."),
        log_level=_read_log_level("INFO"),
    )
