from __future__ import annotations

from typing import Iterator

import pytest

from datastore.store import build_default_store
from services.aggregator import build_default_aggregator
from settings import get_settings


@pytest.fixture(autouse=True)
def _clear_cached_factories() -> Iterator[None]:
    caches = (get_settings, build_default_store, build_default_aggregator)
    for cache in caches:
        cache.cache_clear()
    yield
    for cache in caches:
        cache.cache_clear()
