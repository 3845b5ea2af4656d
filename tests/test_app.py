from __future__ import annotations

from pathlib import Path
from typing import Iterator, List, Optional

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from datastore.memory_store import InMemoryReadingStore
from datastore.store import StoreError
from models.records import StoredReading
from services.aggregator import Aggregator, build_default_aggregator

from factories import row


class FailingStore(InMemoryReadingStore):
    def fetch_channel(self, channel: str) -> List[StoredReading]:
        if channel == "sensor2":
            raise StoreError("store unreachable")
        return super().fetch_channel(channel)


def _client_for(
    store: InMemoryReadingStore,
    static_dir: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> TestClient:
    aggregators: dict[int, Aggregator] = {}

    def build_test_aggregator() -> Aggregator:
        aggregator = aggregators.get(0)
        if aggregator is None:
            aggregator = Aggregator(store=store)
            aggregators[0] = aggregator
        return aggregator

    def cache_clear() -> None:
        while aggregators:
            _, aggregator = aggregators.popitem()
            aggregator.shutdown()

    build_test_aggregator.cache_clear = cache_clear  # type: ignore[attr-defined]

    monkeypatch.setenv("DASHBOARD_STATIC_DIR", str(static_dir))
    monkeypatch.setattr("app.main.build_default_aggregator", build_test_aggregator)
    monkeypatch.setattr("app.api.build_default_aggregator", build_test_aggregator)
    return TestClient(create_app())


@pytest.fixture
def api_client(tmp_path, monkeypatch) -> Iterator[TestClient]:
    store = InMemoryReadingStore(
        [
            row("sensor1", minutes_ago=10, value=1.5),
            row("sensor2", minutes_ago=1, value=2.5),
            row("sensor1", minutes_ago=5, value=3.5),
        ]
    )
    with _client_for(store, tmp_path, monkeypatch) as client:
        yield client


def test_data_endpoint_returns_readings_newest_first(api_client: TestClient) -> None:
    response = api_client.get("/api/data")

    assert response.status_code == 200
    payload = response.json()
    assert payload == [
        {"current_time": "2024-05-01T11:59:00.000Z", "sensor_value": 2.5, "sensor": "sensor2"},
        {"current_time": "2024-05-01T11:55:00.000Z", "sensor_value": 3.5, "sensor": "sensor1"},
        {"current_time": "2024-05-01T11:50:00.000Z", "sensor_value": 1.5, "sensor": "sensor1"},
    ]


def test_data_endpoint_reports_generic_error_when_a_channel_fails(
    tmp_path, monkeypatch
) -> None:
    store = FailingStore([row("sensor1", minutes_ago=1, value=1.0)])

    with _client_for(store, tmp_path, monkeypatch) as client:
        response = client.get("/api/data")

    assert response.status_code == 500
    assert response.json() == {"error": "Error fetching data"}


def test_index_serves_rendered_dashboard_page(tmp_path, monkeypatch) -> None:
    (tmp_path / "index.html").write_text("<html><body>rendered chart</body></html>")

    with _client_for(InMemoryReadingStore(), tmp_path, monkeypatch) as client:
        response = client.get("/")

    assert response.status_code == 200
    assert "rendered chart" in response.text
    assert response.headers["content-type"].startswith("text/html")


def test_index_falls_back_to_placeholder_before_first_render(api_client: TestClient) -> None:
    response = api_client.get("/")

    assert response.status_code == 200
    assert "has not been rendered yet" in response.text


def test_static_assets_are_served_from_static_dir(tmp_path, monkeypatch) -> None:
    (tmp_path / "style.css").write_text("body { color: black; }")

    with _client_for(InMemoryReadingStore(), tmp_path, monkeypatch) as client:
        response = client.get("/style.css")
        missing = client.get("/missing.css")

    assert response.status_code == 200
    assert "color: black" in response.text
    assert missing.status_code == 404


def test_healthcheck(api_client: TestClient) -> None:
    response = api_client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_lifespan_shuts_down_aggregator_and_clears_cache(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("READING_STORE_BACKEND", "memory")
    monkeypatch.setenv("DASHBOARD_STATIC_DIR", str(tmp_path))
    app = create_app()

    aggregator_during: Optional[Aggregator] = None
    with TestClient(app):
        aggregator_during = build_default_aggregator()
        assert aggregator_during.executor._shutdown is False

    assert aggregator_during.executor._shutdown is True
    aggregator_after = build_default_aggregator()
    try:
        assert aggregator_after is not aggregator_during
    finally:
        aggregator_after.shutdown()
