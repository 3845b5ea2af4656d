from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import List

import pytest
from typer.testing import CliRunner

from cli.app import app
from dashboard.poller import PollError
from models.records import Reading


class StubClient:
    def __init__(self, config, readings: List[Reading] | None = None, fail: bool = False) -> None:
        self.config = config
        self.readings = readings or []
        self.fail = fail
        self.calls = 0
        self.closed = False

    def fetch_readings(self) -> List[Reading]:
        self.calls += 1
        if self.fail:
            raise PollError("Request failed with status 500: Error fetching data")
        return list(self.readings)

    def close(self) -> None:
        self.closed = True


def _recent(channel: str, minutes_ago: float, value: float) -> Reading:
    now = datetime.now(timezone.utc)
    return Reading(channel=channel, timestamp=now - timedelta(minutes=minutes_ago), value=value)


@pytest.fixture()
def runner(monkeypatch) -> CliRunner:
    monkeypatch.setattr("cli.app.configure_logging", lambda: None)
    return CliRunner()


def _install_stub(monkeypatch, stub: StubClient) -> None:
    def factory(config):
        stub.config = config
        return stub

    monkeypatch.setattr("cli.app.ApiClient", factory)


def test_snapshot_summarises_visible_window(monkeypatch, runner: CliRunner) -> None:
    stub = StubClient(
        config=None,
        readings=[
            _recent("sensor1", 1, 4.0),
            _recent("sensor2", 2, 8.0),
            _recent("sensor1", 3, 2.0),
            _recent("sensor2", 90, 1.0),
        ],
    )
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["--base-url", "http://agg:3000", "snapshot", "--window", "15min"])

    assert result.exit_code == 0, result.output
    assert "window: 15min" in result.stdout
    assert "visible_points: 3" in result.stdout
    assert "sensor1: 2 points, latest 4.0" in result.stdout
    assert stub.config.base_url == "http://agg:3000"
    assert stub.closed is True


def test_snapshot_reports_insufficient_points(monkeypatch, runner: CliRunner) -> None:
    _install_stub(monkeypatch, StubClient(config=None, readings=[_recent("sensor1", 1, 4.0)]))

    result = runner.invoke(app, ["snapshot"])

    assert result.exit_code == 0
    assert "Not enough data points" in result.stdout


def test_snapshot_fails_when_aggregator_errors(monkeypatch, runner: CliRunner) -> None:
    _install_stub(monkeypatch, StubClient(config=None, fail=True))

    result = runner.invoke(app, ["snapshot"])

    assert result.exit_code == 1


def test_snapshot_rejects_unknown_window(monkeypatch, runner: CliRunner) -> None:
    _install_stub(monkeypatch, StubClient(config=None))

    result = runner.invoke(app, ["snapshot", "--window", "1week"])

    assert result.exit_code == 2


def test_watch_writes_dashboard_page(monkeypatch, runner: CliRunner, tmp_path) -> None:
    stub = StubClient(
        config=None,
        readings=[_recent("sensor3", 1, 4.0), _recent("sensor3", 2, 5.0)],
    )
    _install_stub(monkeypatch, stub)
    output = tmp_path / "index.html"

    result = runner.invoke(
        app,
        ["--poll-interval", "0.01", "watch", "--output", str(output), "--iterations", "2"],
    )

    assert result.exit_code == 0, result.output
    assert stub.calls == 2
    assert "Completed 2 polls, 2 successful." in result.stdout
    page = output.read_text()
    assert 'class="sensorBtn"' in page
    assert "sensor3" in page
    assert stub.closed is True


def test_ingest_writes_rows_into_configured_store(monkeypatch, runner: CliRunner, tmp_path) -> None:
    store_path = tmp_path / "readings.json"
    monkeypatch.setenv("READING_STORE_BACKEND", "memory")
    monkeypatch.setenv("READING_STORE_PATH", str(store_path))
    csv_path = tmp_path / "data.csv"
    csv_path.write_text(
        "sensor,timestamp,value\n"
        "sensor1,2024-01-01T00:00:00Z,1.0\n"
        "sensor6,2024-01-01T00:00:00Z,1.0\n"
    )

    result = runner.invoke(app, ["ingest", str(csv_path), "--batch-id", "9"])

    assert result.exit_code == 0, result.output
    assert "rows_written: 1" in result.stdout
    assert "row 3: unknown sensor" in result.stdout
    payload = json.loads(store_path.read_text())
    assert [item["batch_id"] for item in payload["historical_data"]] == [9]


def test_ingest_rejects_file_without_required_columns(
    monkeypatch, runner: CliRunner, tmp_path
) -> None:
    monkeypatch.setenv("READING_STORE_BACKEND", "memory")
    csv_path = tmp_path / "data.csv"
    csv_path.write_text("sensor,value\nsensor1,1.0\n")

    result = runner.invoke(app, ["ingest", str(csv_path)])

    assert result.exit_code == 1


def test_unknown_display_timezone_is_a_usage_error(monkeypatch, runner: CliRunner) -> None:
    stub = StubClient(config=None)
    _install_stub(monkeypatch, stub)
    monkeypatch.setenv("DASHBOARD_DISPLAY_TZ", "Mars/Olympus_Mons")

    result = runner.invoke(app, ["snapshot"])

    assert result.exit_code == 2
    assert stub.calls == 0
