from __future__ import annotations

from typing import Any, Iterable

import typer

from dashboard.interaction import format_display_time
from dashboard.renderer import Dashboard
from models.records import isoformat_utc
from services.ingest import IngestReport


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_snapshot(dashboard: Dashboard) -> None:
    echo_heading("Dashboard Snapshot")
    echo_key_values(
        [
            ("window", dashboard.window),
            ("history_size", len(dashboard.history)),
            ("visible_points", len(dashboard.visible)),
        ]
    )

    typer.echo()
    echo_heading("Axes")
    domains = dashboard.scene.domains
    if domains is None:
        typer.echo("Not enough data points to draw the chart.")
    else:
        start, end = domains.time
        echo_key_values(
            [
                ("time", f"{isoformat_utc(start)} .. {isoformat_utc(end)}"),
                ("value", f"{domains.value[0]} .. {domains.value[1]}"),
            ]
        )

    typer.echo()
    echo_heading("Channels")
    if not dashboard.scene.paths:
        typer.echo("No channels drawn.")
    for channel, handle in dashboard.scene.paths.items():
        latest = handle.latest
        display_time = format_display_time(latest.timestamp, dashboard.interaction.display_tz)
        typer.echo(
            f"  - {channel}: {len(handle.points)} points, latest {latest.value} ({display_time})"
        )


def render_ingest_report(report: IngestReport) -> None:
    echo_heading("Ingest Result")
    echo_key_values(
        [
            ("batches", report.batches),
            ("rows_written", report.rows_written),
            ("failed_writes", report.failed_writes),
        ]
    )

    typer.echo()
    echo_heading("Skipped Rows")
    if report.errors:
        for error in report.errors:
            typer.echo(f"  - row {error.row_number}: {error.reason}")
    else:
        typer.echo("No rows skipped.")
