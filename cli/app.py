from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_ingest_report, render_snapshot
from dashboard.page import DashboardPage
from dashboard.poller import Poller
from dashboard.renderer import Dashboard
from dashboard.window import WINDOW_CHOICES
from datastore.store import build_default_store
from logging_config import configure_logging
from services.ingest import IngestService


@dataclass
class CLIState:
    config: CLIConfig


app = typer.Typer(
    help="Sensor dashboard watcher and data tools.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


def _load_config(**options: Any) -> CLIConfig:
    try:
        return load_config(**options)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="DASHBOARD_DISPLAY_TZ") from exc


def _validate_window(value: Optional[str]) -> Optional[str]:
    if value is not None and value not in WINDOW_CHOICES:
        raise typer.BadParameter(f"Window must be one of: {', '.join(WINDOW_CHOICES)}.")
    return value


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Aggregator base URL (defaults to API_BASE_URL env or http://localhost:3000).",
    ),
    poll_interval: Optional[float] = typer.Option(
        None,
        "--poll-interval",
        help="Seconds between polls of the aggregator.",
    ),
) -> None:
    """Entry point for the CLI."""
    configure_logging()
    ctx.obj = CLIState(config=_load_config(base_url=base_url, poll_interval=poll_interval))


def _build_dashboard(
    ctx: typer.Context,
    window: Optional[str],
    output: Optional[Path],
    write_page: bool = True,
) -> tuple[Poller, Dashboard, CLIConfig]:
    state = _get_state(ctx)
    config = _load_config(
        base_url=state.config.base_url,
        poll_interval=state.config.poll_interval,
        window=window,
        output=output,
    )
    client = ApiClient(config)
    ctx.call_on_close(client.close)
    page = DashboardPage(config.output, refresh_seconds=config.poll_interval) if write_page else None
    dashboard = Dashboard(window=config.window, display_tz=config.display_tz, page=page)
    return Poller(client, dashboard), dashboard, config


@app.command("watch")
def watch_command(
    ctx: typer.Context,
    window: Optional[str] = typer.Option(
        None, "--window", "-w", callback=_validate_window, help="Recency window to display."
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", dir_okay=False, help="Path of the rendered dashboard page."
    ),
    iterations: int = typer.Option(
        0, "--iterations", min=0, help="Stop after this many polls (0 polls forever)."
    ),
) -> None:
    """Poll the aggregator and keep the dashboard page up to date."""
    poller, _dashboard, config = _build_dashboard(ctx, window, output)
    typer.echo(
        f"Polling {config.base_url} every {config.poll_interval}s "
        f"(window={config.window}), writing {config.output}"
    )
    try:
        successes = poller.run(config.poll_interval, iterations=iterations or None)
    except KeyboardInterrupt:
        typer.echo("Stopped.")
        return
    typer.echo(f"Completed {iterations} polls, {successes} successful.")


@app.command("snapshot")
def snapshot_command(
    ctx: typer.Context,
    window: Optional[str] = typer.Option(
        None, "--window", "-w", callback=_validate_window, help="Recency window to display."
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", dir_okay=False, help="Also write the dashboard page here."
    ),
) -> None:
    """Poll once and summarise what the chart shows."""
    poller, dashboard, _config = _build_dashboard(ctx, window, output, write_page=output is not None)
    if not poller.refresh():
        typer.secho("Failed to fetch data from the aggregator.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    render_snapshot(dashboard)


@app.command("ingest")
def ingest_command(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Path to CSV file."),
    batch_id: Optional[int] = typer.Option(
        None, "--batch-id", help="Identifier of the first batch (defaults to the current epoch ms)."
    ),
) -> None:
    """Write readings from a CSV file (sensor,timestamp,value) into the reading store."""
    store = build_default_store()
    try:
        with file.open("r", encoding="utf-8", newline="") as handle:
            report = IngestService(store).ingest_csv(handle, first_batch_id=batch_id)
    except ValueError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc
    finally:
        store.close()
    render_ingest_report(report)
    if report.failed_writes:
        raise typer.Exit(code=1)
