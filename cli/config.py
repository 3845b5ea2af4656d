from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dashboard.interaction import DEFAULT_DISPLAY_TZ
from dashboard.window import WINDOW_CHOICES

DEFAULT_BASE_URL = "http://localhost:3000"
DEFAULT_POLL_INTERVAL = 5.0
DEFAULT_WINDOW = "5min"
DEFAULT_OUTPUT = "index.html"

_BASE_URL_ENV = "API_BASE_URL"
_POLL_INTERVAL_ENV = "DASHBOARD_POLL_INTERVAL"
_WINDOW_ENV = "DASHBOARD_WINDOW"
_OUTPUT_ENV = "DASHBOARD_OUTPUT"
_DISPLAY_TZ_ENV = "DASHBOARD_DISPLAY_TZ"


@dataclass(frozen=True)
class CLIConfig:
    base_url: str = DEFAULT_BASE_URL
    poll_interval: float = DEFAULT_POLL_INTERVAL
    window: str = DEFAULT_WINDOW
    output: Path = Path(DEFAULT_OUTPUT)
    display_tz: str = DEFAULT_DISPLAY_TZ


def _read_float(value: Optional[str], default: float) -> float:
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_str(value: Optional[str], default: str) -> str:
    if value is None:
        return default
    return value.strip() or default


def _read_window(value: Optional[str], default: str) -> str:
    candidate = _read_str(value, default)
    return candidate if candidate in WINDOW_CHOICES else default


def _read_display_tz(value: Optional[str], default: str) -> str:
    candidate = _read_str(value, default)
    try:
        ZoneInfo(candidate)
    except (ZoneInfoNotFoundError, OSError, ValueError) as exc:
        raise ValueError(f"Unknown display timezone: {candidate!r}") from exc
    return candidate


def load_config(
    base_url: Optional[str] = None,
    poll_interval: Optional[float] = None,
    window: Optional[str] = None,
    output: Optional[Path] = None,
) -> CLIConfig:
    url = base_url or _read_str(os.getenv(_BASE_URL_ENV), DEFAULT_BASE_URL)
    if poll_interval is None:
        poll_interval = _read_float(os.getenv(_POLL_INTERVAL_ENV), DEFAULT_POLL_INTERVAL)
    if window is None:
        window = _read_window(os.getenv(_WINDOW_ENV), DEFAULT_WINDOW)
    if output is None:
        output = Path(_read_str(os.getenv(_OUTPUT_ENV), DEFAULT_OUTPUT))
    return CLIConfig(
        base_url=url.rstrip("/"),
        poll_interval=poll_interval,
        window=window,
        output=output,
        display_tz=_read_display_tz(os.getenv(_DISPLAY_TZ_ENV), DEFAULT_DISPLAY_TZ),
    )
