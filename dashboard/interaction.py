"""Focus and hover behaviour of the channel lines.

The page applies these through ``Plotly.restyle``: every opacity list here is
aligned with the scene's trace order, so the browser only looks values up.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence
from zoneinfo import ZoneInfo

from dashboard.chart import FULL_EMPHASIS, ChartScene
from models.records import CHANNELS

TOGGLE_DIM_EMPHASIS = 0.1
HOVER_DIM_EMPHASIS = 0.2
TOOLTIP_OFFSET_X = 5
TOOLTIP_OFFSET_Y = -28
DEFAULT_DISPLAY_TZ = "Asia/Kolkata"


@dataclass(frozen=True)
class Tooltip:
    channel: str
    value: float
    timestamp: datetime
    display_time: str

    @property
    def html(self) -> str:
        return f"Sensor: {self.channel}<br>Value: {self.value}<br>Time: {self.display_time}"


def format_display_time(value: datetime, tz: ZoneInfo) -> str:
    """Render ``value`` in ``tz`` as ``D/M/YYYY, h:mm:ss am``."""
    local = value.astimezone(tz)
    hour = local.hour % 12 or 12
    suffix = "am" if local.hour < 12 else "pm"
    return f"{local.day}/{local.month}/{local.year}, {hour}:{local:%M:%S} {suffix}"


def toggle_levels(channel: str, channels: Sequence[str] = CHANNELS) -> Dict[str, float]:
    return {
        name: FULL_EMPHASIS if name == channel else TOGGLE_DIM_EMPHASIS for name in channels
    }


class InteractionController:
    """Opacity levels and tooltips for toggle, hover and leave on one scene.

    Toggle focuses one line and dims the others to a low but visible level. Hover
    dims the siblings of the hovered line and shows its most recent value. Leave
    puts every line back to full emphasis.
    """

    def __init__(self, scene: ChartScene, display_tz: str = DEFAULT_DISPLAY_TZ) -> None:
        self.scene = scene
        self.display_tz = ZoneInfo(display_tz)

    def toggle(self, channel: str) -> Optional[List[float]]:
        """Levels after focusing ``channel``; ``None`` when it has no line to focus."""
        order = self.scene.trace_order()
        if channel not in order:
            return None
        levels = toggle_levels(channel, order)
        return [levels[name] for name in order]

    def hover(self, channel: str) -> Optional[List[float]]:
        order = self.scene.trace_order()
        if channel not in order:
            return None
        return [FULL_EMPHASIS if name == channel else HOVER_DIM_EMPHASIS for name in order]

    def leave(self) -> List[float]:
        return [FULL_EMPHASIS for _ in self.scene.trace_order()]

    def tooltip(self, channel: str) -> Optional[Tooltip]:
        handle = self.scene.paths.get(channel)
        if handle is None:
            return None
        latest = handle.latest
        return Tooltip(
            channel=channel,
            value=latest.value,
            timestamp=latest.timestamp,
            display_time=format_display_time(latest.timestamp, self.display_tz),
        )

    def bindings(self, channels: Sequence[str] = CHANNELS) -> Dict[str, Any]:
        """Everything the page script needs to react to events on this scene."""
        toggle: Dict[str, List[float]] = {}
        hover: Dict[str, List[float]] = {}
        tooltips: Dict[str, str] = {}
        for channel in channels:
            levels = self.toggle(channel)
            if levels is None:
                continue
            toggle[channel] = levels
            hover[channel] = self.hover(channel) or []
            tip = self.tooltip(channel)
            if tip is not None:
                tooltips[channel] = tip.html
        return {"toggle": toggle, "hover": hover, "leave": self.leave(), "tooltips": tooltips}


@dataclass(frozen=True)
class ToggleControl:
    """Button that focuses one channel."""

    channel: str
    color: str
