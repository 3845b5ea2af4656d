"""Multi-line chart of the visible readings, one smoothed path per channel."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, FrozenSet, List, Mapping, Optional, Sequence, Tuple

import plotly.graph_objects as go

from models.records import Reading

logger = logging.getLogger(__name__)

LINE_COLORS: Dict[str, str] = {
    "sensor1": "rgb(157, 61, 240)",
    "sensor2": "rgb(240, 61, 61)",
    "sensor3": "rgb(61, 240, 94)",
    "sensor4": "rgb(240, 195, 61)",
    "sensor5": "rgb(61, 195, 240)",
}
DEFAULT_LINE_COLOR = "rgb(90, 90, 90)"

CHART_WIDTH = 1600
CHART_HEIGHT = 800
CHART_MARGIN = {"t": 20, "r": 30, "b": 80, "l": 40}
TIME_TICK_FORMAT = "%H:%M :: %Y-%m-%d"
TIME_TICK_COUNT = 5

FULL_EMPHASIS = 1.0
MIN_POINTS = 2


@dataclass(frozen=True)
class Domains:
    time: Tuple[datetime, datetime]
    value: Tuple[float, float]


@dataclass
class PathHandle:
    """A drawn channel line and the points it currently shows."""

    channel: str
    points: Tuple[Reading, ...]

    @property
    def latest(self) -> Reading:
        return max(self.points, key=lambda reading: reading.timestamp)


@dataclass(frozen=True)
class RedrawResult:
    domains: Domains
    created: FrozenSet[str]
    updated: FrozenSet[str]
    removed: FrozenSet[str]


def compute_domains(readings: Sequence[Reading]) -> Domains:
    timestamps = [reading.timestamp for reading in readings]
    return Domains(
        time=(min(timestamps), max(timestamps)),
        value=(0.0, max(reading.value for reading in readings)),
    )


def group_by_channel(readings: Sequence[Reading]) -> Dict[str, List[Reading]]:
    """Group readings by channel, keeping first-seen channel order and point order."""
    groups: Dict[str, List[Reading]] = {}
    for reading in readings:
        groups.setdefault(reading.channel, []).append(reading)
    return groups


class ChartScene:
    """Owns the figure and reconciles its traces against the visible channels."""

    def __init__(
        self,
        width: int = CHART_WIDTH,
        height: int = CHART_HEIGHT,
        colors: Mapping[str, str] = LINE_COLORS,
    ) -> None:
        self.colors = dict(colors)
        self.paths: Dict[str, PathHandle] = {}
        self.domains: Optional[Domains] = None
        self.figure = go.Figure()
        self.figure.update_layout(
            width=width,
            height=height,
            margin=CHART_MARGIN,
            showlegend=False,
            hovermode="closest",
            uirevision="keep",
            plot_bgcolor="white",
            xaxis={
                "type": "date",
                "tickformat": TIME_TICK_FORMAT,
                "nticks": TIME_TICK_COUNT,
                "showline": True,
                "linecolor": "black",
            },
            yaxis={"type": "linear", "showline": True, "linecolor": "black"},
        )

    def redraw(self, readings: Sequence[Reading]) -> Optional[RedrawResult]:
        """Redraw axes and lines for ``readings``.

        With fewer than two points nothing is touched and ``None`` is returned.
        """
        if len(readings) < MIN_POINTS:
            logger.warning(
                "Not enough data points to update the chart.",
                extra={"point_count": len(readings)},
            )
            return None

        domains = compute_domains(readings)
        groups = group_by_channel(readings)
        drawn = set(self.paths)
        incoming = set(groups)
        created = incoming - drawn
        updated = incoming & drawn
        removed = drawn - incoming

        if removed:
            for channel in removed:
                del self.paths[channel]
            self.figure.data = tuple(
                trace for trace in self.figure.data if trace.uid not in removed
            )

        for channel, points in groups.items():
            if channel in created:
                handle = PathHandle(channel=channel, points=tuple(points))
                self.paths[channel] = handle
                self.figure.add_trace(self._build_trace(handle))
            else:
                handle = self.paths[channel]
                handle.points = tuple(points)
                self.figure.update_traces(self._trace_data(handle), selector={"uid": channel})

        self.domains = domains
        self.figure.update_xaxes(range=list(domains.time))
        self.figure.update_yaxes(range=list(domains.value))
        return RedrawResult(
            domains=domains,
            created=frozenset(created),
            updated=frozenset(updated),
            removed=frozenset(removed),
        )

    def trace_order(self) -> List[str]:
        return [trace.uid for trace in self.figure.data]

    def color_for(self, channel: str) -> str:
        return self.colors.get(channel, DEFAULT_LINE_COLOR)

    def _build_trace(self, handle: PathHandle) -> go.Scatter:
        return go.Scatter(
            uid=handle.channel,
            name=handle.channel,
            mode="lines",
            line={"color": self.color_for(handle.channel), "shape": "spline", "smoothing": 1.0},
            opacity=FULL_EMPHASIS,
            hoverinfo="none",
            **self._trace_data(handle),
        )

    @staticmethod
    def _trace_data(handle: PathHandle) -> dict:
        ordered = sorted(handle.points, key=lambda reading: reading.timestamp)
        return {
            "x": [reading.timestamp for reading in ordered],
            "y": [reading.value for reading in ordered],
        }
