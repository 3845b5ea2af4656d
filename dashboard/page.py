"""HTML page wrapping the charts and their controls."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List

from jinja2 import Environment, FileSystemLoader, select_autoescape

from dashboard.interaction import TOOLTIP_OFFSET_X, TOOLTIP_OFFSET_Y
from dashboard.window import WINDOW_CHOICES

if TYPE_CHECKING:
    from dashboard.renderer import Dashboard

logger = logging.getLogger(__name__)

_TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
CHART_DIV_PREFIX = "chart-"

_environment = Environment(
    loader=FileSystemLoader(str(_TEMPLATES_DIR)),
    autoescape=select_autoescape(["html"]),
)


class DashboardPage:
    """Renders the dashboard to a standalone HTML file.

    Every recency window gets its own chart panel; the window dropdown shows one
    panel at a time and remembers the choice in the URL fragment across reloads.
    """

    def __init__(self, output_path: Path, refresh_seconds: float = 5.0) -> None:
        self.output_path = output_path
        self.refresh_seconds = refresh_seconds

    def render(self, dashboard: Dashboard) -> str:
        panels: List[Dict[str, Any]] = []
        plotlyjs_included = False
        for index, (window, view) in enumerate(dashboard.views.items()):
            div_id = f"{CHART_DIV_PREFIX}{index}"
            chart_html = None
            if view.scene.domains is not None:
                chart_html = view.scene.figure.to_html(
                    full_html=False,
                    include_plotlyjs=False if plotlyjs_included else "cdn",
                    div_id=div_id,
                    post_script=f"bindChart('{div_id}');",
                )
                plotlyjs_included = True
            panels.append(
                {
                    "window": window,
                    "div_id": div_id,
                    "chart_html": chart_html,
                    "point_count": len(view.visible),
                    "bindings": view.interaction.bindings(dashboard.channels),
                }
            )
        template = _environment.get_template("dashboard.html")
        return template.render(
            panels=panels,
            bindings={panel["div_id"]: panel["bindings"] for panel in panels},
            panel_ids={panel["window"]: panel["div_id"] for panel in panels},
            tooltip_offset={"x": TOOLTIP_OFFSET_X, "y": TOOLTIP_OFFSET_Y},
            controls=dashboard.controls,
            window=dashboard.window,
            windows=WINDOW_CHOICES,
            refresh_ms=max(1, int(round(self.refresh_seconds))) * 1000,
            rendered_at=datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC"),
        )

    def write(self, dashboard: Dashboard) -> Path:
        html = self.render(dashboard)
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        staging = self.output_path.with_name(f".{self.output_path.name}.tmp")
        staging.write_text(html, encoding="utf-8")
        staging.replace(self.output_path)
        logger.debug("Dashboard page written to %s", self.output_path)
        return self.output_path
