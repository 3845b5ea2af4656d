"""The dashboard: history, one chart per recency window, and controls."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence

from dashboard.chart import ChartScene, RedrawResult
from dashboard.history import ClientHistory
from dashboard.interaction import DEFAULT_DISPLAY_TZ, InteractionController, ToggleControl
from dashboard.page import DashboardPage
from dashboard.window import WINDOW_CHOICES, RecencyWindow, compute_visible_window
from models.records import CHANNELS, Reading

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WindowView:
    """Visible readings and chart for one recency window."""

    def __init__(self, window: str, display_tz: str) -> None:
        self.window = window
        self.scene = ChartScene()
        self.interaction = InteractionController(self.scene, display_tz)
        self.visible: List[Reading] = []

    def redraw(self, readings: Sequence[Reading], now: datetime) -> Optional[RedrawResult]:
        self.visible = compute_visible_window(readings, self.window, now)
        return self.scene.redraw(self.visible)


class Dashboard:
    """Keeps a chart for every recency window so the page can switch between them.

    ``window`` is the selected one; ``scene``, ``visible`` and ``interaction`` refer
    to its view.
    """

    def __init__(
        self,
        window: str = RecencyWindow.five_minutes.value,
        display_tz: str = DEFAULT_DISPLAY_TZ,
        page: Optional[DashboardPage] = None,
        clock: Callable[[], datetime] = _utcnow,
        channels: Sequence[str] = CHANNELS,
    ) -> None:
        self.window = window
        self.display_tz = display_tz
        self.page = page
        self.channels = tuple(channels)
        self.history = ClientHistory()
        self.views: Dict[str, WindowView] = {}
        for selector in (*WINDOW_CHOICES, window):
            self._view(selector)
        self.controls: List[ToggleControl] = []
        self._clock = clock

    @property
    def view(self) -> WindowView:
        return self.views[self.window]

    @property
    def scene(self) -> ChartScene:
        return self.view.scene

    @property
    def interaction(self) -> InteractionController:
        return self.view.interaction

    @property
    def visible(self) -> List[Reading]:
        return self.view.visible

    def redraw(self) -> Optional[RedrawResult]:
        """Filter the history for every window and redraw their charts.

        Returns the result for the selected window.
        """
        readings = self.history.read()
        now = self._clock()
        results = {selector: view.redraw(readings, now) for selector, view in self.views.items()}
        logger.debug(
            "Charts redrawn",
            extra={"window": self.window, "point_count": len(self.visible)},
        )
        return results[self.window]

    def select_window(self, selector: str) -> Optional[RedrawResult]:
        logger.info("Window selection changed", extra={"window": selector})
        self.window = selector
        result = self._view(selector).redraw(self.history.read(), self._clock())
        self._publish()
        return result

    def on_history_replaced(self) -> Optional[RedrawResult]:
        result = self.redraw()
        self.ensure_toggle_controls()
        self._publish()
        return result

    def ensure_toggle_controls(self) -> List[ToggleControl]:
        if not self.controls:
            self.controls = [
                ToggleControl(channel=channel, color=self.scene.color_for(channel))
                for channel in self.channels
            ]
        return self.controls

    def _view(self, selector: str) -> WindowView:
        view = self.views.get(selector)
        if view is None:
            view = self.views[selector] = WindowView(selector, self.display_tz)
        return view

    def _publish(self) -> None:
        if self.page is None:
            return
        try:
            self.page.write(self)
        except OSError:
            logger.error(
                "Failed to write dashboard page to %s",
                self.page.output_path,
                exc_info=True,
            )
