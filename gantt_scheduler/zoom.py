"""Zoom ladder and continuous scale for the timeline."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import date
from typing import Callable, List, Optional, Sequence

logger = logging.getLogger(__name__)

MIN_SCALE = 0.5
MAX_SCALE = 3.0
SCALE_STEP = 1.5
_WHEEL_DEBOUNCE_SECONDS = 0.05


@dataclass(frozen=True)
class ZoomLevel:
    id: str
    name: str
    base_pixels_per_day: float
    label_format: str
    grid_interval: int  # days between gridlines
    snap_interval: int  # days per snap step
    min_visible_days: int
    max_visible_days: int


# Ordered finest to coarsest.
DEFAULT_ZOOM_LEVELS: Sequence[ZoomLevel] = (
    ZoomLevel("day", "Day", 40.0, "%d %b", 1, 1, 1, 30),
    ZoomLevel("week", "Week", 6.0, "Wk %V", 7, 1, 7, 180),
    ZoomLevel("month", "Month", 1.5, "%b %Y", 30, 7, 30, 365),
    ZoomLevel("quarter", "Quarter", 0.5, "Q%q %Y", 90, 30, 90, 1095),
)

ZoomListener = Callable[[float], None]


class ZoomController:
    """Current rung on the zoom ladder plus a continuous scale factor.

    Listeners receive the effective pixels-per-day once per actual change.
    ``finest_level_id`` caps how far in a restricted caller may zoom.
    """

    def __init__(
        self,
        levels: Sequence[ZoomLevel] = DEFAULT_ZOOM_LEVELS,
        initial_level_id: Optional[str] = None,
        *,
        finest_level_id: Optional[str] = None,
        on_zoom_changed: Optional[ZoomListener] = None,
    ) -> None:
        if not levels:
            raise ValueError("At least one zoom level is required")
        self._levels = list(levels)
        self._min_index = 0
        if finest_level_id is not None:
            self._min_index = self._index_of(finest_level_id)
            if self._min_index < 0:
                raise ValueError(f"Unknown zoom level: {finest_level_id}")
        index = self._index_of(initial_level_id) if initial_level_id else self._min_index
        self._index = max(index, self._min_index)
        self._scale = 1.0
        self._listeners: List[ZoomListener] = []
        self._last_wheel = float("-inf")
        if on_zoom_changed is not None:
            self.subscribe(on_zoom_changed)

    # --- State ---------------------------------------------------------------

    @property
    def level(self) -> ZoomLevel:
        return self._levels[self._index]

    @property
    def scale(self) -> float:
        return self._scale

    @property
    def effective_pixels_per_day(self) -> float:
        return self.level.base_pixels_per_day * self._scale

    @property
    def snap_interval(self) -> int:
        return self.level.snap_interval

    @property
    def grid_interval(self) -> int:
        return self.level.grid_interval

    @property
    def label_format(self) -> str:
        return self.level.label_format

    def available_levels(self) -> List[ZoomLevel]:
        return self._levels[self._min_index:]

    def subscribe(self, listener: ZoomListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: ZoomListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # --- Transitions ---------------------------------------------------------

    def zoom_in(self) -> bool:
        """Move one rung finer, or scale up when already on the finest rung."""
        if self._index > self._min_index:
            return self._set(self._index - 1, 1.0)
        return self._set(self._index, min(self._scale * SCALE_STEP, MAX_SCALE))

    def zoom_out(self) -> bool:
        """Move one rung coarser, or scale down when already on the coarsest."""
        if self._index < len(self._levels) - 1:
            return self._set(self._index + 1, 1.0)
        return self._set(self._index, max(self._scale / SCALE_STEP, MIN_SCALE))

    def zoom_to_level(self, level_id: str) -> bool:
        index = self._index_of(level_id)
        if index < 0:
            logger.warning("Unknown zoom level %r", level_id)
            return False
        if index < self._min_index:
            logger.info("Zoom level %r is not available", level_id)
            return False
        self._set(index, 1.0)
        return True

    def fit_to_span(self, start: date, end: date, container_width_px: float) -> ZoomLevel:
        """Pick the rung whose density best fits the span into the container.

        Ties go to the coarser rung.
        """
        span_days = max(1, (end - start).days)
        target = container_width_px / span_days
        best_index = self._min_index
        best_fit = abs(self._levels[best_index].base_pixels_per_day - target)
        for index in range(self._min_index + 1, len(self._levels)):
            level = self._levels[index]
            fit = abs(level.base_pixels_per_day - target)
            coarser_tie = fit == best_fit and level.base_pixels_per_day < self._levels[best_index].base_pixels_per_day
            if fit < best_fit or coarser_tie:
                best_fit = fit
                best_index = index
        self._set(best_index, 1.0)
        return self.level

    def handle_wheel(self, delta_y: float, modifier_pressed: bool, now: Optional[float] = None) -> bool:
        """Ctrl+wheel zoom; wheel-up zooms in. Bursts inside 50 ms are dropped."""
        if not modifier_pressed or delta_y == 0:
            return False
        moment = time.monotonic() if now is None else now
        if moment - self._last_wheel < _WHEEL_DEBOUNCE_SECONDS:
            return False
        self._last_wheel = moment
        return self.zoom_in() if delta_y < 0 else self.zoom_out()

    # --- Internals -----------------------------------------------------------

    def _index_of(self, level_id: Optional[str]) -> int:
        for index, level in enumerate(self._levels):
            if level.id == level_id:
                return index
        return -1

    def _set(self, index: int, scale: float) -> bool:
        if index == self._index and scale == self._scale:
            return False
        self._index = index
        self._scale = scale
        pixels_per_day = self.effective_pixels_per_day
        logger.debug("Zoom changed to %s x%.2f (%.3f px/day)", self.level.id, scale, pixels_per_day)
        for listener in list(self._listeners):
            listener(pixels_per_day)
        return True
