"""Date <-> pixel conversion for the timeline, plus snap-to-grid helpers."""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import List, Optional, Tuple

from .models import Task
from .work_calendar import WorkingCalendar
from .zoom import ZoomController


class SnapType(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


_SNAP_DAYS = {
    SnapType.DAY: 1,
    SnapType.WEEK: 7,
    SnapType.MONTH: 30,
}


@dataclass
class SnapConfig:
    enabled: bool = True
    type: SnapType = SnapType.DAY

    def __post_init__(self) -> None:
        self.type = SnapType(self.type)


def snap_days(snap_type: SnapType, days_per_week: int = 7) -> int:
    """Columns in one snap step when a week is ``days_per_week`` columns wide."""
    days = _SNAP_DAYS[SnapType(snap_type)]
    if days == 1 or days_per_week == 7:
        return days
    return max(1, round_half_away(days * days_per_week / 7))


def grid_width(snap_type: SnapType, pixels_per_day: float, days_per_week: int = 7) -> float:
    """Pixel width of one snap step at the given density."""
    return snap_days(snap_type, days_per_week) * pixels_per_day


def round_half_away(value: float) -> int:
    """Round to the nearest integer with halves moving away from zero."""
    if value < 0:
        return -math.floor(-value + 0.5)
    return math.floor(value + 0.5)


def snap_offset(offset_px: float, grid_px: float) -> float:
    """Round a pixel offset to the nearest multiple of ``grid_px``."""
    if grid_px <= 0:
        return offset_px
    return round_half_away(offset_px / grid_px) * grid_px


class TimeScaleMapper:
    """Bidirectional date/pixel mapping under the current zoom.

    In working-days-only mode weekends and holidays occupy zero width and all
    day arithmetic goes through the working calendar; otherwise every
    calendar day is one column.
    """

    def __init__(
        self,
        project_start: date,
        zoom: ZoomController,
        calendar: Optional[WorkingCalendar] = None,
        *,
        working_days_only: bool = False,
    ) -> None:
        self.project_start = project_start
        self.zoom = zoom
        self.calendar = calendar or WorkingCalendar()
        self.working_days_only = working_days_only

    @property
    def pixels_per_day(self) -> float:
        return self.zoom.effective_pixels_per_day

    @property
    def day_calendar(self) -> WorkingCalendar:
        """Calendar used for every day count in the current mode."""
        if self.working_days_only:
            return self.calendar
        return WorkingCalendar.continuous()

    def set_working_days_only(self, enabled: bool) -> None:
        self.working_days_only = enabled

    def snap_width(self, snap_type: SnapType) -> float:
        """Pixel width of one snap step; weekends take no columns in working-days mode."""
        days_per_week = len(self.calendar.working_weekdays) if self.working_days_only else 7
        return grid_width(snap_type, self.pixels_per_day, days_per_week)

    def date_to_pixel(self, day: date) -> float:
        if self.working_days_only:
            days = self.calendar.working_days_between(self.project_start, day)
        else:
            days = (day - self.project_start).days
        return days * self.pixels_per_day

    def pixel_to_date(self, pixel: float) -> date:
        return self.shift_date(self.project_start, self.pixels_to_days(pixel))

    def pixels_to_days(self, pixel: float) -> int:
        return round_half_away(pixel / self.pixels_per_day)

    def shift_date(self, day: date, days: int) -> date:
        """Move ``day`` by whole days in the current mode."""
        if self.working_days_only:
            return self.calendar.add_working_days(day, days)
        return day + timedelta(days=days)

    def bar_geometry(self, task: Task) -> Tuple[float, float]:
        """Left edge and width of a task bar.

        The bar covers the task's last day, so its right edge is the start of
        the following day. Milestones get zero width.
        """
        left = self.date_to_pixel(task.start)
        if task.is_milestone():
            return left, 0.0
        right = self.date_to_pixel(task.end) + self.pixels_per_day
        return left, max(0.0, right - left)

    def grid_lines(self, start: date, end: date) -> List[Tuple[float, date]]:
        """Gridline positions between two dates at the current grid interval."""
        interval = max(1, self.zoom.grid_interval)
        lines: List[Tuple[float, date]] = []
        current = start
        while current <= end:
            if not self.working_days_only or self.calendar.is_working_day(current):
                lines.append((self.date_to_pixel(current), current))
            current += timedelta(days=interval)
        return lines
