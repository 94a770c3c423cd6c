from datetime import date, timedelta

import pytest

from gantt_scheduler.models import Task
from gantt_scheduler.timescale import SnapType, TimeScaleMapper, grid_width, round_half_away, snap_days, snap_offset
from gantt_scheduler.work_calendar import WorkingCalendar
from gantt_scheduler.zoom import MAX_SCALE, MIN_SCALE, ZoomController

PROJECT_START = date(2024, 1, 1)


def _mapper(level_id: str, *, working_days_only: bool = False) -> TimeScaleMapper:
    zoom = ZoomController(initial_level_id=level_id)
    return TimeScaleMapper(PROJECT_START, zoom, WorkingCalendar(), working_days_only=working_days_only)


@pytest.mark.parametrize("level_id", ["day", "week", "month", "quarter"])
def test_calendar_mode_roundtrip_every_level(level_id: str) -> None:
    mapper = _mapper(level_id)
    for offset in range(-40, 120, 3):
        day = PROJECT_START + timedelta(days=offset)
        assert mapper.pixel_to_date(mapper.date_to_pixel(day)) == day


@pytest.mark.parametrize("level_id", ["day", "quarter"])
def test_roundtrip_holds_at_scale_extremes(level_id: str) -> None:
    mapper = _mapper(level_id)
    zoom = mapper.zoom
    for _ in range(6):
        zoom.zoom_out()
    extreme = PROJECT_START + timedelta(days=200)
    assert mapper.pixel_to_date(mapper.date_to_pixel(extreme)) == extreme
    for _ in range(10):
        zoom.zoom_in()
    assert mapper.pixel_to_date(mapper.date_to_pixel(extreme)) == extreme


WEEKEND_START = date(2024, 1, 6)
HOLIDAY = date(2024, 1, 17)


@pytest.mark.parametrize(
    ("level_id", "scale_steps"),
    [
        ("day", 0),
        ("week", 0),
        ("month", 0),
        ("quarter", 0),
        ("day", 5),
        ("quarter", -5),
    ],
)
def test_working_days_mode_roundtrip_every_level(level_id: str, scale_steps: int) -> None:
    zoom = ZoomController(initial_level_id=level_id)
    for _ in range(abs(scale_steps)):
        if scale_steps > 0:
            zoom.zoom_in()
        else:
            zoom.zoom_out()
    if scale_steps > 0:
        assert zoom.scale == MAX_SCALE
    elif scale_steps < 0:
        assert zoom.scale == MIN_SCALE
    calendar = WorkingCalendar(holidays=[HOLIDAY])
    mapper = TimeScaleMapper(WEEKEND_START, zoom, calendar, working_days_only=True)

    checked = 0
    for offset in range(-30, 90):
        day = WEEKEND_START + timedelta(days=offset)
        if calendar.is_working_day(day):
            assert mapper.pixel_to_date(mapper.date_to_pixel(day)) == day
            checked += 1
    assert checked > 60
    assert mapper.date_to_pixel(HOLIDAY + timedelta(days=1)) - mapper.date_to_pixel(HOLIDAY - timedelta(days=1)) == mapper.pixels_per_day


def test_working_days_mode_collapses_weekends() -> None:
    mapper = _mapper("day", working_days_only=True)

    # Fri Jan 5 and Mon Jan 8 are adjacent columns.
    assert mapper.date_to_pixel(date(2024, 1, 8)) - mapper.date_to_pixel(date(2024, 1, 5)) == 40
    assert mapper.shift_date(date(2024, 1, 5), 1) == date(2024, 1, 8)


def test_bar_geometry_covers_last_day() -> None:
    mapper = _mapper("day")

    assert mapper.bar_geometry(Task("A", date(2024, 1, 2), date(2024, 1, 4))) == (40.0, 120.0)
    assert mapper.bar_geometry(Task("M", date(2024, 1, 3), date(2024, 1, 3))) == (80.0, 0.0)


def test_round_half_away_from_zero() -> None:
    assert round_half_away(0.5) == 1
    assert round_half_away(-0.5) == -1
    assert round_half_away(1.49) == 1
    assert round_half_away(-2.5) == -3


def test_snap_is_idempotent() -> None:
    grid = grid_width(SnapType.WEEK, 6.0)
    assert grid == 42.0
    for raw in (-130.0, -21.0, 0.0, 20.9, 21.0, 97.5):
        once = snap_offset(raw, grid)
        assert once % grid == 0
        assert snap_offset(once, grid) == once


def test_grid_lines_follow_zoom_interval() -> None:
    mapper = _mapper("week")

    lines = mapper.grid_lines(PROJECT_START, date(2024, 1, 31))

    assert [day for _x, day in lines] == [date(2024, 1, day) for day in (1, 8, 15, 22, 29)]
    assert lines[1][0] == 42.0


def test_snap_steps_count_working_columns() -> None:
    assert snap_days(SnapType.DAY, 5) == 1
    assert snap_days(SnapType.WEEK) == 7
    assert snap_days(SnapType.WEEK, 5) == 5
    assert snap_days(SnapType.MONTH) == 30
    assert snap_days(SnapType.MONTH, 5) == 21


def test_week_snap_matches_gridlines_in_working_days_mode() -> None:
    mapper = _mapper("week", working_days_only=True)
    gridlines = mapper.grid_lines(PROJECT_START, date(2024, 2, 29))
    spacing = {round(right[0] - left[0], 6) for left, right in zip(gridlines, gridlines[1:])}

    assert spacing == {mapper.snap_width(SnapType.WEEK)}
    assert _mapper("week").snap_width(SnapType.WEEK) == 42.0
