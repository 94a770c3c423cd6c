from datetime import date
from typing import List

import pytest

from gantt_scheduler.zoom import MAX_SCALE, MIN_SCALE, ZoomController


def test_zoom_in_walks_toward_finer_levels() -> None:
    zoom = ZoomController(initial_level_id="month")

    assert zoom.zoom_in()
    assert zoom.level.id == "week"
    assert zoom.zoom_in()
    assert zoom.level.id == "day"
    assert zoom.scale == 1.0


def test_scale_clamps_at_extremes() -> None:
    zoom = ZoomController(initial_level_id="day")
    for _ in range(10):
        zoom.zoom_in()
    assert zoom.scale == MAX_SCALE
    assert not zoom.zoom_in()

    zoom.zoom_to_level("quarter")
    for _ in range(10):
        zoom.zoom_out()
    assert zoom.scale == MIN_SCALE
    assert not zoom.zoom_out()


def test_listeners_notified_once_per_change() -> None:
    seen: List[float] = []
    zoom = ZoomController(initial_level_id="week", on_zoom_changed=seen.append)

    zoom.zoom_out()
    zoom.zoom_to_level("month")
    zoom.zoom_in()

    assert seen == [1.5, 6.0]


def test_unsubscribed_listener_is_silent() -> None:
    seen: List[float] = []
    zoom = ZoomController()
    zoom.subscribe(seen.append)
    zoom.unsubscribe(seen.append)

    zoom.zoom_out()

    assert seen == []


def test_fit_to_span_prefers_closest_density() -> None:
    zoom = ZoomController(initial_level_id="day")

    assert zoom.fit_to_span(date(2024, 1, 1), date(2024, 1, 31), 180).id == "week"
    assert zoom.fit_to_span(date(2024, 1, 1), date(2025, 1, 1), 400).id == "month"


def test_fit_to_span_tie_goes_to_coarser_level() -> None:
    zoom = ZoomController(initial_level_id="day")

    # 1.0 px/day is exactly halfway between month (1.5) and quarter (0.5).
    assert zoom.fit_to_span(date(2024, 1, 1), date(2024, 1, 101), 100).id == "quarter"


def test_finest_level_limits_zoom_in() -> None:
    zoom = ZoomController(initial_level_id="day", finest_level_id="week")

    assert zoom.level.id == "week"
    assert not zoom.zoom_to_level("day")
    assert [level.id for level in zoom.available_levels()] == ["week", "month", "quarter"]
    zoom.zoom_in()
    assert zoom.level.id == "week"
    assert zoom.scale > 1.0


def test_unknown_finest_level_is_rejected() -> None:
    with pytest.raises(ValueError):
        ZoomController(finest_level_id="decade")


def test_wheel_needs_modifier_and_is_debounced() -> None:
    zoom = ZoomController(initial_level_id="week")

    assert not zoom.handle_wheel(-120, False, now=1.0)
    assert zoom.handle_wheel(-120, True, now=1.0)
    assert zoom.level.id == "day"
    assert not zoom.handle_wheel(120, True, now=1.02)
    assert zoom.handle_wheel(120, True, now=1.2)
    assert zoom.level.id == "week"


def test_level_accessors_follow_current_rung() -> None:
    zoom = ZoomController(initial_level_id="month")

    assert (zoom.grid_interval, zoom.snap_interval, zoom.label_format) == (30, 7, "%b %Y")
    assert zoom.effective_pixels_per_day == 1.5
