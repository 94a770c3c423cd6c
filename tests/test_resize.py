from datetime import date
from typing import List, Tuple

from gantt_scheduler.interaction import InteractionEngine, InteractionPolicy, ResizeEdge
from gantt_scheduler.models import DependencyLink, Project, ResizeConstraint, Task
from gantt_scheduler.timescale import SnapConfig, SnapType, TimeScaleMapper
from gantt_scheduler.work_calendar import WorkingCalendar
from gantt_scheduler.zoom import ZoomController


def _engine(project: Project, calls: List[Tuple[str, date, date]], policy=None) -> InteractionEngine:
    mapper = TimeScaleMapper(date(2024, 1, 1), ZoomController(initial_level_id="day"), WorkingCalendar())

    def persist(task_id: str, start: date, end: date) -> bool:
        calls.append((task_id, start, end))
        return True

    return InteractionEngine(
        project,
        mapper,
        persist,
        policy=policy or InteractionPolicy(snap=SnapConfig(True, SnapType.DAY)),
    )


def _single(start: date = date(2024, 1, 1), end: date = date(2024, 1, 5)) -> Project:
    return Project(tasks=[Task("A", start, end, name="Write")])


def test_end_edge_extends_task() -> None:
    calls: List[Tuple[str, date, date]] = []
    project = _single()
    engine = _engine(project, calls)

    assert engine.start_resize("A", date(2024, 1, 1), date(2024, 1, 5), ResizeEdge.END, 300)
    engine.update_resize(330)
    result = engine.complete_resize(340)

    assert result.success
    assert result.new_end == date(2024, 1, 6)
    assert result.new_duration == 6
    assert result.message == "Task duration updated to 6 days"
    assert calls == [("A", date(2024, 1, 1), date(2024, 1, 6))]


def test_start_edge_shrinks_task() -> None:
    project = _single()
    engine = _engine(project, [])

    engine.start_resize("A", date(2024, 1, 1), date(2024, 1, 5), "start", 0)
    result = engine.complete_resize(80)

    assert result.success
    assert (result.new_start, result.new_end) == (date(2024, 1, 3), date(2024, 1, 5))
    assert project.get("A").start == date(2024, 1, 3)


def test_authored_duration_follows_resize() -> None:
    project = Project(tasks=[Task("A", date(2024, 1, 1), date(2024, 1, 5), duration=5)])
    engine = _engine(project, [])

    engine.start_resize("A", date(2024, 1, 1), date(2024, 1, 5), "end", 0)
    engine.complete_resize(-40)

    assert project.get("A").duration == 4


def test_milestones_cannot_be_resized() -> None:
    project = Project(tasks=[Task("M", date(2024, 1, 3), date(2024, 1, 3))])
    engine = _engine(project, [])

    assert not engine.start_resize("M", date(2024, 1, 3), date(2024, 1, 3), "start", 0)
    assert not engine.start_resize("M", date(2024, 1, 3), date(2024, 1, 3), "end", 0)
    assert not engine.is_resizing()


def test_zero_duration_override_cannot_be_resized() -> None:
    project = Project(tasks=[Task("A", date(2024, 1, 1), date(2024, 1, 4), duration=0)])

    assert not _engine(project, []).start_resize("A", date(2024, 1, 1), date(2024, 1, 4), "end", 0)


def test_no_resize_detected() -> None:
    engine = _engine(_single(), [])
    engine.start_resize("A", date(2024, 1, 1), date(2024, 1, 5), "end", 0)

    result = engine.complete_resize(10)

    assert not result.success
    assert result.message == "No resize detected"
    assert result.new_duration == 5


def test_collapsing_the_span_is_rejected() -> None:
    calls: List[Tuple[str, date, date]] = []
    engine = _engine(_single(), calls)
    engine.start_resize("A", date(2024, 1, 1), date(2024, 1, 5), "start", 0)

    result = engine.complete_resize(160)

    assert not result.success
    assert "Duration cannot be less than 1 days" in result.violations
    assert "End date must be after start date" in result.violations
    assert calls == []


def test_max_duration_constraint() -> None:
    engine = _engine(_single(), [])
    engine.start_resize("A", date(2024, 1, 1), date(2024, 1, 5), "end", 0)

    result = engine.complete_resize(200, ResizeConstraint(max_duration=7))

    assert result.violations == ["Duration cannot exceed 7 days"]


def test_dependency_and_overlap_reported_together() -> None:
    project = Project(
        tasks=[
            Task("A", date(2024, 1, 1), date(2024, 1, 5), name="Write"),
            Task("B", date(2024, 1, 6), date(2024, 1, 8), name="Review"),
        ],
        links=[DependencyLink("L", "A", "B")],
    )
    engine = _engine(project, [])
    engine.start_resize("A", date(2024, 1, 1), date(2024, 1, 5), "end", 0)

    result = engine.complete_resize(80, ResizeConstraint(allow_overlap=False))

    assert result.violations == ['Violates dependency with "Review"', 'Overlaps with "Review"']
    assert project.get("A").end == date(2024, 1, 5)


def test_summary_parent_does_not_count_as_overlap() -> None:
    project = Project(
        tasks=[
            Task("P", date(2024, 1, 1), date(2024, 1, 10), name="Phase"),
            Task("A", date(2024, 1, 1), date(2024, 1, 5), name="Write", parent_id="P"),
        ]
    )
    engine = _engine(project, [])
    engine.start_resize("A", date(2024, 1, 1), date(2024, 1, 5), "end", 0)

    assert engine.complete_resize(40, ResizeConstraint(allow_overlap=False)).success


def test_restricted_policy_caps_resize_amount() -> None:
    project = _single()
    engine = _engine(project, [], policy=InteractionPolicy.restricted())
    engine.start_resize("A", date(2024, 1, 1), date(2024, 1, 5), "end", 0)

    result = engine.complete_resize(120)

    assert result.violations == ["Maximum resize is ±2 days"]
