from datetime import date
from typing import List

from gantt_scheduler.app import GanttCanvas, MainWindow, format_label
from gantt_scheduler.interaction import ResizeEdge
from gantt_scheduler.models import DependencyLink, Project, Task
from gantt_scheduler.work_calendar import WorkingCalendar
from gantt_scheduler.zoom import DEFAULT_ZOOM_LEVELS


def _canvas() -> GanttCanvas:
    canvas = GanttCanvas()
    canvas.zoom.zoom_to_level("week")
    project = Project(
        tasks=[
            Task("A", date(2024, 1, 1), date(2024, 1, 5), name="Design"),
            Task("B", date(2024, 1, 8), date(2024, 1, 12), name="Build"),
        ],
        links=[DependencyLink("L", "A", "B")],
    )
    canvas.set_project(WorkingCalendar(), project)
    return canvas


def test_set_project_runs_critical_path(qapp) -> None:
    canvas = _canvas()

    assert canvas.analysis.critical_task_ids == ["B"]
    assert canvas.project.get("A").total_float == 2
    assert not canvas.dirty


def test_bar_rect_and_hit_testing(qapp) -> None:
    canvas = _canvas()
    rect = canvas.bar_rect(canvas.project.get("A"))
    y = rect.center().y()

    assert rect.width() == 30
    assert canvas.hit_test(rect.left(), y) == (canvas.project.get("A"), ResizeEdge.START)
    assert canvas.hit_test(rect.right(), y) == (canvas.project.get("A"), ResizeEdge.END)
    assert canvas.hit_test(rect.center().x(), y) == (canvas.project.get("A"), None)
    assert canvas.hit_test(rect.center().x(), 5) == (None, None)


def test_drag_gesture_reschedules_task(qapp) -> None:
    canvas = _canvas()
    messages: List[str] = []
    canvas.status_message.connect(messages.append)
    rect = canvas.bar_rect(canvas.project.get("A"))
    x, y = rect.center().x(), rect.center().y()

    assert canvas.handle_press(x, y)
    canvas.handle_move(x + 6)
    canvas.handle_release(x + 12)

    task = canvas.project.get("A")
    assert (task.start, task.end) == (date(2024, 1, 3), date(2024, 1, 7))
    assert canvas.dirty
    assert "Task rescheduled to 2024-01-03" in messages
    assert task.total_float == 0

    assert canvas.undo()
    assert task.start == date(2024, 1, 1)

    assert canvas.redo()
    assert task.start == date(2024, 1, 3)


def test_cancel_gesture_discards_preview(qapp) -> None:
    canvas = _canvas()
    rect = canvas.bar_rect(canvas.project.get("B"))
    canvas.handle_press(rect.right(), rect.center().y())
    canvas.handle_move(rect.right() + 30)

    canvas.cancel_gesture()
    canvas.handle_release(rect.right() + 30)

    assert canvas.project.get("B").end == date(2024, 1, 12)
    assert not canvas.dirty


def test_cycle_is_reported_not_raised(qapp) -> None:
    canvas = GanttCanvas()
    messages: List[str] = []
    canvas.status_message.connect(messages.append)
    project = Project(
        tasks=[Task("A", date(2024, 1, 1), date(2024, 1, 2)), Task("B", date(2024, 1, 3), date(2024, 1, 4))],
        links=[DependencyLink("L1", "A", "B"), DependencyLink("L2", "B", "A")],
    )

    canvas.set_project(WorkingCalendar(), project)

    assert any(message.startswith("Cyclic dependency") for message in messages)
    assert canvas.analysis.critical_task_ids == []


def test_format_label_supports_quarters() -> None:
    quarter = DEFAULT_ZOOM_LEVELS[-1]

    assert format_label(date(2024, 5, 2), quarter) == "Q2 2024"


def test_main_window_starts_empty(qapp) -> None:
    window = MainWindow()
    window.action_new()

    assert window.canvas.project.tasks == []
    assert window.undo_action is not None
    assert not window.undo_action.isEnabled()


def test_redo_action_follows_history(qapp) -> None:
    window = MainWindow()
    window.canvas.zoom.zoom_to_level("week")
    window.canvas.set_project(
        WorkingCalendar(),
        Project(tasks=[Task("A", date(2024, 1, 1), date(2024, 1, 5), name="Design")]),
    )
    canvas = window.canvas
    rect = canvas.bar_rect(canvas.project.get("A"))
    canvas.handle_press(rect.center().x(), rect.center().y())
    canvas.handle_release(rect.center().x() + canvas.mapper.pixels_per_day)

    assert window.undo_action.isEnabled()
    assert not window.redo_action.isEnabled()

    canvas.undo()

    assert window.redo_action.isEnabled()
