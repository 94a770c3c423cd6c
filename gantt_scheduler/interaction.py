"""Pointer-driven reschedule (drag) and resize of task bars.

Each gesture is an explicit session opened on pointer-down, updated on
pointer-move and closed by complete or cancel. Pixel offsets become day
offsets through the TimeScaleMapper, so a bar dropped on "day 5" lands on the
same day the scheduler calls day 5 in either calendar mode.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Callable, List, Optional, Tuple, Union

from .constraints import duration_violations, span_violations
from .models import ActionKind, Project, ResizeConstraint, UndoEntry
from .settings import settings
from .timescale import SnapConfig, TimeScaleMapper, snap_offset
from .undo import PersistDates, UndoLedger, UndoResult

logger = logging.getLogger(__name__)


class SessionConflictError(RuntimeError):
    """A gesture was started while another one is still open."""


class ResizeEdge(str, Enum):
    START = "start"
    END = "end"


@dataclass
class GestureSession:
    task_id: str
    original_start: date
    original_end: date
    start_x: float
    current_offset: float = 0.0
    critical: bool = False


@dataclass
class DragSession(GestureSession):
    pass


@dataclass
class ResizeSession(GestureSession):
    edge: ResizeEdge = ResizeEdge.END


@dataclass
class InteractionPolicy:
    """Caller-imposed limits for one engine.

    ``max_draggable_tasks`` / ``max_resizable_tasks`` lock every task whose
    position in the project list is at or beyond the limit.
    """

    snap: SnapConfig = field(default_factory=lambda: SnapConfig(True, settings.SNAP_TYPE))
    max_draggable_tasks: Optional[int] = None
    max_resizable_tasks: Optional[int] = None
    max_resize_days: Optional[int] = None
    earliest_start: Optional[date] = None
    undo_capacity: int = settings.UNDO_CAPACITY
    allow_redo: bool = True

    @classmethod
    def restricted(cls) -> "InteractionPolicy":
        """Limits used for trial projects."""
        return cls(
            snap=SnapConfig(True, "day"),
            max_draggable_tasks=3,
            max_resizable_tasks=2,
            max_resize_days=2,
            undo_capacity=1,
            allow_redo=False,
        )


@dataclass
class RescheduleResult:
    success: bool
    new_start: Optional[date]
    new_end: Optional[date]
    days_moved: int
    message: str
    violations: List[str] = field(default_factory=list)


@dataclass
class ResizeResult:
    success: bool
    new_start: Optional[date]
    new_end: Optional[date]
    new_duration: int
    days_changed: int
    message: str
    violations: List[str] = field(default_factory=list)


class InteractionEngine:
    """Turns pointer gestures into validated, persisted date changes.

    Only one session may be open at a time. ``persist_task_dates`` is called
    once per completed gesture; the in-memory task and the undo ledger are
    only touched after it reports success.
    """

    def __init__(
        self,
        project: Project,
        mapper: TimeScaleMapper,
        persist_task_dates: PersistDates,
        *,
        policy: Optional[InteractionPolicy] = None,
        ledger: Optional[UndoLedger] = None,
        on_dependency_recalculate: Optional[Callable[[], None]] = None,
    ) -> None:
        self.project = project
        self.mapper = mapper
        self.policy = policy or InteractionPolicy()
        self.ledger = ledger or UndoLedger(self.policy.undo_capacity, redo_enabled=self.policy.allow_redo)
        self._persist_task_dates = persist_task_dates
        self._on_dependency_recalculate = on_dependency_recalculate
        self._session: Optional[Union[DragSession, ResizeSession]] = None

    # --- Session state ---------------------------------------------------------

    @property
    def session(self) -> Optional[Union[DragSession, ResizeSession]]:
        return self._session

    def is_active(self) -> bool:
        return self._session is not None

    def is_dragging(self) -> bool:
        return isinstance(self._session, DragSession)

    def is_resizing(self) -> bool:
        return isinstance(self._session, ResizeSession)

    # --- Drag reschedule -------------------------------------------------------

    def start_drag(self, task_id: str, start: date, end: date, pointer_x: float) -> bool:
        self._ensure_idle()
        task = self.project.get(task_id)
        if task is None:
            logger.warning("Drag requested for unknown task %s", task_id)
            return False
        if self._locked(task_id, self.policy.max_draggable_tasks):
            logger.info("Task %s is locked for dragging", task_id)
            return False
        self._session = DragSession(task_id, start, end, pointer_x, critical=task.is_critical)
        return True

    def update_drag(self, pointer_x: float) -> Optional[DragSession]:
        session = self._session
        if not isinstance(session, DragSession):
            return None
        session.current_offset = self._snapped_offset(session, pointer_x)
        return session

    def complete_drag(
        self,
        pointer_x: float,
        constraints: Optional[ResizeConstraint] = None,
    ) -> RescheduleResult:
        session = self._session
        if not isinstance(session, DragSession):
            return RescheduleResult(False, None, None, 0, "No active drag operation")
        self._session = None

        offset = self._snapped_offset(session, pointer_x)
        days_moved = self.mapper.pixels_to_days(offset)
        if days_moved == 0:
            return RescheduleResult(False, session.original_start, session.original_end, 0, "No movement detected")

        task = self.project.get(session.task_id)
        if task is None:
            return RescheduleResult(False, session.original_start, session.original_end, days_moved, "Task no longer exists")

        new_start = self.mapper.shift_date(session.original_start, days_moved)
        new_end = self.mapper.shift_date(session.original_end, days_moved)
        violations = self._basic_violations(new_start, new_end, allow_milestone=session.original_start == session.original_end)
        violations.extend(span_violations(self.project, task, new_start, new_end, self.mapper.shift_date, constraints))
        if violations:
            return RescheduleResult(
                False, session.original_start, session.original_end, days_moved, "; ".join(violations), violations
            )

        error = self._commit(session, new_start, new_end, ActionKind.RESCHEDULE)
        if error:
            return RescheduleResult(False, session.original_start, session.original_end, days_moved, error)
        logger.info("Rescheduled task %s by %+d days to %s", session.task_id, days_moved, new_start)
        return RescheduleResult(True, new_start, new_end, days_moved, f"Task rescheduled to {new_start.isoformat()}")

    def cancel_drag(self) -> None:
        """Discard the open gesture without touching the task."""
        self._session = None

    # --- Resize ---------------------------------------------------------------

    def start_resize(
        self,
        task_id: str,
        start: date,
        end: date,
        edge: Union[ResizeEdge, str],
        pointer_x: float,
    ) -> bool:
        self._ensure_idle()
        if start == end:
            return False
        task = self.project.get(task_id)
        if task is None:
            logger.warning("Resize requested for unknown task %s", task_id)
            return False
        if task.duration == 0:
            return False
        if self._locked(task_id, self.policy.max_resizable_tasks):
            logger.info("Task %s is locked for resizing", task_id)
            return False
        self._session = ResizeSession(task_id, start, end, pointer_x, critical=task.is_critical, edge=ResizeEdge(edge))
        return True

    def update_resize(self, pointer_x: float) -> Optional[ResizeSession]:
        session = self._session
        if not isinstance(session, ResizeSession):
            return None
        session.current_offset = self._snapped_offset(session, pointer_x)
        return session

    def complete_resize(
        self,
        pointer_x: float,
        constraints: Optional[ResizeConstraint] = None,
    ) -> ResizeResult:
        session = self._session
        if not isinstance(session, ResizeSession):
            return ResizeResult(False, None, None, 0, 0, "No active resize operation")
        self._session = None
        constraint = constraints or ResizeConstraint()
        calendar = self.mapper.day_calendar
        original_duration = calendar.duration_between(session.original_start, session.original_end)

        offset = self._snapped_offset(session, pointer_x)
        days_changed = self.mapper.pixels_to_days(offset)
        if days_changed == 0:
            return ResizeResult(
                False, session.original_start, session.original_end, original_duration, 0, "No resize detected"
            )

        task = self.project.get(session.task_id)
        if task is None:
            return ResizeResult(
                False, session.original_start, session.original_end, original_duration, days_changed, "Task no longer exists"
            )

        new_start, new_end = session.original_start, session.original_end
        if session.edge is ResizeEdge.START:
            new_start = self.mapper.shift_date(new_start, days_changed)
        else:
            new_end = self.mapper.shift_date(new_end, days_changed)
        new_duration = calendar.duration_between(new_start, new_end)

        violations: List[str] = []
        limit = self.policy.max_resize_days
        if limit is not None and abs(new_duration - original_duration) > limit:
            violations.append(f"Maximum resize is ±{limit} days")
        violations.extend(duration_violations(new_duration, constraint))
        violations.extend(self._basic_violations(new_start, new_end, allow_milestone=False))
        violations.extend(span_violations(self.project, task, new_start, new_end, self.mapper.shift_date, constraint))
        if violations:
            return ResizeResult(
                False,
                session.original_start,
                session.original_end,
                original_duration,
                days_changed,
                "; ".join(violations),
                violations,
            )

        error = self._commit(session, new_start, new_end, ActionKind.RESIZE, new_duration)
        if error:
            return ResizeResult(False, session.original_start, session.original_end, original_duration, days_changed, error)
        logger.info("Resized task %s (%s edge) to %d days", session.task_id, session.edge.value, new_duration)
        return ResizeResult(
            True, new_start, new_end, new_duration, days_changed, f"Task duration updated to {new_duration} days"
        )

    def cancel_resize(self) -> None:
        self._session = None

    def cancel(self) -> None:
        """Drop whichever gesture is open."""
        self._session = None

    # --- Undo -----------------------------------------------------------------

    def can_undo(self) -> bool:
        return self.ledger.can_undo()

    def undo_last(self) -> UndoResult:
        if self._session is not None:
            return UndoResult(False, "Finish the current gesture before undoing")
        result = self.ledger.undo_last(self._persist_and_apply, self._current_dates)
        if result.success:
            self._notify_recalculate()
        return result

    def can_redo(self) -> bool:
        return self.ledger.can_redo()

    def redo_last(self) -> UndoResult:
        if self._session is not None:
            return UndoResult(False, "Finish the current gesture before redoing")
        result = self.ledger.redo_last(self._persist_and_apply, self._current_dates)
        if result.success:
            self._notify_recalculate()
        return result

    # --- Internals ------------------------------------------------------------

    def _ensure_idle(self) -> None:
        if self._session is not None:
            raise SessionConflictError(
                f"A {type(self._session).__name__} for task {self._session.task_id} is already open"
            )

    def _locked(self, task_id: str, limit: Optional[int]) -> bool:
        if limit is None:
            return False
        return self.project.index_of(task_id) >= limit

    def _snapped_offset(self, session: GestureSession, pointer_x: float) -> float:
        offset = pointer_x - session.start_x
        snap = self.policy.snap
        if snap.enabled:
            offset = snap_offset(offset, self.mapper.snap_width(snap.type))
        return offset

    def _basic_violations(self, new_start: date, new_end: date, *, allow_milestone: bool) -> List[str]:
        violations: List[str] = []
        if new_end < new_start or (new_end == new_start and not allow_milestone):
            violations.append("End date must be after start date")
        earliest = self.policy.earliest_start
        if earliest is not None and new_start < earliest:
            violations.append(f"Start date cannot be before {earliest.isoformat()}")
        return violations

    def _commit(
        self,
        session: GestureSession,
        new_start: date,
        new_end: date,
        action: ActionKind,
        new_duration: Optional[int] = None,
    ) -> Optional[str]:
        """Persist, apply and record a change; returns an error message on failure."""
        try:
            saved = self._persist_task_dates(session.task_id, new_start, new_end)
        except Exception as exc:
            logger.exception("Persisting dates for task %s failed", session.task_id)
            return f"Failed to update task: {exc}"
        if not saved:
            logger.warning("Persisting dates for task %s was refused", session.task_id)
            return "Failed to update task"
        task = self.project.get(session.task_id)
        if task is not None:
            task.apply_dates(new_start, new_end, new_duration)
        self.ledger.push(UndoEntry(session.task_id, session.original_start, session.original_end, action))
        self._notify_recalculate()
        return None

    def _persist_and_apply(self, task_id: str, start: date, end: date) -> bool:
        if not self._persist_task_dates(task_id, start, end):
            return False
        task = self.project.get(task_id)
        if task is not None:
            task.apply_dates(start, end, self.mapper.day_calendar.duration_between(start, end))
        return True

    def _current_dates(self, task_id: str) -> Optional[Tuple[date, date]]:
        task = self.project.get(task_id)
        if task is None:
            return None
        return task.start, task.end

    def _notify_recalculate(self) -> None:
        if self._on_dependency_recalculate is not None:
            self._on_dependency_recalculate()
