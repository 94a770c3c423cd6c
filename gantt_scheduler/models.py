"""Data models shared across the Gantt application."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional, Set, Tuple


class TaskStatus(str, Enum):
    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    ON_HOLD = "on-hold"
    CANCELLED = "cancelled"


class LinkType(str, Enum):
    FINISH_TO_START = "finish-to-start"
    START_TO_START = "start-to-start"
    FINISH_TO_FINISH = "finish-to-finish"
    START_TO_FINISH = "start-to-finish"


class ActionKind(str, Enum):
    RESCHEDULE = "reschedule"
    RESIZE = "resize"


@dataclass
class Task:
    """A single bar on the chart.

    ``end`` is the last day the task occupies. ``duration`` is authoritative
    when set; otherwise it is derived from the dates by the calendar in use.
    The analysis fields are owned by the critical path analyzer.
    """

    id: str
    start: date
    end: date
    name: str = ""
    duration: Optional[int] = None
    parent_id: Optional[str] = None
    status: TaskStatus = TaskStatus.NOT_STARTED
    early_start: Optional[date] = field(default=None, compare=False)
    early_finish: Optional[date] = field(default=None, compare=False)
    late_start: Optional[date] = field(default=None, compare=False)
    late_finish: Optional[date] = field(default=None, compare=False)
    total_float: Optional[int] = field(default=None, compare=False)
    free_float: Optional[int] = field(default=None, compare=False)
    is_critical: bool = field(default=False, compare=False)

    def __post_init__(self) -> None:
        if not self.name:
            self.name = self.id
        if self.end < self.start:
            raise ValueError(f"Task {self.id!r} ends before it starts")
        self.status = TaskStatus(self.status)

    def is_milestone(self) -> bool:
        """Return True when the task has no length (start == end)."""
        return self.start == self.end

    def has_analysis(self) -> bool:
        return self.early_start is not None

    def apply_dates(self, start: date, end: date, duration: Optional[int] = None) -> None:
        """Move the task to new dates, keeping an authored duration in step."""
        self.start = start
        self.end = end
        if duration is not None and self.duration is not None:
            self.duration = duration

    def clear_analysis(self) -> None:
        self.early_start = None
        self.early_finish = None
        self.late_start = None
        self.late_finish = None
        self.total_float = None
        self.free_float = None
        self.is_critical = False


@dataclass
class DependencyLink:
    """Precedence relation from ``source_id`` (predecessor) to ``target_id``."""

    id: str
    source_id: str
    target_id: str
    type: LinkType = LinkType.FINISH_TO_START
    lag: int = 0

    def __post_init__(self) -> None:
        self.type = LinkType(self.type)


@dataclass
class ResizeConstraint:
    """Per-session policy for validating a resized task."""

    min_duration: int = 1
    max_duration: int = 365
    enforce_dependencies: bool = True
    allow_overlap: bool = True


@dataclass(frozen=True)
class UndoEntry:
    task_id: str
    previous_start: date
    previous_end: date
    action: ActionKind
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class Project:
    """The in-memory task/link graph supplied by the caller."""

    tasks: List[Task] = field(default_factory=list)
    links: List[DependencyLink] = field(default_factory=list)

    def get(self, task_id: str) -> Optional[Task]:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def index_of(self, task_id: str) -> int:
        """Position of the task in display order, or -1 when unknown."""
        for index, task in enumerate(self.tasks):
            if task.id == task_id:
                return index
        return -1

    def predecessor_links(self, task_id: str) -> List[DependencyLink]:
        return [link for link in self.links if link.target_id == task_id]

    def successor_links(self, task_id: str) -> List[DependencyLink]:
        return [link for link in self.links if link.source_id == task_id]

    def children_of(self, parent_id: str) -> List[Task]:
        return [task for task in self.tasks if task.parent_id == parent_id]

    def descendant_ids(self, task_id: str) -> Set[str]:
        found: Set[str] = set()
        pending = [task_id]
        while pending:
            current = pending.pop()
            for child in self.children_of(current):
                if child.id not in found:
                    found.add(child.id)
                    pending.append(child.id)
        return found

    def ancestor_ids(self, task_id: str) -> Set[str]:
        found: Set[str] = set()
        task = self.get(task_id)
        while task is not None and task.parent_id and task.parent_id not in found:
            found.add(task.parent_id)
            task = self.get(task.parent_id)
        return found

    def is_summary(self, task_id: str) -> bool:
        return any(task.parent_id == task_id for task in self.tasks)

    def summary_span(self, parent_id: str) -> Optional[Tuple[date, date]]:
        """Roll a parent's span up from all of its descendants."""
        descendants = [self.get(task_id) for task_id in self.descendant_ids(parent_id)]
        dated = [task for task in descendants if task is not None]
        if not dated:
            return None
        return min(task.start for task in dated), max(task.end for task in dated)
