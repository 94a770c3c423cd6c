"""Validation rules applied to a proposed new span for a task."""
from __future__ import annotations

from datetime import date
from typing import Callable, List, Optional

from .models import DependencyLink, LinkType, Project, ResizeConstraint, Task

ShiftDate = Callable[[date, int], date]


def finish_boundary(start: date, end: date, shift: ShiftDate) -> date:
    """First day after the task, or the milestone date itself."""
    if end <= start:
        return start
    return shift(end, 1)


def link_satisfied(
    link: DependencyLink,
    pred_start: date,
    pred_end: date,
    succ_start: date,
    succ_end: date,
    shift: ShiftDate,
) -> bool:
    if link.type in (LinkType.START_TO_START, LinkType.START_TO_FINISH):
        anchor = pred_start
    else:
        anchor = finish_boundary(pred_start, pred_end, shift)
    if link.type in (LinkType.FINISH_TO_START, LinkType.START_TO_START):
        bound = succ_start
    else:
        bound = finish_boundary(succ_start, succ_end, shift)
    return bound >= shift(anchor, link.lag)


def dependency_violations(
    project: Project,
    task_id: str,
    new_start: date,
    new_end: date,
    shift: ShiftDate,
) -> List[str]:
    """Check every link touching ``task_id`` against its neighbour's dates."""
    violations: List[str] = []
    for link in project.predecessor_links(task_id):
        pred = project.get(link.source_id)
        if pred is None:
            continue
        if not link_satisfied(link, pred.start, pred.end, new_start, new_end, shift):
            violations.append(f'Violates dependency with "{pred.name}"')
    for link in project.successor_links(task_id):
        succ = project.get(link.target_id)
        if succ is None:
            continue
        if not link_satisfied(link, new_start, new_end, succ.start, succ.end, shift):
            violations.append(f'Violates dependency with "{succ.name}"')
    return violations


def overlap_violations(project: Project, task_id: str, new_start: date, new_end: date) -> List[str]:
    """Other tasks whose span intersects ``[new_start, new_end]``.

    Summary tasks above or below ``task_id`` always contain it and are skipped.
    """
    related = project.ancestor_ids(task_id) | project.descendant_ids(task_id)
    violations: List[str] = []
    for other in project.tasks:
        if other.id == task_id or other.id in related:
            continue
        if other.start <= new_end and other.end >= new_start:
            violations.append(f'Overlaps with "{other.name}"')
    return violations


def duration_violations(duration: int, constraint: ResizeConstraint) -> List[str]:
    violations: List[str] = []
    if duration < constraint.min_duration:
        violations.append(f"Duration cannot be less than {constraint.min_duration} days")
    if duration > constraint.max_duration:
        violations.append(f"Duration cannot exceed {constraint.max_duration} days")
    return violations


def span_violations(
    project: Project,
    task: Task,
    new_start: date,
    new_end: date,
    shift: ShiftDate,
    constraint: Optional[ResizeConstraint],
) -> List[str]:
    """Dependency and overlap checks selected by ``constraint``."""
    if constraint is None:
        return []
    violations: List[str] = []
    if constraint.enforce_dependencies:
        violations.extend(dependency_violations(project, task.id, new_start, new_end, shift))
    if not constraint.allow_overlap:
        violations.extend(overlap_violations(project, task.id, new_start, new_end))
    return violations
