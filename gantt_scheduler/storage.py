"""CSV persistence helpers."""
from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import List, Optional, Tuple
import csv

from .models import DependencyLink, LinkType, Project, Task, TaskStatus
from .work_calendar import WEEKDAY_NAMES, WorkingCalendar


_CALENDAR_PREFIX = "#calendar"
_LINKS_PREFIX = "#links"
_TASK_HEADER = ["id", "name", "start", "end", "duration", "parent_id", "status"]
_LINK_HEADER = ["id", "source", "target", "type", "lag"]


def save_project(path: Path | str, calendar: WorkingCalendar, project: Project) -> None:
    """Persist the project to CSV."""
    csv_path = Path(path)
    csv_path.parent.mkdir(parents=True, exist_ok=True)

    with csv_path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow([
            _CALENDAR_PREFIX,
            " ".join(WEEKDAY_NAMES[day] for day in sorted(calendar.working_weekdays)),
            " ".join(day.isoformat() for day in sorted(calendar.holidays)),
        ])
        writer.writerow(_TASK_HEADER)
        for task in project.tasks:
            writer.writerow([
                task.id,
                task.name,
                task.start.isoformat(),
                task.end.isoformat(),
                _serialize_optional_int(task.duration),
                task.parent_id or "",
                task.status.value,
            ])
        writer.writerow([_LINKS_PREFIX])
        writer.writerow(_LINK_HEADER)
        for link in project.links:
            writer.writerow([link.id, link.source_id, link.target_id, link.type.value, link.lag])


def load_project(path: Path | str) -> Tuple[WorkingCalendar, Project]:
    """Load a project from CSV."""
    csv_path = Path(path)
    with csv_path.open("r", newline="", encoding="utf-8") as handle:
        reader = csv.reader(handle)
        calendar_line = next(reader, None)
        if not calendar_line or calendar_line[0] != _CALENDAR_PREFIX:
            raise ValueError("Invalid gantt CSV: missing calendar line")
        calendar = _parse_calendar(calendar_line[1:])

        header = next(reader, None)
        if header != _TASK_HEADER:
            raise ValueError("Invalid gantt CSV: missing task header")

        tasks: List[Task] = []
        links: List[DependencyLink] = []
        in_links = False
        for row in reader:
            if not row or not any(cell.strip() for cell in row):
                continue
            if row[0] == _LINKS_PREFIX:
                in_links = True
                link_header = next(reader, None)
                if link_header != _LINK_HEADER:
                    raise ValueError("Invalid gantt CSV: missing link header")
                continue
            if in_links:
                links.append(_parse_link(row))
            else:
                tasks.append(_parse_task(row))

        return calendar, Project(tasks=tasks, links=links)


def _parse_calendar(cells: List[str]) -> WorkingCalendar:
    weekday_text = cells[0] if cells else ""
    holiday_text = cells[1] if len(cells) > 1 else ""
    try:
        weekdays = [WEEKDAY_NAMES.index(name) for name in weekday_text.split()]
        holidays = [date.fromisoformat(value) for value in holiday_text.split()]
    except ValueError as exc:
        raise ValueError(f"Invalid gantt CSV: bad calendar line ({exc})") from exc
    return WorkingCalendar(weekdays or None, holidays)


def _parse_task(row: List[str]) -> Task:
    if len(row) < len(_TASK_HEADER):
        raise ValueError(f"Invalid gantt CSV: short task row {row!r}")
    task_id, name, start_raw, end_raw, duration_raw, parent_raw, status_raw = row[:7]
    try:
        return Task(
            id=task_id,
            name=name,
            start=date.fromisoformat(start_raw),
            end=date.fromisoformat(end_raw),
            duration=_parse_optional_int(duration_raw),
            parent_id=parent_raw.strip() or None,
            status=TaskStatus(status_raw or TaskStatus.NOT_STARTED.value),
        )
    except ValueError as exc:
        raise ValueError(f"Invalid gantt CSV: bad task row {row!r} ({exc})") from exc


def _parse_link(row: List[str]) -> DependencyLink:
    if len(row) < len(_LINK_HEADER):
        raise ValueError(f"Invalid gantt CSV: short link row {row!r}")
    link_id, source, target, link_type, lag_raw = row[:5]
    try:
        return DependencyLink(link_id, source, target, LinkType(link_type), int(lag_raw or 0))
    except ValueError as exc:
        raise ValueError(f"Invalid gantt CSV: bad link row {row!r} ({exc})") from exc


def _serialize_optional_int(value: Optional[int]) -> str:
    return "" if value is None else str(value)


def _parse_optional_int(value: str) -> Optional[int]:
    text = value.strip() if value is not None else ""
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        return None
