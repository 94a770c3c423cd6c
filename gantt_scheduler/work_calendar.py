"""Working-day calendar arithmetic shared by the scheduler and the timeline."""
from __future__ import annotations

from datetime import date, timedelta
from typing import FrozenSet, Iterable, Iterator, List, Optional

MONDAY_TO_FRIDAY = frozenset(range(5))
ALL_WEEKDAYS = frozenset(range(7))
WEEKDAY_NAMES = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]

_ONE_DAY = timedelta(days=1)


class WorkingCalendar:
    """Answers working-day questions for a weekday set and a holiday list.

    Weekdays use ``date.weekday()`` numbering (0 = Monday). The calendar is
    immutable; every method is a pure function of its arguments.
    """

    def __init__(
        self,
        working_weekdays: Optional[Iterable[int]] = None,
        holidays: Optional[Iterable[date]] = None,
    ) -> None:
        weekdays = MONDAY_TO_FRIDAY if working_weekdays is None else frozenset(working_weekdays)
        invalid = [day for day in weekdays if day not in ALL_WEEKDAYS]
        if invalid:
            raise ValueError(f"Invalid weekday numbers: {sorted(invalid)}")
        if not weekdays:
            raise ValueError("A working calendar needs at least one working weekday")
        self._weekdays: FrozenSet[int] = weekdays
        self._holidays: FrozenSet[date] = frozenset(holidays or ())

    @classmethod
    def continuous(cls) -> "WorkingCalendar":
        """Every day is a working day (plain calendar-day arithmetic)."""
        return cls(ALL_WEEKDAYS)

    @property
    def working_weekdays(self) -> FrozenSet[int]:
        return self._weekdays

    @property
    def holidays(self) -> FrozenSet[date]:
        return self._holidays

    @property
    def is_continuous(self) -> bool:
        return self._weekdays == ALL_WEEKDAYS and not self._holidays

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, WorkingCalendar):
            return NotImplemented
        return self._weekdays == other._weekdays and self._holidays == other._holidays

    def __hash__(self) -> int:
        return hash((self._weekdays, self._holidays))

    def __repr__(self) -> str:
        days = ",".join(WEEKDAY_NAMES[day] for day in sorted(self._weekdays))
        return f"WorkingCalendar(weekdays={days}, holidays={len(self._holidays)})"

    def is_working_day(self, day: date) -> bool:
        if day.weekday() not in self._weekdays:
            return False
        return day not in self._holidays

    def add_working_days(self, day: date, count: int) -> date:
        """Walk ``count`` working days away from ``day``.

        The walk moves one calendar day at a time and only counts the working
        days it lands on, so the result is always a working day unless
        ``count`` is zero, in which case ``day`` is returned unchanged.
        """
        if count == 0:
            return day
        if self.is_continuous:
            return day + timedelta(days=count)
        step = _ONE_DAY if count > 0 else -_ONE_DAY
        remaining = abs(count)
        current = day
        while remaining:
            current += step
            if self.is_working_day(current):
                remaining -= 1
        return current

    def working_days_between(self, start: date, end: date) -> int:
        """Signed number of working-day steps from ``start`` to ``end``.

        Going forward this counts working days ``d`` with ``start < d <= end``;
        going backward it is minus the count of working days with
        ``end <= d < start``. ``add_working_days(start, n)`` with that result
        lands back on ``end`` whenever ``end`` is a working day.
        """
        if start == end:
            return 0
        if self.is_continuous:
            return (end - start).days
        if end > start:
            return sum(1 for day in _days(start + _ONE_DAY, end) if self.is_working_day(day))
        return -sum(1 for day in _days(end, start - _ONE_DAY) if self.is_working_day(day))

    def next_working_day(self, day: date) -> date:
        """Return ``day`` itself when it is a working day, else the next one."""
        while not self.is_working_day(day):
            day += _ONE_DAY
        return day

    def duration_between(self, start: date, end: date) -> int:
        """Task duration for an inclusive ``[start, end]`` span.

        A zero-length span is a milestone. Otherwise both the first and the
        last day count, restricted to working days.
        """
        if end <= start:
            return 0
        if self.is_continuous:
            return (end - start).days + 1
        return sum(1 for day in _days(start, end) if self.is_working_day(day))

    def working_days_in(self, start: date, end: date) -> Iterator[date]:
        for day in _days(start, end):
            if self.is_working_day(day):
                yield day

    def non_working_days(self, start: date, end: date) -> List[date]:
        """List the weekends and holidays inside ``[start, end]``."""
        return [day for day in _days(start, end) if not self.is_working_day(day)]


def _days(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += _ONE_DAY
