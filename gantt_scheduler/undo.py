"""Bounded history of task date changes."""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Callable, List, Optional, Tuple

from .models import UndoEntry
from .settings import settings

logger = logging.getLogger(__name__)

PersistDates = Callable[[str, date, date], bool]
CurrentDates = Callable[[str], Optional[Tuple[date, date]]]


@dataclass
class UndoResult:
    success: bool
    message: str
    entry: Optional[UndoEntry] = None


class UndoLedger:
    """Most-recent-first stacks of prior (start, end) pairs.

    Capacity is a policy knob supplied by the caller and bounds both the undo
    and the redo stack. Recording a new change empties the redo stack.
    """

    def __init__(self, capacity: int = settings.UNDO_CAPACITY, *, redo_enabled: bool = True) -> None:
        if capacity < 1:
            raise ValueError("Undo capacity must be at least 1")
        self._capacity = capacity
        self._redo_enabled = redo_enabled
        self._entries: List[UndoEntry] = []
        self._redo: List[UndoEntry] = []

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def redo_enabled(self) -> bool:
        return self._redo_enabled

    def __len__(self) -> int:
        return len(self._entries)

    def entries(self) -> List[UndoEntry]:
        return list(self._entries)

    def redo_entries(self) -> List[UndoEntry]:
        return list(self._redo)

    def can_undo(self) -> bool:
        return bool(self._entries)

    def can_redo(self) -> bool:
        return bool(self._redo)

    def clear(self) -> None:
        self._entries.clear()
        self._redo.clear()

    def push(self, entry: UndoEntry) -> None:
        """Record a new change; anything undone before it can no longer be redone."""
        self._redo.clear()
        self._push(self._entries, entry)

    def undo_last(self, persist: PersistDates, current: Optional[CurrentDates] = None) -> UndoResult:
        """Re-apply the newest entry's previous dates through ``persist``.

        ``current`` reports the task's dates before the undo so the change can
        be redone. A failed persist puts the entry back so the undo can be
        retried.
        """
        if not self._entries:
            return UndoResult(False, "No actions to undo")
        entry = self._entries[0]
        before = current(entry.task_id) if current is not None else None
        result = self._replay(self._entries, persist, "undo")
        if result.success and self._redo_enabled and before is not None:
            self._push(self._redo, replace(entry, previous_start=before[0], previous_end=before[1]))
        return result

    def redo_last(self, persist: PersistDates, current: Optional[CurrentDates] = None) -> UndoResult:
        """Re-apply the most recently undone change."""
        if not self._redo_enabled:
            return UndoResult(False, "Redo is not available")
        if not self._redo:
            return UndoResult(False, "No actions to redo")
        entry = self._redo[0]
        before = current(entry.task_id) if current is not None else None
        result = self._replay(self._redo, persist, "redo")
        if result.success and before is not None:
            self._push(self._entries, replace(entry, previous_start=before[0], previous_end=before[1]))
        return result

    def _push(self, stack: List[UndoEntry], entry: UndoEntry) -> None:
        stack.insert(0, entry)
        if len(stack) > self._capacity:
            del stack[self._capacity:]

    def _replay(self, stack: List[UndoEntry], persist: PersistDates, verb: str) -> UndoResult:
        entry = stack.pop(0)
        try:
            saved = persist(entry.task_id, entry.previous_start, entry.previous_end)
        except Exception as exc:
            logger.exception("%s of %s on task %s failed", verb.capitalize(), entry.action.value, entry.task_id)
            stack.insert(0, entry)
            return UndoResult(False, f"Failed to {verb} action: {exc}", entry)
        if not saved:
            stack.insert(0, entry)
            return UndoResult(False, f"Failed to {verb} action", entry)
        logger.info("%s %s on task %s", "Undid" if verb == "undo" else "Redid", entry.action.value, entry.task_id)
        return UndoResult(True, f"{verb.capitalize()} successful", entry)
