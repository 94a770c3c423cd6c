"""Critical Path Method (CPM) analysis over the task dependency graph.

Calculates, for every task:
- Forward pass: early start / early finish
- Backward pass: late start / late finish
- Total float (late finish - early finish) and free float
- Criticality (total float <= 0)

Finish dates are exclusive boundaries: a task with early start Jan 1 and a
duration of 5 calendar days has early finish Jan 6. All day arithmetic goes
through one WorkingCalendar; the continuous calendar gives plain calendar
days.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence

import networkx as nx

from .models import DependencyLink, LinkType, Task
from .work_calendar import WorkingCalendar

logger = logging.getLogger(__name__)


class DependencyGraphError(ValueError):
    """The task/link graph cannot be scheduled."""


class CyclicDependencyError(DependencyGraphError):
    def __init__(self, task_ids: Sequence[str]) -> None:
        self.task_ids = list(task_ids)
        chain = " -> ".join(self.task_ids + self.task_ids[:1])
        super().__init__(f"Cyclic dependency: {chain}")


class DanglingLinkError(DependencyGraphError):
    def __init__(self, link_id: str, missing_ids: Sequence[str]) -> None:
        self.link_id = link_id
        self.missing_ids = list(missing_ids)
        super().__init__(f"Link {link_id!r} references missing task(s): {', '.join(self.missing_ids)}")


@dataclass
class CriticalPathResult:
    order: List[str] = field(default_factory=list)
    critical_task_ids: List[str] = field(default_factory=list)
    critical_link_ids: List[str] = field(default_factory=list)
    project_start: Optional[date] = None
    project_finish: Optional[date] = None
    project_duration: int = 0

    def is_critical(self, task_id: str) -> bool:
        return task_id in self.critical_task_ids


@dataclass
class _Times:
    duration: int
    early_start: date
    early_finish: date
    late_start: Optional[date] = None
    late_finish: Optional[date] = None


class CriticalPathAnalyzer:
    """Two-pass CPM scheduler.

    ``calendar`` selects working-day arithmetic; leave it out for calendar
    mode. The analyzer keeps no state between runs, so re-run it after any
    change to dates, durations or links.
    """

    def __init__(self, calendar: Optional[WorkingCalendar] = None) -> None:
        self.calendar = calendar or WorkingCalendar.continuous()

    def analyze(self, tasks: Iterable[Task], links: Iterable[DependencyLink]) -> CriticalPathResult:
        task_list = list(tasks)
        link_list = list(links)
        if not task_list:
            return CriticalPathResult()

        graph = self._build_graph(task_list, link_list)
        position = {task.id: index for index, task in enumerate(task_list)}
        order = list(nx.lexicographical_topological_sort(graph, key=position.__getitem__))
        by_id = {task.id: task for task in task_list}

        incoming: Dict[str, List[DependencyLink]] = {task.id: [] for task in task_list}
        outgoing: Dict[str, List[DependencyLink]] = {task.id: [] for task in task_list}
        for link in link_list:
            incoming[link.target_id].append(link)
            outgoing[link.source_id].append(link)

        times = self._forward_pass(order, by_id, incoming)
        project_start = min(entry.early_start for entry in times.values())
        project_finish = max(entry.early_finish for entry in times.values())
        self._backward_pass(order, outgoing, times, project_finish)

        result = CriticalPathResult(
            order=order,
            project_start=project_start,
            project_finish=project_finish,
            project_duration=self.calendar.working_days_between(project_start, project_finish),
        )
        for task_id in order:
            entry = times[task_id]
            task = by_id[task_id]
            total_float = self.calendar.working_days_between(entry.early_finish, entry.late_finish)
            task.early_start = entry.early_start
            task.early_finish = entry.early_finish
            task.late_start = entry.late_start
            task.late_finish = entry.late_finish
            task.total_float = total_float
            task.free_float = self._free_float(outgoing[task_id], times, total_float)
            task.is_critical = total_float <= 0
            if task.is_critical:
                result.critical_task_ids.append(task_id)

        for link in link_list:
            source, target = by_id[link.source_id], by_id[link.target_id]
            if source.is_critical and target.is_critical and self._link_slack(link, times) <= 0:
                result.critical_link_ids.append(link.id)

        logger.debug(
            "Critical path: %d of %d tasks critical, project %s -> %s",
            len(result.critical_task_ids),
            len(task_list),
            project_start,
            project_finish,
        )
        return result

    def task_duration(self, task: Task) -> int:
        if task.duration is not None:
            return max(0, task.duration)
        return self.calendar.duration_between(task.start, task.end)

    # --- Graph validation -----------------------------------------------------

    def _build_graph(self, tasks: List[Task], links: List[DependencyLink]) -> nx.DiGraph:
        graph = nx.DiGraph()
        for task in tasks:
            if task.id in graph:
                raise DependencyGraphError(f"Duplicate task id: {task.id!r}")
            graph.add_node(task.id)
        for link in links:
            missing = [task_id for task_id in (link.source_id, link.target_id) if task_id not in graph]
            if missing:
                raise DanglingLinkError(link.id, missing)
            graph.add_edge(link.source_id, link.target_id)
        if not nx.is_directed_acyclic_graph(graph):
            cycle = nx.find_cycle(graph)
            members = [source for source, _target in cycle]
            logger.warning("Cycle detected between tasks %s", members)
            raise CyclicDependencyError(members)
        return graph

    # --- Passes ---------------------------------------------------------------

    def _forward_pass(
        self,
        order: List[str],
        by_id: Dict[str, Task],
        incoming: Dict[str, List[DependencyLink]],
    ) -> Dict[str, _Times]:
        cal = self.calendar
        times: Dict[str, _Times] = {}
        for task_id in order:
            task = by_id[task_id]
            duration = self.task_duration(task)
            early_start = task.start
            for link in incoming[task_id]:
                pred = times[link.source_id]
                if link.type is LinkType.FINISH_TO_START:
                    candidate = cal.add_working_days(pred.early_finish, link.lag)
                elif link.type is LinkType.START_TO_START:
                    candidate = cal.add_working_days(pred.early_start, link.lag)
                elif link.type is LinkType.FINISH_TO_FINISH:
                    finish = cal.add_working_days(pred.early_finish, link.lag)
                    candidate = cal.add_working_days(finish, -duration)
                else:
                    finish = cal.add_working_days(pred.early_start, link.lag)
                    candidate = cal.add_working_days(finish, -duration)
                early_start = max(early_start, candidate)
            if duration > 0:
                early_start = cal.next_working_day(early_start)
            times[task_id] = _Times(
                duration=duration,
                early_start=early_start,
                early_finish=cal.add_working_days(early_start, duration),
            )
        return times

    def _backward_pass(
        self,
        order: List[str],
        outgoing: Dict[str, List[DependencyLink]],
        times: Dict[str, _Times],
        project_finish: date,
    ) -> None:
        cal = self.calendar
        for task_id in reversed(order):
            entry = times[task_id]
            late_finish = project_finish
            for link in outgoing[task_id]:
                succ = times[link.target_id]
                if link.type is LinkType.FINISH_TO_START:
                    candidate = cal.add_working_days(succ.late_start, -link.lag)
                elif link.type is LinkType.START_TO_START:
                    start = cal.add_working_days(succ.late_start, -link.lag)
                    candidate = cal.add_working_days(start, entry.duration)
                elif link.type is LinkType.FINISH_TO_FINISH:
                    candidate = cal.add_working_days(succ.late_finish, -link.lag)
                else:
                    start = cal.add_working_days(succ.late_finish, -link.lag)
                    candidate = cal.add_working_days(start, entry.duration)
                late_finish = min(late_finish, candidate)
            entry.late_finish = late_finish
            entry.late_start = cal.add_working_days(late_finish, -entry.duration)

    # --- Float ----------------------------------------------------------------

    def _link_slack(self, link: DependencyLink, times: Dict[str, _Times]) -> int:
        """Days the predecessor could slip before this link moves its successor."""
        pred = times[link.source_id]
        succ = times[link.target_id]
        if link.type is LinkType.FINISH_TO_START:
            anchor, bound = pred.early_finish, succ.early_start
        elif link.type is LinkType.START_TO_START:
            anchor, bound = pred.early_start, succ.early_start
        elif link.type is LinkType.FINISH_TO_FINISH:
            anchor, bound = pred.early_finish, succ.early_finish
        else:
            anchor, bound = pred.early_start, succ.early_finish
        return self.calendar.working_days_between(self.calendar.add_working_days(anchor, link.lag), bound)

    def _free_float(
        self,
        links: List[DependencyLink],
        times: Dict[str, _Times],
        total_float: int,
    ) -> int:
        if not links:
            return total_float
        return min(self._link_slack(link, times) for link in links)
