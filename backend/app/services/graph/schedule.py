"""Earliest start dates derived from the dependency graph.

    earliest_start(t) = t.due_date or today            if t has no dependencies
    earliest_start(t) = max(earliest_start(d) for d)   otherwise

Evaluation is memoized per pass, so a task reached through many paths
(a diamond) is computed once.
"""
from typing import Callable, Dict, Iterable, List, Set
import datetime as dt
import logging

from app.services.graph.exceptions import IntegrityViolation
from app.services.graph.schema import IntegrityIssue, Schedule, Task

logger = logging.getLogger(__name__)


class _Pass:
    """State of a single schedule computation. Never outlives it."""

    def __init__(self, tasks: Dict[int, Task], today: dt.date):
        self.tasks = tasks
        self.today = today
        self.memo: Dict[int, dt.date] = {}
        self.in_progress: Set[int] = set()
        self.issues: List[IntegrityIssue] = []


class ScheduleCalculator:
    def __init__(self, clock: Callable[[], dt.date] = dt.date.today, strict: bool = False):
        self.clock = clock
        self.strict = strict

    def compute(self, tasks: Iterable[Task]) -> Schedule:
        state = _Pass({t.id: t for t in tasks}, self.clock())
        for task_id in sorted(state.tasks):
            self._earliest(task_id, state)
        return Schedule(dates=dict(state.memo), integrity_issues=state.issues, today=state.today)

    def earliest_start(self, task_id: int, tasks: Iterable[Task]) -> dt.date:
        """Evaluate one task; only its transitive dependencies are visited."""
        state = _Pass({t.id: t for t in tasks}, self.clock())
        if task_id not in state.tasks:
            raise KeyError(task_id)
        return self._earliest(task_id, state)

    def _earliest(self, task_id: int, state: _Pass) -> dt.date:
        """Post-order walk over the dependencies of task_id, with an explicit stack.

        _resolve runs once per task, after all of its dependencies are memoized.
        """
        if task_id in state.memo:
            return state.memo[task_id]
        state.in_progress.add(task_id)
        frames = [(task_id, iter(state.tasks[task_id].dependency_ids))]
        while frames:
            current, deps = frames[-1]
            nxt = next(deps, None)
            if nxt is None:
                frames.pop()
                state.memo[current] = self._resolve(state.tasks[current], state)
                state.in_progress.discard(current)
                continue
            if nxt in state.memo or nxt not in state.tasks:
                continue
            if nxt in state.in_progress:
                # Acyclicity is enforced on every insert; getting here is a bug.
                raise AssertionError(f"dependency cycle through task {nxt} during scheduling")
            state.in_progress.add(nxt)
            frames.append((nxt, iter(state.tasks[nxt].dependency_ids)))
        return state.memo[task_id]

    def _resolve(self, task: Task, state: _Pass) -> dt.date:
        if not task.dependency_ids:
            return task.due_date or state.today

        dates = []
        for dep_id in task.dependency_ids:
            if dep_id not in state.tasks:
                dates.append(self._missing(task.id, dep_id, state))
            else:
                dates.append(state.memo[dep_id])
        return max(dates)

    def _missing(self, task_id: int, dep_id: int, state: _Pass) -> dt.date:
        if self.strict:
            raise IntegrityViolation(
                f"Task {task_id} depends on missing task {dep_id}",
                detail={"task_id": task_id, "missing_dependency_id": dep_id},
            )
        logger.warning(
            "Task %s depends on missing task %s; using %s as its start",
            task_id,
            dep_id,
            state.today,
        )
        state.issues.append(IntegrityIssue(task_id=task_id, missing_dependency_id=dep_id))
        return state.today
