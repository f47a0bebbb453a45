"""In-memory store for todos and their dependency edges.

Edges are kept as an adjacency map ``task id -> ids it depends on``. The
store owns acyclicity of that map: every edge insertion is cycle-checked
first and the store is left untouched when a check fails.
"""
from typing import Dict, Iterable, List, Optional, Set
import datetime as dt
import itertools
import logging

from app.services.graph.cycles import find_cycle
from app.services.graph.exceptions import (
    CycleDetected,
    DuplicateEdge,
    IntegrityViolation,
    InvalidInput,
    NotFound,
)
from app.services.graph.ordering import topological_order
from app.services.graph.schema import Task

logger = logging.getLogger(__name__)


class GraphStore:
    def __init__(self):
        self._tasks: Dict[int, Task] = {}
        self._deps: Dict[int, Set[int]] = {}
        self._next_id = 1
        # creation tiebreak for tasks sharing a created_at timestamp
        self._seq = itertools.count()
        self._order: Dict[int, int] = {}

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, task_id: int) -> bool:
        return task_id in self._tasks

    # --- tasks ---

    def create_task(
        self,
        title: str,
        due_date: Optional[dt.date] = None,
        image_url: Optional[str] = None,
        task_id: Optional[int] = None,
        created_at: Optional[dt.datetime] = None,
    ) -> Task:
        if not isinstance(title, str) or not title.strip():
            raise InvalidInput("Title is required")
        if task_id is None:
            task_id = self._next_id
        elif task_id in self._tasks:
            raise InvalidInput(f"Task id {task_id} is already taken")
        self._next_id = max(self._next_id, task_id + 1)

        task = Task(
            id=task_id,
            title=title.strip(),
            due_date=due_date,
            image_url=image_url,
            created_at=created_at or dt.datetime.utcnow(),
        )
        self._tasks[task_id] = task
        self._deps[task_id] = set()
        self._order[task_id] = next(self._seq)
        return self._view(task_id)

    def delete_task(self, task_id: int) -> Task:
        """Remove a task and every edge touching it, in either direction."""
        removed = self.get_task(task_id)
        del self._tasks[task_id]
        del self._deps[task_id]
        del self._order[task_id]
        for tid, deps in self._deps.items():
            if task_id in deps:
                deps.discard(task_id)
                logger.info("Dropped dependency %s -> %s with deleted task", tid, task_id)
        return removed

    def get_task(self, task_id: int) -> Task:
        if task_id not in self._tasks:
            raise NotFound(f"Task {task_id} not found")
        return self._view(task_id)

    def list_tasks(self) -> List[Task]:
        """All tasks, newest first, each with its dependency ids."""
        ids = sorted(
            self._tasks,
            key=lambda tid: (self._tasks[tid].created_at, self._order[tid]),
            reverse=True,
        )
        return [self._view(tid) for tid in ids]

    def dependencies_of(self, task_id: int) -> List[int]:
        return self.get_task(task_id).dependency_ids

    def dependents_of(self, task_id: int) -> List[int]:
        self.get_task(task_id)
        return sorted(tid for tid, deps in self._deps.items() if task_id in deps)

    def adjacency(self) -> Dict[int, List[int]]:
        return {tid: sorted(deps) for tid, deps in self._deps.items()}

    # --- edges ---

    def check_edges(self, task_id: int, dependency_ids: Iterable[int]) -> List[int]:
        """Validate a batch of new edges for one task without mutating anything.

        Returns the batch as a list. Raises on the first problem found, so a
        batch is accepted or rejected as a whole.
        """
        deps = list(dependency_ids)
        self.get_task(task_id)
        for dep in deps:
            if dep not in self._tasks:
                raise NotFound(f"Dependency {dep} not found")

        path = find_cycle(self._deps, task_id, deps)
        if path:
            logger.info("Rejected dependencies %s for task %s: cycle %s", deps, task_id, path)
            raise CycleDetected("Circular dependency detected", path=path)

        seen: Set[int] = set()
        for dep in deps:
            if dep in seen or dep in self._deps[task_id]:
                raise DuplicateEdge(f"Task {task_id} already depends on {dep}")
            seen.add(dep)
        return deps

    def add_edges(self, task_id: int, dependency_ids: Iterable[int]) -> Task:
        deps = self.check_edges(task_id, dependency_ids)
        self._deps[task_id].update(deps)
        if deps:
            logger.info("Task %s now depends on %s", task_id, deps)
        return self._view(task_id)

    def add_edge(self, task_id: int, depends_on_id: int) -> Task:
        return self.add_edges(task_id, [depends_on_id])

    def remove_edge(self, task_id: int, depends_on_id: int) -> Task:
        self.get_task(task_id)
        if depends_on_id not in self._deps[task_id]:
            raise NotFound(f"Task {task_id} does not depend on {depends_on_id}")
        self._deps[task_id].discard(depends_on_id)
        logger.info("Removed dependency %s -> %s", task_id, depends_on_id)
        return self._view(task_id)

    def load_edges(self, edges: Iterable[tuple]) -> None:
        """Insert persisted edges as-is; call verify_integrity() afterwards."""
        for task_id, depends_on_id in edges:
            self._deps.setdefault(task_id, set()).add(depends_on_id)

    def verify_integrity(self) -> None:
        for tid, deps in self._deps.items():
            if tid not in self._tasks:
                raise IntegrityViolation(f"Dependencies recorded for unknown task {tid}")
            missing = sorted(d for d in deps if d not in self._tasks)
            if missing:
                raise IntegrityViolation(
                    f"Task {tid} depends on unknown tasks {missing}",
                    detail={"task_id": tid, "missing": missing},
                )
        try:
            topological_order(self._deps)
        except CycleDetected as exc:
            raise IntegrityViolation(
                "Stored dependencies contain a cycle", detail={"path": exc.path}
            ) from exc

    def _view(self, task_id: int) -> Task:
        return self._tasks[task_id].model_copy(
            update={"dependency_ids": sorted(self._deps[task_id])}
        )
