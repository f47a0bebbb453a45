"""Mutation API over the todo dependency graph.

Every mutation follows the same shape under one lock: validate against the
in-memory store, write through to the repository, then commit in memory.
Readers take the same lock, so they never see a half-applied change.
"""
from typing import Iterable, List, Optional
import datetime as dt
import logging
import threading

from app.services.graph.enrichment import ImageEnricher, NullEnricher, safe_lookup
from app.services.graph.exceptions import InvalidInput, NotFound
from app.services.graph.repository import TaskRepository
from app.services.graph.schedule import ScheduleCalculator
from app.services.graph.schema import GraphEdge, GraphNode, GraphView, Schedule, Task
from app.services.graph.store import GraphStore

logger = logging.getLogger(__name__)


class TaskGraphService:
    def __init__(
        self,
        store: Optional[GraphStore] = None,
        repository: Optional[TaskRepository] = None,
        enricher: Optional[ImageEnricher] = None,
        calculator: Optional[ScheduleCalculator] = None,
    ):
        self.store = store if store is not None else GraphStore()
        # None keeps the graph purely in memory
        self.repository = repository
        self.enricher = enricher or NullEnricher()
        self.calculator = calculator or ScheduleCalculator()
        self._lock = threading.RLock()

    def load(self) -> None:
        """Rebuild the store from the repository and check it is a valid DAG."""
        if self.repository is None:
            return
        tasks, edges = self.repository.load()
        with self._lock:
            store = GraphStore()
            for task in tasks:
                store.create_task(
                    task.title,
                    due_date=task.due_date,
                    image_url=task.image_url,
                    task_id=task.id,
                    created_at=task.created_at,
                )
            store.load_edges(edges)
            store.verify_integrity()
            self.store = store
        logger.info("Loaded %d tasks and %d dependencies", len(tasks), len(edges))

    # --- mutations ---

    def add_task(
        self,
        title: str,
        due_date: Optional[dt.date] = None,
        dependency_ids: Iterable[int] = (),
    ) -> Task:
        if not isinstance(title, str) or not title.strip():
            raise InvalidInput("Title is required")
        deps = list(dependency_ids)
        # Outside the lock: the lookup may do network I/O.
        image_url = safe_lookup(self.enricher, title.strip())

        with self._lock:
            # Phase 1: tentative create, so the new task has an id to check against.
            task = self.store.create_task(title, due_date=due_date, image_url=image_url)
            try:
                # Phase 2: validate the whole batch, persist, then commit.
                self.store.check_edges(task.id, deps)
                if self.repository is not None:
                    self.repository.save_task(task, deps)
                task = self.store.add_edges(task.id, deps)
            except Exception:
                self.store.delete_task(task.id)
                logger.info("Rolled back tentative task %s", task.id)
                raise

        logger.info("Created task %s (%r) depending on %s", task.id, task.title, deps)
        return task

    def delete_task(self, task_id: int) -> Task:
        with self._lock:
            self.store.get_task(task_id)
            dependents = self.store.dependents_of(task_id)
            if self.repository is not None:
                self.repository.delete_task(task_id)
            removed = self.store.delete_task(task_id)
        if dependents:
            logger.info("Deleted task %s; tasks %s no longer depend on it", task_id, dependents)
        else:
            logger.info("Deleted task %s", task_id)
        return removed

    def add_dependency(self, task_id: int, depends_on_id: int) -> Task:
        with self._lock:
            self.store.check_edges(task_id, [depends_on_id])
            if self.repository is not None:
                self.repository.add_edge(task_id, depends_on_id)
            return self.store.add_edge(task_id, depends_on_id)

    def remove_dependency(self, task_id: int, depends_on_id: int) -> Task:
        with self._lock:
            task = self.store.get_task(task_id)
            if depends_on_id not in task.dependency_ids:
                raise NotFound(f"Task {task_id} does not depend on {depends_on_id}")
            if self.repository is not None:
                self.repository.remove_edge(task_id, depends_on_id)
            return self.store.remove_edge(task_id, depends_on_id)

    # --- reads ---

    def get_task(self, task_id: int) -> Task:
        with self._lock:
            return self.store.get_task(task_id)

    def list_tasks(self) -> List[Task]:
        with self._lock:
            return self.store.list_tasks()

    def schedule(self) -> Schedule:
        result = self.calculator.compute(self.list_tasks())
        if result.integrity_issues:
            logger.error("Schedule computed with %d dangling dependencies", len(result.integrity_issues))
        return result

    def earliest_start(self, task_id: int) -> dt.date:
        with self._lock:
            self.store.get_task(task_id)
            tasks = self.store.list_tasks()
        return self.calculator.earliest_start(task_id, tasks)

    def graph_view(self) -> GraphView:
        tasks = self.list_tasks()
        schedule = self.calculator.compute(tasks)
        today = schedule.today
        nodes = [
            GraphNode(
                id=t.id,
                title=t.title,
                due_date=t.due_date,
                earliest_start=schedule.dates[t.id],
                overdue=t.due_date is not None and t.due_date < today,
                image_url=t.image_url,
            )
            for t in tasks
        ]
        edges = [
            GraphEdge(id=f"e{dep}-{t.id}", source=dep, target=t.id)
            for t in tasks
            for dep in t.dependency_ids
        ]
        return GraphView(nodes=nodes, edges=edges)
