"""SQLAlchemy persistence for todos and dependency edges."""
from contextlib import contextmanager
from typing import Iterable, Iterator, List, Protocol, Tuple

from sqlalchemy.orm import Session, sessionmaker

from app.db.models.task_dependency import TaskDependency
from app.db.models.todo import Todo
from app.services.graph.schema import Task


class TaskRepository(Protocol):
    """What the graph service needs from persistence."""

    def load(self) -> Tuple[List[Task], List[Tuple[int, int]]]: ...

    def save_task(self, task: Task, dependency_ids: Iterable[int]) -> None: ...

    def delete_task(self, task_id: int) -> None: ...

    def add_edge(self, task_id: int, depends_on_id: int) -> None: ...

    def remove_edge(self, task_id: int, depends_on_id: int) -> None: ...


class SqlTaskRepository:
    """Mirrors graph mutations into the database, one transaction per call."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Commits on success and rolls back on error."""
        sess = self._session_factory()
        try:
            yield sess
            sess.commit()
        except Exception:
            sess.rollback()
            raise
        finally:
            sess.close()

    def load(self) -> Tuple[List[Task], List[Tuple[int, int]]]:
        with self.session() as db:
            todos = db.query(Todo).order_by(Todo.created_at, Todo.id).all()
            tasks = [Task.model_validate(todo) for todo in todos]
            edges = [
                (row.task_id, row.depends_on_id)
                for row in db.query(TaskDependency).order_by(TaskDependency.id).all()
            ]
        return tasks, edges

    def save_task(self, task: Task, dependency_ids: Iterable[int]) -> None:
        """Insert the task and all its edges in a single transaction."""
        with self.session() as db:
            db.add(
                Todo(
                    id=task.id,
                    title=task.title,
                    due_date=task.due_date,
                    image_url=task.image_url,
                    created_at=task.created_at,
                )
            )
            db.flush()
            db.add_all(
                TaskDependency(task_id=task.id, depends_on_id=dep) for dep in dependency_ids
            )

    def delete_task(self, task_id: int) -> None:
        with self.session() as db:
            db.query(TaskDependency).filter(
                (TaskDependency.task_id == task_id) | (TaskDependency.depends_on_id == task_id)
            ).delete(synchronize_session=False)
            db.query(Todo).filter(Todo.id == task_id).delete(synchronize_session=False)

    def add_edge(self, task_id: int, depends_on_id: int) -> None:
        with self.session() as db:
            db.add(TaskDependency(task_id=task_id, depends_on_id=depends_on_id))

    def remove_edge(self, task_id: int, depends_on_id: int) -> None:
        with self.session() as db:
            db.query(TaskDependency).filter(
                TaskDependency.task_id == task_id,
                TaskDependency.depends_on_id == depends_on_id,
            ).delete(synchronize_session=False)
