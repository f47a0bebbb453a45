import datetime as dt
import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.base import Base
from app.db.models.task_dependency import TaskDependency
from app.db.models.todo import Todo
from app.services.graph.exceptions import CycleDetected, IntegrityViolation
from app.services.graph.repository import SqlTaskRepository
from app.services.graph.service import TaskGraphService

@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False)
    engine.dispose()

@pytest.fixture
def repository(session_factory):
    return SqlTaskRepository(session_factory)

def test_mutations_survive_reload(repository):
    service = TaskGraphService(repository=repository)
    a = service.add_task("A", due_date=dt.date(2024, 1, 10))
    b = service.add_task("B", dependency_ids=[a.id])
    c = service.add_task("C")
    service.add_dependency(c.id, b.id)

    reloaded = TaskGraphService(repository=repository)
    reloaded.load()
    assert [t.title for t in reloaded.list_tasks()] == ["C", "B", "A"]
    assert reloaded.get_task(a.id).due_date == dt.date(2024, 1, 10)
    assert reloaded.get_task(c.id).dependency_ids == [b.id]
    # ids keep counting past the loaded ones
    assert reloaded.add_task("D").id == c.id + 1

def test_delete_removes_rows_and_edges(repository, session_factory):
    service = TaskGraphService(repository=repository)
    a = service.add_task("A")
    b = service.add_task("B", dependency_ids=[a.id])
    service.delete_task(a.id)

    with session_factory() as db:
        assert db.query(Todo).count() == 1
        assert db.query(TaskDependency).count() == 0
    assert service.get_task(b.id).dependency_ids == []

def test_remove_dependency_is_persisted(repository):
    service = TaskGraphService(repository=repository)
    a = service.add_task("A")
    b = service.add_task("B", dependency_ids=[a.id])
    service.remove_dependency(b.id, a.id)

    reloaded = TaskGraphService(repository=repository)
    reloaded.load()
    assert reloaded.get_task(b.id).dependency_ids == []

def test_rejected_cycle_writes_nothing(repository, session_factory):
    service = TaskGraphService(repository=repository)
    a = service.add_task("A")
    b = service.add_task("B", dependency_ids=[a.id])
    with pytest.raises(CycleDetected):
        service.add_dependency(a.id, b.id)
    with session_factory() as db:
        pairs = [(r.task_id, r.depends_on_id) for r in db.query(TaskDependency).all()]
    assert pairs == [(b.id, a.id)]

def test_failed_insert_rolls_back_in_memory_task(repository, session_factory):
    with session_factory() as db:
        db.add(Todo(id=1, title="Out of band", created_at=dt.datetime(2024, 1, 1)))
        db.commit()

    service = TaskGraphService(repository=repository)
    with pytest.raises(IntegrityError):
        service.add_task("Clashes with row 1")
    assert service.list_tasks() == []

def test_load_rejects_dangling_dependency(repository, session_factory):
    with session_factory() as db:
        db.add(Todo(id=1, title="A", created_at=dt.datetime(2024, 1, 1)))
        db.add(TaskDependency(task_id=1, depends_on_id=2))
        db.commit()

    with pytest.raises(IntegrityViolation):
        TaskGraphService(repository=repository).load()

def test_load_rejects_stored_cycle(repository, session_factory):
    with session_factory() as db:
        db.add_all([
            Todo(id=1, title="A", created_at=dt.datetime(2024, 1, 1)),
            Todo(id=2, title="B", created_at=dt.datetime(2024, 1, 2)),
            TaskDependency(task_id=1, depends_on_id=2),
            TaskDependency(task_id=2, depends_on_id=1),
        ])
        db.commit()

    with pytest.raises(IntegrityViolation):
        TaskGraphService(repository=repository).load()
