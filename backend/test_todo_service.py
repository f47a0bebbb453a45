import logging
import threading
import datetime as dt
from unittest.mock import Mock
import pytest

from app.services.graph.exceptions import (
    CycleDetected,
    DuplicateEdge,
    GraphError,
    InvalidInput,
    NotFound,
)
from app.services.graph.schedule import ScheduleCalculator
from app.services.graph.service import TaskGraphService

TODAY = dt.date(2024, 1, 1)

@pytest.fixture
def service():
    return TaskGraphService(calculator=ScheduleCalculator(clock=lambda: TODAY))

def test_scenario_a_no_due_date_no_dependencies(service):
    foo = service.add_task("Foo")
    assert service.earliest_start(foo.id) == TODAY
    assert service.schedule().dates[foo.id] == TODAY

def test_scenario_b_dependency_dominates(service):
    bar = service.add_task("Bar", due_date=dt.date(2024, 1, 10))
    baz = service.add_task("Baz", due_date=dt.date(2024, 1, 5), dependency_ids=[bar.id])
    assert baz.dependency_ids == [bar.id]
    assert service.earliest_start(baz.id) == dt.date(2024, 1, 10)

def test_scenario_c_reverse_dependency_rejected(service):
    a = service.add_task("A")
    b = service.add_task("B", dependency_ids=[a.id])
    with pytest.raises(CycleDetected) as exc:
        service.add_dependency(a.id, b.id)
    assert exc.value.path == [a.id, b.id, a.id]
    edges = [(t.id, d) for t in service.list_tasks() for d in t.dependency_ids]
    assert edges == [(b.id, a.id)]

def test_scenario_d_delete_depended_on_task(service, caplog):
    a = service.add_task("A", due_date=dt.date(2024, 3, 1))
    b = service.add_task("B", dependency_ids=[a.id])
    stale = service.list_tasks()

    service.delete_task(a.id)
    assert service.get_task(b.id).dependency_ids == []
    assert service.schedule().dates == {b.id: TODAY}

    # A snapshot taken before the delete still references the old task
    with caplog.at_level(logging.WARNING):
        schedule = service.calculator.compute([t for t in stale if t.id != a.id])
    assert schedule.dates[b.id] == TODAY
    assert schedule.integrity_issues[0].missing_dependency_id == a.id
    assert "missing task" in caplog.text

def test_self_dependency_rejected(service):
    a = service.add_task("A")
    with pytest.raises(CycleDetected):
        service.add_dependency(a.id, a.id)

def test_blank_title_rejected(service):
    with pytest.raises(InvalidInput):
        service.add_task("   ")
    assert service.list_tasks() == []

def test_unknown_dependency_rolls_back_new_task(service):
    a = service.add_task("A")
    with pytest.raises(NotFound):
        service.add_task("C", dependency_ids=[a.id, 999])
    assert [t.title for t in service.list_tasks()] == ["A"]

def test_repeated_dependency_rolls_back_new_task(service):
    a = service.add_task("A")
    with pytest.raises(DuplicateEdge):
        service.add_task("C", dependency_ids=[a.id, a.id])
    assert [t.title for t in service.list_tasks()] == ["A"]

def test_rolled_back_id_is_not_reused(service):
    with pytest.raises(NotFound):
        service.add_task("Gone", dependency_ids=[42])
    first = service.add_task("Kept")
    assert first.id == 2

def test_list_never_contains_dangling_ids(service):
    a = service.add_task("A")
    b = service.add_task("B", dependency_ids=[a.id])
    service.add_task("C", dependency_ids=[a.id, b.id])
    service.delete_task(a.id)
    ids = {t.id for t in service.list_tasks()}
    for task in service.list_tasks():
        assert set(task.dependency_ids) <= ids

def test_remove_dependency(service):
    a = service.add_task("A")
    b = service.add_task("B", dependency_ids=[a.id])
    assert service.remove_dependency(b.id, a.id).dependency_ids == []
    with pytest.raises(NotFound):
        service.remove_dependency(b.id, a.id)

def test_enrichment_failure_does_not_block_creation():
    enricher = Mock()
    enricher.lookup.side_effect = RuntimeError("quota exceeded")
    service = TaskGraphService(enricher=enricher)
    task = service.add_task("Buy milk")
    assert task.image_url is None
    enricher.lookup.assert_called_once_with("Buy milk")

def test_enrichment_result_is_stored():
    enricher = Mock()
    enricher.lookup.return_value = "https://images.example/milk.jpg"
    service = TaskGraphService(enricher=enricher)
    assert service.add_task("Buy milk").image_url == "https://images.example/milk.jpg"

def test_persistence_failure_rolls_back_tentative_task():
    repository = Mock()
    repository.save_task.side_effect = RuntimeError("database is locked")
    service = TaskGraphService(repository=repository)
    with pytest.raises(RuntimeError):
        service.add_task("A")
    assert service.list_tasks() == []

def test_persistence_failure_leaves_edge_uncommitted():
    repository = Mock()
    service = TaskGraphService(repository=repository)
    a = service.add_task("A")
    b = service.add_task("B")
    repository.add_edge.side_effect = RuntimeError("database is locked")
    with pytest.raises(RuntimeError):
        service.add_dependency(b.id, a.id)
    assert service.get_task(b.id).dependency_ids == []

def test_rejected_mutations_never_reach_repository():
    repository = Mock()
    service = TaskGraphService(repository=repository)
    a = service.add_task("A")
    b = service.add_task("B", dependency_ids=[a.id])
    with pytest.raises(CycleDetected):
        service.add_dependency(a.id, b.id)
    repository.add_edge.assert_not_called()
    assert repository.save_task.call_count == 2

def test_concurrent_opposite_edges_cannot_both_succeed(service):
    a = service.add_task("A")
    b = service.add_task("B")
    barrier = threading.Barrier(2)
    errors = []

    def link(task_id, dep_id):
        barrier.wait()
        try:
            service.add_dependency(task_id, dep_id)
        except GraphError as e:
            errors.append(e)

    threads = [
        threading.Thread(target=link, args=(a.id, b.id)),
        threading.Thread(target=link, args=(b.id, a.id)),
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(errors) == 1
    assert isinstance(errors[0], CycleDetected)
    edges = [(t.id, d) for t in service.list_tasks() for d in t.dependency_ids]
    assert len(edges) == 1

def test_graph_view(service):
    late = service.add_task("Late", due_date=dt.date(2023, 12, 1))
    later = service.add_task("Later", dependency_ids=[late.id])
    view = service.graph_view()
    nodes = {n.id: n for n in view.nodes}
    assert nodes[late.id].overdue
    assert not nodes[later.id].overdue
    assert nodes[later.id].earliest_start == dt.date(2023, 12, 1)
    assert [(e.id, e.source, e.target) for e in view.edges] == [
        (f"e{late.id}-{later.id}", late.id, later.id)
    ]

@pytest.mark.parametrize("title", [None, 123])
def test_non_string_title_rejected(service, title):
    with pytest.raises(InvalidInput):
        service.add_task(title)
    assert service.list_tasks() == []

def test_long_dependency_chain_schedules(service):
    ids = [service.add_task(f"T{i}").id for i in range(600)]
    for a, b in zip(ids, ids[1:]):
        service.add_dependency(a, b)
    assert service.earliest_start(ids[0]) == TODAY
    assert len(service.schedule().dates) == 600

def test_graph_view_samples_today_once():
    days = iter([dt.date(2024, 1, 1), dt.date(2024, 1, 3)])
    service = TaskGraphService(calculator=ScheduleCalculator(clock=lambda: next(days)))
    due = service.add_task("Due tomorrow", due_date=dt.date(2024, 1, 2))
    undated = service.add_task("Undated")
    nodes = {n.id: n for n in service.graph_view().nodes}
    assert nodes[undated.id].earliest_start == dt.date(2024, 1, 1)
    assert not nodes[due.id].overdue
