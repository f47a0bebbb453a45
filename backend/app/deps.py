import threading
from typing import Optional
from app.config import get_config
from app.db.base import Base
from app.db.session import SessionLocal, engine
from app.db.models import todo, task_dependency  # noqa: F401 (registers tables)
from app.services.graph.repository import SqlTaskRepository
from app.services.graph.schedule import ScheduleCalculator
from app.services.graph.service import TaskGraphService

_service: Optional[TaskGraphService] = None
_service_lock = threading.Lock()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def _build_graph_service() -> TaskGraphService:
    Base.metadata.create_all(bind=engine)
    service = TaskGraphService(
        repository=SqlTaskRepository(SessionLocal),
        calculator=ScheduleCalculator(strict=get_config().strict_schedule),
    )
    service.load()
    return service

def get_graph_service() -> TaskGraphService:
    """Process-wide service, hydrated from the database on first use.

    Requests run in a thread pool, so the first build happens under a lock:
    two graphs over one database would cycle-check against stale edges.
    """
    global _service
    if _service is None:
        with _service_lock:
            if _service is None:
                _service = _build_graph_service()
    return _service
