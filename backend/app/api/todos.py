from typing import List
import datetime as dt
import logging

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from app.deps import get_graph_service
from app.services.graph.exceptions import (
    CycleDetected,
    DuplicateEdge,
    GraphError,
    IntegrityViolation,
    InvalidInput,
    NotFound,
)
from app.services.graph.schema import DependencyCreate, GraphView, Schedule, Task, TaskCreate
from app.services.graph.service import TaskGraphService

logger = logging.getLogger(__name__)

router = APIRouter()

STATUS_CODES = {
    InvalidInput: 400,
    CycleDetected: 400,
    NotFound: 404,
    DuplicateEdge: 409,
    IntegrityViolation: 500,
}

async def graph_error_handler(request: Request, exc: GraphError) -> JSONResponse:
    status_code = STATUS_CODES.get(type(exc), 500)
    if status_code >= 500:
        logger.error("%s on %s %s: %s", exc.error, request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.error, "message": exc.message, "detail": exc.detail},
    )

def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(GraphError, graph_error_handler)

@router.get("/todos", response_model=List[Task])
def list_todos(service: TaskGraphService = Depends(get_graph_service)):
    return service.list_tasks()

@router.post("/todos", response_model=Task, status_code=201)
def create_todo(todo: TaskCreate, service: TaskGraphService = Depends(get_graph_service)):
    return service.add_task(todo.title, due_date=todo.due_date, dependency_ids=todo.dependency_ids)

# Registered before /todos/{todo_id} so the literal paths win
@router.get("/todos/schedule", response_model=Schedule)
def get_schedule(service: TaskGraphService = Depends(get_graph_service)):
    return service.schedule()

@router.get("/todos/graph", response_model=GraphView)
def get_graph(service: TaskGraphService = Depends(get_graph_service)):
    return service.graph_view()

@router.get("/todos/{todo_id}", response_model=Task)
def get_todo(todo_id: int, service: TaskGraphService = Depends(get_graph_service)):
    return service.get_task(todo_id)

@router.get("/todos/{todo_id}/earliest-start")
def get_earliest_start(todo_id: int, service: TaskGraphService = Depends(get_graph_service)):
    earliest: dt.date = service.earliest_start(todo_id)
    return {"task_id": todo_id, "earliest_start": earliest.isoformat()}

@router.delete("/todos/{todo_id}")
def delete_todo(todo_id: int, service: TaskGraphService = Depends(get_graph_service)):
    service.delete_task(todo_id)
    return {"message": "Todo deleted"}

@router.post("/todos/{todo_id}/dependencies", response_model=Task, status_code=201)
def add_dependency(
    todo_id: int,
    dependency: DependencyCreate,
    service: TaskGraphService = Depends(get_graph_service),
):
    return service.add_dependency(todo_id, dependency.depends_on_id)

@router.delete("/todos/{todo_id}/dependencies/{depends_on_id}", response_model=Task)
def remove_dependency(
    todo_id: int,
    depends_on_id: int,
    service: TaskGraphService = Depends(get_graph_service),
):
    return service.remove_dependency(todo_id, depends_on_id)
