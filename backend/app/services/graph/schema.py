from typing import Dict, List, Optional
import datetime as dt
from pydantic import BaseModel, Field

class Task(BaseModel):
    id: int
    title: str
    due_date: Optional[dt.date] = None
    image_url: Optional[str] = None
    created_at: dt.datetime
    dependency_ids: List[int] = Field(default_factory=list)

    model_config = {"from_attributes": True}

class TaskCreate(BaseModel):
    title: str
    due_date: Optional[dt.date] = None
    dependency_ids: List[int] = Field(default_factory=list)

class DependencyCreate(BaseModel):
    depends_on_id: int

class IntegrityIssue(BaseModel):
    task_id: int
    missing_dependency_id: int

class Schedule(BaseModel):
    # task id -> earliest start
    dates: Dict[int, dt.date] = Field(default_factory=dict)
    integrity_issues: List[IntegrityIssue] = Field(default_factory=list)
    # date used for every "today" fallback in the pass
    today: Optional[dt.date] = None

class GraphNode(BaseModel):
    id: int
    title: str
    due_date: Optional[dt.date] = None
    earliest_start: dt.date
    overdue: bool = False
    image_url: Optional[str] = None

class GraphEdge(BaseModel):
    id: str
    source: int  # the dependency
    target: int  # the dependent task

class GraphView(BaseModel):
    nodes: List[GraphNode]
    edges: List[GraphEdge]
