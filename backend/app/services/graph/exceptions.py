from typing import Any, List, Optional


class GraphError(Exception):
    """Base class for failures reported by the todo graph."""

    error = "graph_error"

    def __init__(self, message: str, detail: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class InvalidInput(GraphError):
    error = "invalid_input"


class NotFound(GraphError):
    error = "not_found"


class DuplicateEdge(GraphError):
    error = "duplicate_edge"


class CycleDetected(GraphError):
    error = "cycle_detected"

    def __init__(self, message: str, path: Optional[List[int]] = None):
        super().__init__(message, detail={"path": path} if path else None)
        self.path = path or []


class IntegrityViolation(GraphError):
    """A dependency reference points to a task that does not exist."""

    error = "integrity_violation"
