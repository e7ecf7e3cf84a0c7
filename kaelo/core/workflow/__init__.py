"""LangGraph workflows."""

from .base import WorkflowBase, WorkflowError
from .coordinator import (
    CoordinatorAgent,
    CoordinatorError,
    PersistenceResult,
    PipelineNode,
    PipelineState,
    SessionContext,
)

__all__ = [
    "WorkflowBase",
    "WorkflowError",
    "CoordinatorAgent",
    "CoordinatorError",
    "PersistenceResult",
    "PipelineNode",
    "PipelineState",
    "SessionContext",
]
