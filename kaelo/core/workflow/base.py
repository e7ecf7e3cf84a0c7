"""Base workflow implementation using LangGraph.

This module provides the foundational workflow infrastructure the
coordinator pipeline is built on.
"""

from abc import ABC, abstractmethod
from typing import Any, Generic, Mapping, TypeVar

from langgraph.graph import StateGraph

S = TypeVar("S", bound=Mapping[str, Any])


class WorkflowError(RuntimeError):
    """Exception raised when a workflow cannot complete."""
    pass


class WorkflowBase(ABC, Generic[S]):
    """Abstract base class for LangGraph workflows.

    Subclasses declare nodes and edges in ``build_graph``; compilation
    happens once, on first use.
    """

    def __init__(self) -> None:
        """Initialize the workflow base."""
        self._graph: StateGraph | None = None
        self._compiled_graph: Any | None = None

    @abstractmethod
    def build_graph(self) -> StateGraph:
        """Build and return the LangGraph state machine.

        Returns:
            Configured StateGraph ready for compilation
        """
        pass

    def compile(self) -> Any:
        """Compile the workflow graph for execution.

        Returns:
            Compiled graph ready for execution

        Raises:
            WorkflowError: If graph compilation fails
        """
        if self._compiled_graph is not None:
            return self._compiled_graph

        try:
            self._graph = self.build_graph()
            self._compiled_graph = self._graph.compile()
            return self._compiled_graph
        except Exception as e:
            raise WorkflowError(f"Failed to compile workflow graph: {e}") from e

    async def aexecute(
        self,
        initial_state: S,
        config: dict[str, Any] | None = None
    ) -> S:
        """Execute the workflow asynchronously with the given initial state.

        Args:
            initial_state: Starting state for the workflow
            config: Optional configuration for execution

        Returns:
            Final state after workflow completion

        Raises:
            WorkflowError: If workflow execution fails
        """
        compiled = self.compile()

        try:
            return await compiled.ainvoke(initial_state, config=config or {})
        except WorkflowError:
            raise
        except Exception as e:
            raise WorkflowError(f"Workflow execution failed: {e}") from e

    def get_state_transitions(self) -> dict[str, list[str]]:
        """Get mapping of possible state transitions.

        Returns:
            Dictionary mapping node names to their possible next nodes
        """
        graph_data = self.compile().get_graph()
        transitions: dict[str, list[str]] = {node: [] for node in graph_data.nodes}

        for edge in graph_data.edges:
            transitions.setdefault(edge.source, []).append(edge.target)

        return transitions
