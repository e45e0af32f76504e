"""Shared plumbing for the service's LangGraph graphs."""

from __future__ import annotations

from abc import ABC, abstractmethod
from langgraph.graph import StateGraph

from blusocial.utils.errors import GraphExecutionError
from blusocial.utils.logging_config import logger


def with_state(state: dict, **updates) -> dict:
    """Copy of ``state`` with ``updates`` applied. Nodes never mutate input."""

    return {**state, **updates}


class BaseGraph(ABC):
    """Base for graphs whose nodes are async and record failures in state.

    A failing node sets ``state["error"]``; later nodes pass the state
    through and ``finalize_response`` reports it in ``response_metadata``.
    """

    name = "graph"

    def __init__(self, timeout: int = 30):
        self.timeout = timeout
        self.logger = logger

    @abstractmethod
    def build_graph(self) -> StateGraph:
        """Return the uncompiled StateGraph."""

    def _log_node_execution(self, node_name: str, state: dict) -> None:
        # ids only; profiles carry location and push tokens
        self.logger.debug(
            "%s.%s user=%s", self.name, node_name, state.get("user_id")
        )

    def _log_node_error(self, node_name: str, error: Exception) -> None:
        self.logger.error("%s.%s failed: %s", self.name, node_name, str(error))

    def _fail(
        self, state: dict, node_name: str, error: Exception, message: str, **updates
    ) -> dict:
        """Log ``error`` and return ``state`` carrying the user-facing ``message``."""

        self._log_node_error(node_name, error)
        return with_state(state, error=message, **updates)

    def compile(self):
        try:
            return self.build_graph().compile()
        except Exception as exc:
            self.logger.error("Failed to compile %s graph: %s", self.name, str(exc))
            raise GraphExecutionError(f"{self.name} graph failed to compile") from exc
