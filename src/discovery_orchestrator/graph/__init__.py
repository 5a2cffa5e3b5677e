"""Discovery review workflow."""

from discovery_orchestrator.graph.deps import ReviewDependencies
from discovery_orchestrator.graph.state import ReviewState, initial_state
from discovery_orchestrator.graph.workflow import build_graph

__all__ = ["ReviewDependencies", "ReviewState", "build_graph", "initial_state"]
