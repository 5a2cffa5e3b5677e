"""LangGraph workflow assembly for the discovery review pipeline."""

from functools import partial

from langgraph.graph import END, StateGraph

from discovery_orchestrator.graph.deps import ReviewDependencies
from discovery_orchestrator.graph.nodes import (
    artifacts,
    hot_documents,
    load,
    privilege,
    report,
    responsiveness,
)
from discovery_orchestrator.graph.state import ReviewState

STAGES = (
    ("load", load.run),
    ("privilege", privilege.run),
    ("responsiveness", responsiveness.run),
    ("hot_documents", hot_documents.run),
    ("artifacts", artifacts.run),
    ("report", report.run),
)


def build_graph(deps: ReviewDependencies):
    graph = StateGraph(ReviewState)

    for name, node in STAGES:
        graph.add_node(name, partial(node, deps=deps))

    graph.set_entry_point(STAGES[0][0])
    for (current, _), (following, _) in zip(STAGES, STAGES[1:]):
        graph.add_edge(current, following)
    graph.add_edge(STAGES[-1][0], END)

    return graph.compile()
