"""Report node: render the markdown review report."""

from __future__ import annotations

from discovery_orchestrator.graph.deps import ReviewDependencies
from discovery_orchestrator.graph.state import ReviewState
from discovery_orchestrator.review.artifacts import render_report


def run(state: ReviewState, *, deps: ReviewDependencies) -> ReviewState:
    deps.context.checkpoint()
    deps.context.report(95, "Generating discovery review report")
    report = render_report(
        matter_name=state["config"].matter_name,
        statistics=state["statistics"],
        privileged=state.get("privileged", []),
        potential_waivers=state.get("potential_waivers", []),
        hot=state.get("hot_documents", []),
    )
    return {"report": report}
