"""Artifacts node: privilege log, production set and statistics."""

from __future__ import annotations

from discovery_orchestrator.graph.deps import ReviewDependencies
from discovery_orchestrator.graph.state import ReviewState
from discovery_orchestrator.review.artifacts import (
    build_privilege_log,
    build_production_set,
    compute_statistics,
)


def run(state: ReviewState, *, deps: ReviewDependencies) -> ReviewState:
    deps.context.checkpoint()
    deps.context.report(85, "Generating privilege log and production recommendations")
    documents = {document.id: document for document in state["documents"]}
    privileged = state.get("privileged", [])
    responsive = state.get("responsive", [])

    privilege_log = build_privilege_log(documents, privileged)
    production_set = build_production_set(
        documents,
        responsive,
        privileged,
        non_responsive_count=len(state.get("non_responsive_ids", [])),
    )
    statistics = compute_statistics(
        total=len(documents),
        privileged=privileged,
        responsive=responsive,
        hot=state.get("hot_documents", []),
        potential_waivers=state.get("potential_waivers", []),
        production_count=production_set["total_count"],
    )
    return {
        "privilege_log": privilege_log,
        "production_set": production_set,
        "statistics": statistics,
    }
