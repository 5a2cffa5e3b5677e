"""Responsiveness node: match documents against the discovery requests."""

from __future__ import annotations

from functools import partial

from discovery_orchestrator.graph.deps import ReviewDependencies
from discovery_orchestrator.graph.state import ReviewState
from discovery_orchestrator.review import rules


def run(state: ReviewState, *, deps: ReviewDependencies) -> ReviewState:
    deps.context.report(50, "Analyzing document responsiveness")
    config = state["config"]
    verdicts = deps.classify_each(
        state["documents"],
        partial(deps.classifiers.responsiveness.classify, config=config),
        partial(rules.classify_responsiveness, config=config),
        stage="responsiveness",
    )
    return {
        "responsive": [verdict for verdict in verdicts if verdict.verdict],
        "non_responsive_ids": [verdict.document_id for verdict in verdicts if not verdict.verdict],
    }
