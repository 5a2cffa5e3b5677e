"""Privilege node: partition documents and collect potential waivers."""

from __future__ import annotations

from functools import partial

from discovery_orchestrator.graph.deps import ReviewDependencies
from discovery_orchestrator.graph.state import ReviewState
from discovery_orchestrator.review import rules


def run(state: ReviewState, *, deps: ReviewDependencies) -> ReviewState:
    deps.context.report(30, "Conducting privilege review")
    config = state["config"]
    verdicts = deps.classify_each(
        state["documents"],
        partial(deps.classifiers.privilege.classify, config=config),
        partial(rules.classify_privilege, config=config),
        stage="privilege",
    )
    privileged = [verdict for verdict in verdicts if verdict.verdict]
    return {
        "privileged": privileged,
        "non_privileged_ids": [verdict.document_id for verdict in verdicts if not verdict.verdict],
        # Waiver candidates stay in the privileged partition as well.
        "potential_waivers": [verdict for verdict in privileged if verdict.potential_waiver],
    }
