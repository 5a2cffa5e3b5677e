"""Hot-document node: collect documents with litigation risk, highest risk first."""

from __future__ import annotations

from functools import partial

from discovery_orchestrator.graph.deps import ReviewDependencies
from discovery_orchestrator.graph.state import ReviewState
from discovery_orchestrator.review import rules


def run(state: ReviewState, *, deps: ReviewDependencies) -> ReviewState:
    deps.context.report(70, "Identifying hot documents and key evidence")
    config = state["config"]
    verdicts = deps.classify_each(
        state["documents"],
        partial(deps.classifiers.hot_document.classify, config=config),
        partial(rules.classify_hot_document, config=config),
        stage="hot_documents",
    )
    hot = [verdict for verdict in verdicts if verdict.verdict]
    hot.sort(key=lambda verdict: (verdict.risk_score, verdict.raw_score), reverse=True)
    return {"hot_documents": hot}
