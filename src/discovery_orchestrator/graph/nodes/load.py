"""Load node: fetch the document set and build the review configuration."""

from __future__ import annotations

import logging
from typing import Any

from discovery_orchestrator.graph.deps import ReviewDependencies
from discovery_orchestrator.graph.state import ReviewState
from discovery_orchestrator.review import rules
from discovery_orchestrator.review.schemas import ReviewConfig
from discovery_orchestrator.storage.models import GENERAL_MATTER, DocumentRecord

logger = logging.getLogger(__name__)


def run(state: ReviewState, *, deps: ReviewDependencies) -> ReviewState:
    deps.context.report(10, "Loading and analyzing documents")
    documents = _load_documents(state, deps)
    config = build_review_config(state, deps)
    logger.info(
        "review event=documents_loaded task_id=%s count=%d requests=%d",
        state.get("task_id"),
        len(documents),
        len(config.discovery_requests),
    )
    return {"documents": documents, "config": config}


def _load_documents(state: ReviewState, deps: ReviewDependencies) -> list[DocumentRecord]:
    document_ids = list(dict.fromkeys(state.get("document_ids") or []))
    if document_ids:
        found = {doc.id: doc for doc in deps.documents.get_documents(document_ids)}
        missing = [doc_id for doc_id in document_ids if doc_id not in found]
        if missing:
            logger.warning(
                "review event=documents_missing task_id=%s missing=%s",
                state.get("task_id"),
                ",".join(missing),
            )
        return [found[doc_id] for doc_id in document_ids if doc_id in found]

    matter_id = state.get("matter_id")
    if matter_id:
        return deps.documents.get_matter_documents(matter_id)
    return []


def build_review_config(state: ReviewState, deps: ReviewDependencies) -> ReviewConfig:
    parameters = state.get("parameters") or {}
    matter = _matter_info(state, deps)
    raw_requests = parameters.get("discovery_requests", parameters.get("discoveryRequests"))
    hot_keywords = rules.hot_keywords_for_matter(matter.get("name"))
    extra_hot = parameters.get("hot_keywords")
    if isinstance(extra_hot, list):
        hot_keywords.extend(str(item) for item in extra_hot if str(item).strip())

    return ReviewConfig(
        matter_id=state.get("matter_id"),
        matter_name=matter.get("name") or "Unknown Matter",
        client_name=matter.get("client_name"),
        review_type=str(
            parameters.get("review_type", parameters.get("reviewType", "comprehensive"))
        ),
        discovery_requests=rules.parse_discovery_requests(raw_requests),
        privilege_keywords=rules.privilege_keywords(),
        hot_keywords=hot_keywords,
        attorneys=[str(item) for item in parameters.get("attorneys", []) or []],
        document_char_budget=deps.document_char_budget,
    )


def _matter_info(state: ReviewState, deps: ReviewDependencies) -> dict[str, Any]:
    matter_info = state.get("matter_info") or {}
    if matter_info.get("name"):
        return matter_info
    matter_id = state.get("matter_id")
    matter = deps.documents.get_matter(matter_id) if matter_id else None
    return (matter or GENERAL_MATTER).model_dump()
