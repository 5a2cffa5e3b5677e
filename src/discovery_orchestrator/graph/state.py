"""Typed state contract for the document review workflow."""

from typing import Any, TypedDict

from discovery_orchestrator.review.schemas import (
    HotDocumentVerdict,
    PrivilegeVerdict,
    ResponsivenessVerdict,
    ReviewConfig,
)
from discovery_orchestrator.storage.models import DocumentRecord


class ReviewState(TypedDict, total=False):
    task_id: str
    matter_id: str | None
    document_ids: list[str]
    parameters: dict[str, Any]
    matter_info: dict[str, Any]
    config: ReviewConfig
    documents: list[DocumentRecord]
    privileged: list[PrivilegeVerdict]
    non_privileged_ids: list[str]
    potential_waivers: list[PrivilegeVerdict]
    responsive: list[ResponsivenessVerdict]
    non_responsive_ids: list[str]
    hot_documents: list[HotDocumentVerdict]
    privilege_log: list[dict[str, Any]]
    production_set: dict[str, Any]
    statistics: dict[str, Any]
    report: str


def initial_state(
    task_id: str,
    *,
    matter_id: str | None = None,
    document_ids: list[str] | None = None,
    parameters: dict[str, Any] | None = None,
    matter_info: dict[str, Any] | None = None,
) -> ReviewState:
    return {
        "task_id": task_id,
        "matter_id": matter_id,
        "document_ids": list(document_ids or []),
        "parameters": dict(parameters or {}),
        "matter_info": dict(matter_info or {}),
        "documents": [],
        "privileged": [],
        "non_privileged_ids": [],
        "potential_waivers": [],
        "responsive": [],
        "non_responsive_ids": [],
        "hot_documents": [],
        "privilege_log": [],
        "production_set": {},
        "statistics": {},
        "report": "",
    }
