"""Privilege log, production set, statistics and report built from classifier verdicts."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from discovery_orchestrator.review.schemas import (
    HotDocumentVerdict,
    PrivilegeVerdict,
    ResponsivenessVerdict,
)
from discovery_orchestrator.storage.models import DocumentRecord


def build_privilege_log(
    documents: dict[str, DocumentRecord],
    privileged: list[PrivilegeVerdict],
) -> list[dict[str, Any]]:
    rows: list[dict[str, Any]] = []
    for number, verdict in enumerate(privileged, start=1):
        document = documents[verdict.document_id]
        rows.append(
            {
                "log_number": number,
                "document_id": document.id,
                "filename": document.filename,
                "date": document.created_at.isoformat() if document.created_at else None,
                "author": "TBD",
                "recipient": "TBD",
                "privilege_type": verdict.privilege_type,
                "privilege_basis": ", ".join(verdict.basis),
                "description": (
                    f"{document.file_type} document containing "
                    f"{verdict.privilege_type} communications"
                ),
                "confidence": verdict.confidence,
                "provenance": verdict.provenance,
            }
        )
    return rows


def build_production_set(
    documents: dict[str, DocumentRecord],
    responsive: list[ResponsivenessVerdict],
    privileged: list[PrivilegeVerdict],
    non_responsive_count: int,
) -> dict[str, Any]:
    """Responsive documents minus privileged documents, compared by document id."""
    privileged_ids = {verdict.document_id for verdict in privileged}
    produced = [verdict for verdict in responsive if verdict.document_id not in privileged_ids]
    return {
        "documents": [
            {
                "document_id": verdict.document_id,
                "filename": documents[verdict.document_id].filename,
                "responsive_to_requests": [
                    match.request_id for match in verdict.matched_requests
                ],
                "relevance_score": verdict.relevance_score,
                "recommended_for_production": True,
            }
            for verdict in produced
        ],
        "total_count": len(produced),
        "privileged_withheld": len(privileged),
        "non_responsive_excluded": non_responsive_count,
    }


def compute_statistics(
    *,
    total: int,
    privileged: list[PrivilegeVerdict],
    responsive: list[ResponsivenessVerdict],
    hot: list[HotDocumentVerdict],
    potential_waivers: list[PrivilegeVerdict],
    production_count: int,
) -> dict[str, Any]:
    return {
        "total_documents": total,
        "privileged_documents": len(privileged),
        "privilege_rate": _rate(len(privileged), total),
        "responsive_documents": len(responsive),
        "responsiveness_rate": _rate(len(responsive), total),
        "production_documents": production_count,
        "potential_waivers": len(potential_waivers),
        "hot_documents": len(hot),
        "critical_risk_documents": _count_level(hot, "critical"),
        "high_risk_documents": _count_level(hot, "high"),
        "medium_risk_documents": _count_level(hot, "medium"),
        "model_verdicts": sum(
            1 for verdict in [*privileged, *hot] if verdict.provenance == "model"
        ),
    }


def render_report(
    *,
    matter_name: str,
    statistics: dict[str, Any],
    privileged: list[PrivilegeVerdict],
    potential_waivers: list[PrivilegeVerdict],
    hot: list[HotDocumentVerdict],
    generated_at: datetime | None = None,
) -> str:
    timestamp = generated_at or datetime.now(UTC)
    total = statistics["total_documents"]
    high_risk = statistics["high_risk_documents"] + statistics["critical_risk_documents"]
    attorney_client = sum(1 for item in privileged if item.privilege_type == "attorney-client")
    work_product = sum(1 for item in privileged if item.privilege_type == "work-product")

    lines = [
        "# Discovery Review Report",
        "",
        f"## Matter: {matter_name}",
        f"**Date:** {timestamp.date().isoformat()}",
        f"**Review Scope:** {total} documents",
        "",
        "## Executive Summary",
        f"This report summarizes the automated discovery review conducted for {matter_name}.",
        f"A total of {total} documents were analyzed for privilege, responsiveness, "
        "and potential risks.",
        "",
        "## Review Statistics",
        f"- **Total Documents Reviewed:** {total}",
        f"- **Privileged Documents:** {statistics['privileged_documents']} "
        f"({statistics['privilege_rate']}%)",
        f"- **Responsive Documents:** {statistics['responsive_documents']} "
        f"({statistics['responsiveness_rate']}%)",
        f"- **Hot Documents Identified:** {statistics['hot_documents']}",
        f"- **Documents for Production:** {statistics['production_documents']}",
        "",
        "## Privilege Review Results",
        f"{statistics['privileged_documents']} documents identified as privileged:",
        f"- Attorney-Client Privilege: {attorney_client}",
        f"- Work Product: {work_product}",
        f"- Potential Privilege Waivers: {len(potential_waivers)}",
        "",
        "## Responsiveness Analysis",
        f"{statistics['responsive_documents']} documents identified as responsive to "
        "discovery requests.",
        "",
        "## Hot Document Summary",
        f"{len(hot)} hot documents identified requiring priority review:",
        f"- High Risk: {high_risk}",
        f"- Medium Risk: {statistics['medium_risk_documents']}",
        "",
        "## Recommendations",
        f"1. **Priority Review:** Focus on {high_risk} high-risk documents immediately",
        "2. **Privilege Verification:** Manual review recommended for "
        f"{len(potential_waivers)} documents with potential waiver issues",
        f"3. **Production Preparation:** {statistics['production_documents']} documents "
        "ready for production after final review",
        "4. **Additional Review:** Consider expanded keyword searches based on hot "
        "document findings",
        "",
        "## Next Steps",
        "1. Manual review of flagged high-risk documents",
        "2. Privilege log finalization",
        "3. Production set preparation",
        "4. Quality control sampling",
        "",
        "---",
        f"*Generated {timestamp.isoformat()}*",
    ]
    return "\n".join(lines) + "\n"


def _rate(count: int, total: int) -> int:
    return round(count / total * 100) if total > 0 else 0


def _count_level(hot: list[HotDocumentVerdict], level: str) -> int:
    return sum(1 for verdict in hot if verdict.risk_level == level)
