"""Deterministic keyword classifiers used when no model is available or it fails."""

from __future__ import annotations

import re

from discovery_orchestrator.review.schemas import (
    DiscoveryRequest,
    HotDocumentVerdict,
    PrivilegeVerdict,
    RequestMatch,
    ResponsivenessVerdict,
    ReviewConfig,
)
from discovery_orchestrator.storage.models import DocumentRecord

PRIVILEGE_KEYWORDS: tuple[str, ...] = (
    "attorney-client",
    "privileged",
    "confidential",
    "legal advice",
    "counsel",
    "attorney",
    "lawyer",
    "law firm",
    "legal opinion",
    "attorney work product",
    "prepared for litigation",
    "in anticipation of litigation",
    "legal strategy",
    "settlement discussions",
    "mediation",
)
ATTORNEY_INDICATORS: tuple[str, ...] = ("@lawfirm.com", "esq", "attorney", "counsel")
WORK_PRODUCT_INDICATORS: tuple[str, ...] = (
    "draft",
    "strategy",
    "litigation",
    "prepared for",
    "analysis",
)
WAIVER_INDICATORS: tuple[str, ...] = ("forwarded", "cc:", "third party", "external")

HOT_KEYWORDS: tuple[str, ...] = (
    "terminate",
    "fire",
    "lawsuit",
    "sue",
    "litigation",
    "breach",
    "violation",
    "illegal",
    "fraud",
    "cover up",
    "hide",
    "destroy",
    "delete",
    "smoking gun",
    "problem",
    "issue",
    "concern",
    "worried",
    "liability",
    "damages",
    "settlement",
    "deny",
    "refuse",
)
EMPLOYMENT_KEYWORDS: tuple[str, ...] = (
    "discriminat",
    "harass",
    "retaliat",
    "wrongful termination",
)
CONTRACT_KEYWORDS: tuple[str, ...] = (
    "breach",
    "default",
    "terminate contract",
    "force majeure",
)
IP_KEYWORDS: tuple[str, ...] = ("infring", "steal", "copy", "trade secret")

URGENCY_TERMS: tuple[str, ...] = ("urgent", "asap", "emergency")
DESTRUCTION_TERMS: tuple[str, ...] = ("delete", "remove", "destroy")

STOP_WORDS: frozenset[str] = frozenset(
    {"this", "that", "with", "from", "they", "have", "been"}
)

PRIVILEGE_THRESHOLD = 2
PRIVILEGE_SCORE_CEILING = 5
HOT_HIGH_THRESHOLD = 5
HOT_MEDIUM_THRESHOLD = 2
HOT_RISK_POINTS = 10

_NON_WORD = re.compile(r"[^\w\s]")


def privilege_keywords() -> list[str]:
    return list(PRIVILEGE_KEYWORDS)


def hot_keywords_for_matter(matter_name: str | None) -> list[str]:
    """Base risk vocabulary plus terms for the matter's practice area."""
    name = (matter_name or "").lower()
    keywords = list(HOT_KEYWORDS)
    if "employment" in name:
        keywords.extend(EMPLOYMENT_KEYWORDS)
    elif "contract" in name:
        keywords.extend(CONTRACT_KEYWORDS)
    elif "ip" in name or "patent" in name:
        keywords.extend(IP_KEYWORDS)
    return keywords


def extract_keywords(text: str) -> list[str]:
    """Tokens longer than three characters, stop words removed, first occurrence order."""
    words = _NON_WORD.sub(" ", text.lower()).split()
    seen: dict[str, None] = {}
    for word in words:
        if len(word) > 3 and word not in STOP_WORDS:
            seen.setdefault(word, None)
    return list(seen)


def classify_privilege(document: DocumentRecord, config: ReviewConfig) -> PrivilegeVerdict:
    text = document.extracted_text.lower()
    filename = document.filename.lower()
    keywords = config.privilege_keywords or list(PRIVILEGE_KEYWORDS)

    score = 0
    basis: list[str] = []
    for keyword in keywords:
        needle = keyword.lower()
        if needle in text or needle in filename:
            score += 1
            basis.append(keyword)

    has_attorney = any(
        indicator in text or indicator in filename for indicator in ATTORNEY_INDICATORS
    )
    has_work_product = any(indicator in text for indicator in WORK_PRODUCT_INDICATORS)

    privilege_type = "none"
    if has_attorney:
        score += 2
        privilege_type = "attorney-client"
        basis.append("attorney participant")
    if has_attorney and has_work_product:
        score += 1
        basis.append("work product")

    is_privileged = score >= PRIVILEGE_THRESHOLD
    if is_privileged and privilege_type == "none":
        privilege_type = "work-product" if has_work_product else "attorney-client"

    potential_waiver = any(indicator in text for indicator in WAIVER_INDICATORS)
    return PrivilegeVerdict(
        document_id=document.id,
        verdict=is_privileged,
        confidence=min(score / PRIVILEGE_SCORE_CEILING, 1.0) * 100,
        basis=basis,
        provenance="rule-based",
        privilege_type=privilege_type,
        potential_waiver=potential_waiver,
        waiver_risk="medium" if potential_waiver else "low",
        waiver_reason="Third party disclosure detected" if potential_waiver else None,
    )


def classify_responsiveness(
    document: DocumentRecord,
    config: ReviewConfig,
) -> ResponsivenessVerdict:
    text = document.extracted_text.lower()
    filename = document.filename.lower()

    relevance = 0
    matches: list[RequestMatch] = []
    key_terms: dict[str, None] = {}
    for index, request in enumerate(config.discovery_requests, start=1):
        matched = [
            keyword
            for keyword in extract_keywords(request.text)
            if keyword in text or keyword in filename
        ]
        if not matched:
            continue
        relevance += len(matched)
        for term in matched:
            key_terms.setdefault(term, None)
        matches.append(
            RequestMatch(
                request_id=request.id or str(index),
                request_text=request.text,
                match_score=len(matched),
                matched_terms=matched,
            )
        )

    total_keywords = sum(
        len(extract_keywords(request.text)) for request in config.discovery_requests
    )
    confidence = relevance / total_keywords * 100 if total_keywords else 0.0
    return ResponsivenessVerdict(
        document_id=document.id,
        verdict=relevance > 0,
        confidence=confidence,
        basis=[f"request {match.request_id}" for match in matches],
        provenance="rule-based",
        matched_requests=matches,
        key_terms=list(key_terms),
        relevance_score=relevance,
    )


def classify_hot_document(document: DocumentRecord, config: ReviewConfig) -> HotDocumentVerdict:
    text = document.extracted_text.lower()
    filename = document.filename.lower()
    keywords = config.hot_keywords or hot_keywords_for_matter(config.matter_name)

    score = 0
    flagged: dict[str, None] = {}
    factors: list[str] = []
    for keyword in keywords:
        pattern = re.compile(rf"\b{re.escape(keyword.lower())}\w*\b")
        found = pattern.findall(text) or pattern.findall(filename)
        if not found:
            continue
        score += len(found)
        for term in found:
            flagged.setdefault(term, None)
        factors.append(f'Contains "{keyword}" keyword')

    categories: list[str] = []
    if looks_like_email(text):
        if any(term in text for term in URGENCY_TERMS):
            score += 2
            factors.append("Urgent communication")
            categories.append("urgent communication")
        if any(term in text for term in DESTRUCTION_TERMS):
            score += 3
            factors.append("Document destruction reference")
            categories.append("destruction of evidence")

    if score >= HOT_HIGH_THRESHOLD:
        risk_level = "high"
    elif score >= HOT_MEDIUM_THRESHOLD:
        risk_level = "medium"
    else:
        risk_level = "low"

    return HotDocumentVerdict(
        document_id=document.id,
        verdict=score > 0,
        confidence=min(score / HOT_HIGH_THRESHOLD, 1.0) * 100,
        basis=factors,
        provenance="rule-based",
        risk_level=risk_level,
        risk_score=min(score * HOT_RISK_POINTS, 100),
        raw_score=score,
        risk_categories=categories,
        flagged_terms=list(flagged),
    )


def looks_like_email(text: str) -> bool:
    return "@" in text and "subject:" in text


def parse_discovery_requests(raw: object) -> list[DiscoveryRequest]:
    """Accept a list of plain strings or `{id, text}` mappings."""
    if raw is None:
        return []
    items = raw if isinstance(raw, list) else [raw]
    requests: list[DiscoveryRequest] = []
    for index, item in enumerate(items, start=1):
        if isinstance(item, DiscoveryRequest):
            requests.append(item)
        elif isinstance(item, dict):
            text = str(item.get("text") or item.get("request") or "").strip()
            if text:
                requests.append(DiscoveryRequest(id=str(item.get("id") or index), text=text))
        else:
            text = str(item).strip()
            if text:
                requests.append(DiscoveryRequest(id=str(index), text=text))
    return requests
