"""Chat model client and prompt builders for model-backed document classification."""

from __future__ import annotations

import json
from typing import Any, Protocol
from urllib import error, request

from discovery_orchestrator.errors import ModelGatewayError
from discovery_orchestrator.review.schemas import ReviewConfig
from discovery_orchestrator.storage.models import DocumentRecord


class ChatModel(Protocol):
    def complete(self, *, system: str, user: str, timeout_s: float) -> str: ...


class OpenAIChatModel:
    """OpenAI-compatible chat completions client returning the raw JSON content string."""

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        base_url: str,
        temperature: float = 0.1,
    ) -> None:
        if not api_key:
            raise ModelGatewayError("OPENAI_API_KEY is missing")
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.temperature = temperature

    def complete(self, *, system: str, user: str, timeout_s: float) -> str:
        request_body = {
            "model": self.model,
            "temperature": self.temperature,
            "response_format": {"type": "json_object"},
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
        }
        response_json = _request_once(
            api_key=self.api_key,
            base_url=self.base_url,
            timeout_s=timeout_s,
            request_body=request_body,
        )
        return _extract_content(response_json)


def _request_once(
    *,
    api_key: str,
    base_url: str,
    timeout_s: float,
    request_body: dict[str, Any],
) -> dict[str, Any]:
    url = f"{base_url.rstrip('/')}/chat/completions"

    req = request.Request(
        url=url,
        data=json.dumps(request_body).encode("utf-8"),
        method="POST",
        headers={
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        },
    )
    try:
        with request.urlopen(req, timeout=timeout_s) as response:
            raw = response.read().decode("utf-8")
    except error.HTTPError as exc:
        message = exc.read().decode("utf-8", errors="replace")
        raise ModelGatewayError(
            f"Model request failed with status {exc.code}: {message[:400]}"
        ) from exc
    except error.URLError as exc:
        raise ModelGatewayError(f"Model request failed: {exc.reason}") from exc

    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ModelGatewayError("Model returned non-JSON response") from exc


def _extract_content(response_json: dict[str, Any]) -> str:
    choices = response_json.get("choices", [])
    if not choices:
        raise ModelGatewayError("Model response missing choices")

    message = choices[0].get("message", {})
    content = message.get("content")

    if isinstance(content, str):
        text = content.strip()
    elif isinstance(content, list):
        parts: list[str] = []
        for item in content:
            if isinstance(item, dict) and isinstance(item.get("text"), str):
                parts.append(item["text"])
        text = "".join(parts).strip()
    else:
        text = ""

    if not text:
        raise ModelGatewayError("Model response content is empty")
    return text


def document_excerpt(document: DocumentRecord, *, max_chars: int) -> str:
    return document.extracted_text[:max_chars]


PRIVILEGE_SYSTEM_PROMPT = (
    "You review litigation documents for attorney-client privilege and work product "
    "protection. Return JSON only with keys exactly: is_privileged, privilege_type, "
    "confidence, privilege_basis, potential_waiver, waiver_risk, waiver_reason, "
    "analysis, recommendations. privilege_type must be one of attorney-client, "
    "work-product, none. confidence must be a number between 0 and 100. "
    "waiver_risk must be one of low, medium, high."
)

HOT_DOCUMENT_SYSTEM_PROMPT = (
    "You review litigation documents for content that could damage the client's case. "
    "Return JSON only with keys exactly: is_hot, risk_level, risk_score, "
    "risk_categories, key_findings, damaging_content, legal_implications, "
    "recommended_actions. risk_level must be one of low, medium, high, critical. "
    "risk_score must be a number between 0 and 100."
)


def privilege_prompt(document: DocumentRecord, config: ReviewConfig) -> str:
    return (
        f"Filename: {document.filename or 'Unknown'}\n"
        f"Matter: {config.matter_name or 'Unknown Matter'}\n"
        f"Client: {config.client_name or 'Unknown Client'}\n\n"
        f"Document text:\n"
        f"{document_excerpt(document, max_chars=config.document_char_budget)}\n\n"
        "Consider communications between attorney and client, legal advice sought or "
        "provided, documents prepared in anticipation of litigation, and third parties "
        "whose presence might waive privilege."
    )


def hot_document_prompt(document: DocumentRecord, config: ReviewConfig) -> str:
    date_context = document.created_at.isoformat() if document.created_at else "Unknown date"
    return (
        f"Filename: {document.filename or 'Unknown'}\n"
        f"Matter: {config.matter_name or 'Unknown Matter'}\n"
        f"Date: {date_context}\n\n"
        f"Document text:\n"
        f"{document_excerpt(document, max_chars=config.document_char_budget)}\n\n"
        "Flag damaging admissions, evidence of wrongdoing or liability, contradictory "
        "statements, references to destroying evidence, knowledge of problems, "
        "inflammatory language, financial irregularities and regulatory violations."
    )
