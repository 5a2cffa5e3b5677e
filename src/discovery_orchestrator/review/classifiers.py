"""Document classifiers: model path when a gateway is configured, rule path otherwise."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from discovery_orchestrator.config.settings import Settings
from discovery_orchestrator.review import rules
from discovery_orchestrator.review.gateway import (
    ModelGateway,
    decode_hot_document_response,
    decode_privilege_response,
)
from discovery_orchestrator.review.llm import (
    HOT_DOCUMENT_SYSTEM_PROMPT,
    PRIVILEGE_SYSTEM_PROMPT,
    OpenAIChatModel,
    hot_document_prompt,
    privilege_prompt,
)
from discovery_orchestrator.review.schemas import (
    HotDocumentVerdict,
    PrivilegeVerdict,
    ResponsivenessVerdict,
    ReviewConfig,
)
from discovery_orchestrator.storage.models import DocumentRecord

logger = logging.getLogger(__name__)


class PrivilegeClassifier(Protocol):
    def classify(self, document: DocumentRecord, config: ReviewConfig) -> PrivilegeVerdict: ...


class ResponsivenessClassifier(Protocol):
    def classify(
        self, document: DocumentRecord, config: ReviewConfig
    ) -> ResponsivenessVerdict: ...


class HotDocumentClassifier(Protocol):
    def classify(self, document: DocumentRecord, config: ReviewConfig) -> HotDocumentVerdict: ...


class ModelPrivilegeClassifier:
    """Ask the model for a privilege verdict; any failure yields the rule verdict.

    The two paths never mix: the returned verdict is built entirely from the
    decoded model response or entirely from `rules.classify_privilege`.
    """

    def __init__(self, gateway: ModelGateway | None) -> None:
        self.gateway = gateway

    def classify(self, document: DocumentRecord, config: ReviewConfig) -> PrivilegeVerdict:
        if self.gateway is None:
            return rules.classify_privilege(document, config)

        result = self.gateway.complete(
            system=PRIVILEGE_SYSTEM_PROMPT,
            user=privilege_prompt(document, config),
        )
        decoded = decode_privilege_response(result.content) if result.ok else None
        if decoded is None or not decoded.ok:
            reason = result.error if decoded is None else decoded.error
            logger.warning(
                "classifier event=fallback classifier=privilege document_id=%s reason=%s",
                document.id,
                reason,
            )
            return rules.classify_privilege(document, config)

        response = decoded.value
        return PrivilegeVerdict(
            document_id=document.id,
            verdict=response.is_privileged,
            confidence=response.confidence,
            basis=response.privilege_basis,
            provenance="model",
            privilege_type=response.privilege_type,
            potential_waiver=response.potential_waiver,
            waiver_risk=response.waiver_risk,
            waiver_reason=response.waiver_reason,
            analysis=response.analysis,
            recommendations=response.recommendations,
        )


class KeywordResponsivenessClassifier:
    def classify(self, document: DocumentRecord, config: ReviewConfig) -> ResponsivenessVerdict:
        return rules.classify_responsiveness(document, config)


class ModelHotDocumentClassifier:
    """Ask the model for a litigation-risk rating; any failure yields the rule verdict."""

    def __init__(self, gateway: ModelGateway | None) -> None:
        self.gateway = gateway

    def classify(self, document: DocumentRecord, config: ReviewConfig) -> HotDocumentVerdict:
        if self.gateway is None:
            return rules.classify_hot_document(document, config)

        result = self.gateway.complete(
            system=HOT_DOCUMENT_SYSTEM_PROMPT,
            user=hot_document_prompt(document, config),
        )
        decoded = decode_hot_document_response(result.content) if result.ok else None
        if decoded is None or not decoded.ok:
            reason = result.error if decoded is None else decoded.error
            logger.warning(
                "classifier event=fallback classifier=hot_document document_id=%s reason=%s",
                document.id,
                reason,
            )
            return rules.classify_hot_document(document, config)

        response = decoded.value
        return HotDocumentVerdict(
            document_id=document.id,
            verdict=response.is_hot,
            confidence=response.risk_score,
            basis=response.key_findings,
            provenance="model",
            risk_level=response.risk_level,
            risk_score=response.risk_score,
            risk_categories=response.risk_categories,
            flagged_terms=[],
            damaging_content=response.damaging_content,
            recommended_actions=response.recommended_actions,
            legal_implications=response.legal_implications,
        )


@dataclass(frozen=True)
class ClassifierSet:
    privilege: PrivilegeClassifier
    responsiveness: ResponsivenessClassifier
    hot_document: HotDocumentClassifier


@dataclass(frozen=True)
class ClassifierResolution:
    classifiers: ClassifierSet
    requested_mode: str
    effective_mode: str
    fallback_reason: str | None = None


def build_classifiers(gateway: ModelGateway | None = None) -> ClassifierSet:
    return ClassifierSet(
        privilege=ModelPrivilegeClassifier(gateway),
        responsiveness=KeywordResponsivenessClassifier(),
        hot_document=ModelHotDocumentClassifier(gateway),
    )


def resolve_classifiers(settings: Settings) -> ClassifierResolution:
    normalized_mode = settings.classifier_mode.lower().strip()
    rule_based = build_classifiers()

    if normalized_mode != "model":
        return ClassifierResolution(
            classifiers=rule_based,
            requested_mode=normalized_mode,
            effective_mode="rule-based",
        )

    if settings.llm_provider.lower().strip() != "openai":
        return ClassifierResolution(
            classifiers=rule_based,
            requested_mode=normalized_mode,
            effective_mode="rule-based",
            fallback_reason=f"unsupported model provider: {settings.llm_provider}",
        )

    api_key = settings.resolved_openai_api_key()
    if not api_key:
        return ClassifierResolution(
            classifiers=rule_based,
            requested_mode=normalized_mode,
            effective_mode="rule-based",
            fallback_reason="OPENAI_API_KEY is missing for model classifier mode",
        )

    model = OpenAIChatModel(
        api_key=api_key,
        model=settings.llm_model,
        base_url=settings.llm_base_url,
        temperature=settings.llm_temperature,
    )
    gateway = ModelGateway(
        model,
        timeout_s=settings.llm_timeout_s,
        max_concurrency=settings.llm_max_concurrency,
    )
    return ClassifierResolution(
        classifiers=build_classifiers(gateway),
        requested_mode=normalized_mode,
        effective_mode="model",
    )
