"""Schemas for classifier verdicts, review configuration and model responses."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Provenance = Literal["model", "rule-based"]
PrivilegeType = Literal["attorney-client", "work-product", "none"]
RiskTier = Literal["low", "medium", "high"]
RiskLevel = Literal["low", "medium", "high", "critical"]


def clamp_score(value: float) -> float:
    return max(0.0, min(float(value), 100.0))


class StrictModel(BaseModel):
    """Base model for strict schema validation."""

    model_config = ConfigDict(extra="forbid")


class DiscoveryRequest(BaseModel):
    id: str
    text: str


class ReviewConfig(BaseModel):
    """Per-run configuration handed to every classifier."""

    matter_id: str | None = None
    matter_name: str = "Unknown Matter"
    client_name: str | None = None
    review_type: str = "comprehensive"
    discovery_requests: list[DiscoveryRequest] = Field(default_factory=list)
    privilege_keywords: list[str] = Field(default_factory=list)
    hot_keywords: list[str] = Field(default_factory=list)
    attorneys: list[str] = Field(default_factory=list)
    document_char_budget: int = 4000


class DocumentVerdict(BaseModel):
    """One classifier's judgment about one document."""

    document_id: str
    verdict: bool
    confidence: float = Field(ge=0.0, le=100.0)
    basis: list[str] = Field(default_factory=list)
    provenance: Provenance

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: Any) -> float:
        return clamp_score(value)


class PrivilegeVerdict(DocumentVerdict):
    privilege_type: PrivilegeType = "none"
    potential_waiver: bool = False
    waiver_risk: RiskTier = "low"
    waiver_reason: str | None = None
    analysis: str | None = None
    recommendations: list[str] = Field(default_factory=list)

    @property
    def is_privileged(self) -> bool:
        return self.verdict


class RequestMatch(BaseModel):
    request_id: str
    request_text: str
    match_score: int = Field(ge=0)
    matched_terms: list[str] = Field(default_factory=list)


class ResponsivenessVerdict(DocumentVerdict):
    matched_requests: list[RequestMatch] = Field(default_factory=list)
    key_terms: list[str] = Field(default_factory=list)
    relevance_score: int = Field(default=0, ge=0)

    @property
    def is_responsive(self) -> bool:
        return self.verdict


class HotDocumentVerdict(DocumentVerdict):
    risk_level: RiskLevel = "low"
    risk_score: float = Field(default=0.0, ge=0.0, le=100.0)
    raw_score: int = Field(default=0, ge=0)
    risk_categories: list[str] = Field(default_factory=list)
    flagged_terms: list[str] = Field(default_factory=list)
    damaging_content: list[str] = Field(default_factory=list)
    recommended_actions: list[str] = Field(default_factory=list)
    legal_implications: str | None = None

    @field_validator("risk_score", mode="before")
    @classmethod
    def _clamp_risk_score(cls, value: Any) -> float:
        return clamp_score(value)

    @property
    def is_hot(self) -> bool:
        return self.verdict


class PrivilegeModelResponse(StrictModel):
    """Structured verdict the model must return for privilege analysis."""

    is_privileged: bool
    privilege_type: PrivilegeType
    confidence: float = Field(ge=0.0, le=100.0)
    privilege_basis: list[str] = Field(default_factory=list)
    potential_waiver: bool = False
    waiver_risk: RiskTier = "low"
    waiver_reason: str | None = None
    analysis: str | None = None
    recommendations: list[str] = Field(default_factory=list)


class HotDocumentModelResponse(StrictModel):
    """Structured verdict the model must return for litigation-risk analysis."""

    is_hot: bool
    risk_level: RiskLevel
    risk_score: float = Field(ge=0.0, le=100.0)
    risk_categories: list[str] = Field(default_factory=list)
    key_findings: list[str] = Field(default_factory=list)
    damaging_content: list[str] = Field(default_factory=list)
    legal_implications: str | None = None
    recommended_actions: list[str] = Field(default_factory=list)
