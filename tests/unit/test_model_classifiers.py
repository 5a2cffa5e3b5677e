import json
import threading
import time

import pytest

from discovery_orchestrator.config.settings import Settings
from discovery_orchestrator.errors import ModelGatewayError
from discovery_orchestrator.review import rules
from discovery_orchestrator.review.classifiers import (
    ModelHotDocumentClassifier,
    ModelPrivilegeClassifier,
    resolve_classifiers,
)
from discovery_orchestrator.review.gateway import (
    ModelGateway,
    decode_hot_document_response,
    decode_privilege_response,
)
from discovery_orchestrator.review.schemas import ReviewConfig
from tests.factories import DESTRUCTION_EMAIL, PRIVILEGED_EMAIL, make_document

PRIVILEGE_RESPONSE = {
    "is_privileged": True,
    "privilege_type": "work-product",
    "confidence": 88,
    "privilege_basis": ["prepared by outside counsel"],
    "potential_waiver": False,
    "waiver_risk": "low",
    "waiver_reason": None,
    "analysis": "Draft strategy memo prepared for litigation.",
    "recommendations": ["Log as work product"],
}

HOT_RESPONSE = {
    "is_hot": True,
    "risk_level": "critical",
    "risk_score": 92,
    "risk_categories": ["spoliation"],
    "key_findings": ["Instruction to destroy binders"],
    "damaging_content": ["Please destroy the old binders"],
    "legal_implications": "Possible spoliation sanctions.",
    "recommended_actions": ["Issue litigation hold"],
}


class ScriptedChatModel:
    def __init__(self, reply=None, *, error: Exception | None = None, delay_s: float = 0.0):
        self.reply = reply
        self.error = error
        self.delay_s = delay_s
        self.calls: list[dict[str, str]] = []

    def complete(self, *, system: str, user: str, timeout_s: float) -> str:
        self.calls.append({"system": system, "user": user})
        if self.delay_s:
            time.sleep(self.delay_s)
        if self.error is not None:
            raise self.error
        return self.reply


def _gateway(model: ScriptedChatModel, *, timeout_s: float = 2.0) -> ModelGateway:
    return ModelGateway(model, timeout_s=timeout_s, max_concurrency=1)


def test_privilege_model_path_tags_model_provenance() -> None:
    model = ScriptedChatModel(json.dumps(PRIVILEGE_RESPONSE))
    classifier = ModelPrivilegeClassifier(_gateway(model))

    verdict = classifier.classify(make_document("d1", PRIVILEGED_EMAIL), ReviewConfig())

    assert verdict.provenance == "model"
    assert verdict.verdict is True
    assert verdict.privilege_type == "work-product"
    assert verdict.confidence == 88
    assert verdict.basis == ["prepared by outside counsel"]
    assert len(model.calls) == 1


def test_privilege_prompt_truncates_document_text() -> None:
    model = ScriptedChatModel(json.dumps(PRIVILEGE_RESPONSE))
    classifier = ModelPrivilegeClassifier(_gateway(model))
    document = make_document("d1", "A" * 500 + "TAIL-MARKER")

    classifier.classify(document, ReviewConfig(document_char_budget=200, matter_name="Acme"))

    prompt = model.calls[0]["user"]
    assert "A" * 200 in prompt
    assert "A" * 201 not in prompt
    assert "TAIL-MARKER" not in prompt
    assert "Matter: Acme" in prompt


@pytest.mark.parametrize(
    "model",
    [
        ScriptedChatModel(error=ModelGatewayError("connection refused")),
        ScriptedChatModel("this is not json"),
        ScriptedChatModel(json.dumps(["not", "an", "object"])),
        ScriptedChatModel(json.dumps({**PRIVILEGE_RESPONSE, "confidence": 140})),
        ScriptedChatModel(json.dumps({**PRIVILEGE_RESPONSE, "privilege_type": "maybe"})),
        ScriptedChatModel(json.dumps({"is_privileged": True})),
    ],
    ids=["raises", "not-json", "not-object", "out-of-range", "bad-enum", "missing-fields"],
)
def test_privilege_failures_fall_back_to_rules_entirely(model: ScriptedChatModel) -> None:
    document = make_document("d1", PRIVILEGED_EMAIL)
    config = ReviewConfig()

    verdict = ModelPrivilegeClassifier(_gateway(model)).classify(document, config)

    assert verdict.provenance == "rule-based"
    assert verdict == rules.classify_privilege(document, config)
    assert len(model.calls) == 1


def test_hot_document_model_path_uses_model_fields_only() -> None:
    model = ScriptedChatModel(json.dumps(HOT_RESPONSE))
    classifier = ModelHotDocumentClassifier(_gateway(model))

    verdict = classifier.classify(make_document("d1", DESTRUCTION_EMAIL), ReviewConfig())

    assert verdict.provenance == "model"
    assert verdict.risk_level == "critical"
    assert verdict.risk_score == 92
    assert verdict.raw_score == 0
    assert verdict.flagged_terms == []
    assert verdict.recommended_actions == ["Issue litigation hold"]


def test_hot_document_invalid_response_falls_back_to_rules() -> None:
    document = make_document("d1", DESTRUCTION_EMAIL)
    model = ScriptedChatModel(json.dumps({**HOT_RESPONSE, "risk_score": -5}))

    verdict = ModelHotDocumentClassifier(_gateway(model)).classify(document, ReviewConfig())

    assert verdict.provenance == "rule-based"
    assert verdict.risk_level == "high"
    assert verdict.raw_score == 5


def test_classifier_without_gateway_never_calls_model() -> None:
    document = make_document("d1", PRIVILEGED_EMAIL)

    verdict = ModelPrivilegeClassifier(None).classify(document, ReviewConfig())

    assert verdict.provenance == "rule-based"


def test_gateway_timeout_is_reported_as_failure() -> None:
    model = ScriptedChatModel(json.dumps(PRIVILEGE_RESPONSE), delay_s=0.3)
    gateway = _gateway(model, timeout_s=0.05)

    result = gateway.complete(system="s", user="u")

    assert result.ok is False
    assert "timed out" in result.error
    assert result.duration_ms >= 0


def test_gateway_timeout_degrades_classifier_to_rules() -> None:
    model = ScriptedChatModel(json.dumps(PRIVILEGE_RESPONSE), delay_s=0.3)
    classifier = ModelPrivilegeClassifier(_gateway(model, timeout_s=0.05))

    verdict = classifier.classify(make_document("d1", PRIVILEGED_EMAIL), ReviewConfig())

    assert verdict.provenance == "rule-based"


def test_decode_results_carry_errors_instead_of_raising() -> None:
    assert decode_privilege_response(None).ok is False
    assert "valid JSON" in decode_privilege_response("{").error
    assert decode_hot_document_response(json.dumps(HOT_RESPONSE)).ok is True

    extra = decode_hot_document_response(json.dumps({**HOT_RESPONSE, "urgency": "high"}))
    assert extra.ok is False
    assert "validation" in extra.error


def test_resolve_classifiers_defaults_to_rules() -> None:
    resolution = resolve_classifiers(Settings(classifier_mode="rule-based"))

    assert resolution.effective_mode == "rule-based"
    assert resolution.fallback_reason is None


def test_resolve_classifiers_falls_back_without_api_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    resolution = resolve_classifiers(Settings(classifier_mode="model", openai_api_key=""))

    assert resolution.requested_mode == "model"
    assert resolution.effective_mode == "rule-based"
    assert "OPENAI_API_KEY" in resolution.fallback_reason


def test_resolve_classifiers_rejects_unknown_provider() -> None:
    resolution = resolve_classifiers(
        Settings(classifier_mode="model", llm_provider="acme", openai_api_key="sk-test")
    )

    assert resolution.effective_mode == "rule-based"
    assert resolution.fallback_reason == "unsupported model provider: acme"


def test_resolve_classifiers_builds_model_gateway() -> None:
    resolution = resolve_classifiers(
        Settings(classifier_mode="model", openai_api_key="sk-test", llm_max_concurrency=3)
    )

    assert resolution.effective_mode == "model"
    gateway = resolution.classifiers.privilege.gateway
    assert gateway is not None
    assert gateway.max_concurrency == 3


def test_timed_out_call_keeps_its_slot_until_the_model_returns() -> None:
    release = threading.Event()

    class BlockingChatModel:
        def __init__(self) -> None:
            self.calls = 0

        def complete(self, *, system: str, user: str, timeout_s: float) -> str:
            self.calls += 1
            if self.calls == 1:
                release.wait(timeout=5)
            return json.dumps(PRIVILEGE_RESPONSE)

    model = BlockingChatModel()
    gateway = ModelGateway(model, timeout_s=0.3, max_concurrency=1)

    first = gateway.complete(system="s", user="u")
    assert "timed out" in first.error

    busy = gateway.complete(system="s", user="u")
    assert busy.ok is False
    assert "busy" in busy.error
    assert model.calls == 1

    release.set()
    recovered = gateway.complete(system="s", user="u")
    assert recovered.ok is True
