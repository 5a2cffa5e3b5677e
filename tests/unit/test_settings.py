from __future__ import annotations

import pytest

from discovery_orchestrator.config.settings import Settings


def test_settings_read_prefixed_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DISCOVERY_ORCHESTRATOR_CLASSIFIER_MODE", "model")
    monkeypatch.setenv("DISCOVERY_ORCHESTRATOR_REVIEW_MAX_WORKERS", "4")
    monkeypatch.setenv("DISCOVERY_ORCHESTRATOR_DOCUMENT_CHAR_BUDGET", "1200")

    settings = Settings()

    assert settings.classifier_mode == "model"
    assert settings.review_max_workers == 4
    assert settings.document_char_budget == 1200


def test_database_url_falls_back_to_unprefixed_variable(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("DISCOVERY_ORCHESTRATOR_DATABASE_URL", raising=False)
    monkeypatch.setenv("DATABASE_URL", "postgresql://localhost/fallback")

    assert Settings(database_url="").resolved_database_url() == "postgresql://localhost/fallback"
    assert (
        Settings(database_url="postgresql://localhost/primary").resolved_database_url()
        == "postgresql://localhost/primary"
    )


def test_openai_key_falls_back_to_standard_variable(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-standard")

    assert Settings(openai_api_key="").resolved_openai_api_key() == "sk-standard"
    assert Settings(openai_api_key="sk-own").resolved_openai_api_key() == "sk-own"


def test_worker_count_is_bounded() -> None:
    with pytest.raises(ValueError):
        Settings(review_max_workers=0)


def test_settings_expose_only_runtime_fields() -> None:
    assert "app_debug" not in Settings.model_fields
    assert {"classifier_mode", "review_max_workers", "heartbeat_stale_after_s"} <= set(
        Settings.model_fields
    )
