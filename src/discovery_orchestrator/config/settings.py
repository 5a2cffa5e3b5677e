"""Application settings."""

from functools import lru_cache
import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parents[3]


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    app_name: str = "discovery-orchestrator"
    app_env: str = "dev"
    database_url: str = ""
    classifier_mode: str = "rule-based"
    document_char_budget: int = Field(default=4000, ge=200)
    review_max_workers: int = Field(default=1, ge=1, le=16)
    heartbeat_stale_after_s: float = Field(default=900.0, gt=0.0)
    worker_poll_interval_s: float = Field(default=5.0, ge=0.1)
    worker_batch_size: int = Field(default=5, ge=1)
    llm_provider: str = "openai"
    llm_model: str = "gpt-4o-mini"
    llm_base_url: str = "https://api.openai.com/v1"
    llm_timeout_s: float = Field(default=30.0, ge=0.5)
    llm_max_concurrency: int = Field(default=2, ge=1)
    llm_temperature: float = Field(default=0.1, ge=0.0, le=2.0)
    openai_api_key: str = ""

    model_config = SettingsConfigDict(
        env_prefix="DISCOVERY_ORCHESTRATOR_",
        extra="ignore",
        env_file=(PROJECT_ROOT / ".env", PROJECT_ROOT / ".env.local"),
        env_file_encoding="utf-8",
    )

    def resolved_database_url(self) -> str:
        return self.database_url or os.getenv("DATABASE_URL", "")

    def resolved_openai_api_key(self) -> str:
        return self.openai_api_key or os.getenv("OPENAI_API_KEY", "")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
