"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache) — single instance per process
    - Dedupe thresholds default to the values the merge engine was tuned with

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support (ADR: developer UX)
    - Defaults provided for all non-secret settings: works out-of-the-box locally
    - Matcher thresholds live here so they can be tuned without touching core/ call sites
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Anthropic
    anthropic_api_key: str = "sk-ant-placeholder"
    anthropic_max_retries: int = 3
    anthropic_timeout_seconds: int = 300
    anthropic_base_delay_ms: int = 1000
    anthropic_max_delay_ms: int = 60_000
    # ADR: some proxies buffer SSE; flip off to use the single-shot path
    anthropic_streaming: bool = True

    # Conversation
    conversation_model: str = "claude-sonnet-4-6"
    conversation_max_tokens: int = 1400

    # Merge engine
    dedupe_partial_overlap_ratio: float = Field(0.4, ge=0.0, le=1.0)
    dedupe_jaccard_threshold: float = Field(0.72, ge=0.0, le=1.0)
    extraction_failure_log_limit: int = Field(30, ge=1)
    usage_history_limit: int = Field(50, ge=1)

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
