"""
CATTO Configuration

Centralized configuration using Pydantic Settings.
All configuration is loaded from environment variables with sensible defaults.
"""

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from catto.core.enums import BroadQueryPolicy, UILanguage


class LLMSettings(BaseSettings):
    """LLM provider configuration."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="", extra="ignore"
    )

    # Gemini (Google AI Studio, OpenAI-compatible endpoint)
    gemini_api_key: str | None = Field(default=None, alias="GEMINI_API_KEY")
    google_api_key: str | None = Field(default=None, alias="GOOGLE_API_KEY")
    gemini_model: str = Field(default="gemini-2.5-flash", alias="GEMINI_MODEL")

    # OpenAI
    openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o", alias="OPENAI_MODEL")

    default_provider: Literal["gemini", "openai"] = Field(
        default="gemini", alias="LLM_DEFAULT_PROVIDER"
    )
    timeout: float = Field(default=120.0, gt=0.0, alias="LLM_TIMEOUT")
    # Retries are user-initiated resubmissions, so the SDK does not retry by default
    max_retries: int = Field(default=0, ge=0, le=10, alias="LLM_MAX_RETRIES")

    reconstruction_temperature: float = Field(default=0.2, ge=0.0, le=2.0)
    evaluation_temperature: float = Field(default=0.0, ge=0.0, le=2.0)
    narrative_temperature: float = Field(default=0.4, ge=0.0, le=2.0)
    max_tokens: int = Field(default=8192, ge=1, alias="LLM_MAX_TOKENS")


class RetrievalSettings(BaseSettings):
    """PubMed and MeSH retrieval configuration."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="", extra="ignore"
    )

    # NCBI/PubMed
    ncbi_api_key: str | None = Field(default=None, alias="NCBI_API_KEY")
    ncbi_email: str = Field(default="catto@example.com", alias="NCBI_EMAIL")
    ncbi_tool: str = Field(default="CaseReport-CATTO", alias="NCBI_TOOL")
    eutils_base_url: str = Field(
        default="https://eutils.ncbi.nlm.nih.gov/entrez/eutils", alias="NCBI_EUTILS_URL"
    )
    http_timeout: float = Field(default=30.0, gt=0.0, alias="CATTO_HTTP_TIMEOUT")

    # MeSH exact-match lookup
    mesh_lookup_url: str = Field(
        default="https://id.nlm.nih.gov/mesh/lookup/descriptor", alias="MESH_LOOKUP_URL"
    )

    # Escalation thresholds
    search_limit: int = Field(default=100, ge=1, le=1000)
    candidate_cap: int = Field(default=80, ge=1, le=500, alias="CATTO_CANDIDATE_CAP")
    expansion_seed_limit: int = Field(default=5, ge=0, le=5)
    neighbors_per_seed: int = Field(default=10, ge=0, le=100)
    min_narrow_count: int = Field(default=5, ge=0)
    max_narrow_count: int = Field(default=300, ge=0)
    large_result_threshold: int = Field(default=500, ge=0)


class VerificationSettings(BaseSettings):
    """Evidence verification and reporting policy."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="", extra="ignore"
    )

    min_quote_length: int = Field(default=5, ge=0, alias="CATTO_MIN_QUOTE_LENGTH")
    retain_closest_matches: bool = Field(default=False, alias="CATTO_RETAIN_CLOSEST_MATCHES")
    broad_query_policy: BroadQueryPolicy = Field(
        default=BroadQueryPolicy.DROP_LAST, alias="CATTO_BROAD_QUERY_POLICY"
    )
    enable_narrative: bool = Field(default=True, alias="CATTO_ENABLE_NARRATIVE")

    @field_validator("broad_query_policy", mode="before")
    @classmethod
    def normalize_policy(cls, v: str | BroadQueryPolicy) -> str | BroadQueryPolicy:
        """Accept policy names regardless of case or dashes."""
        if isinstance(v, str):
            return v.strip().lower().replace("-", "_")
        return v


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="", extra="ignore"
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", alias="LOG_LEVEL"
    )
    log_format: Literal["json", "text"] = Field(default="json", alias="LOG_FORMAT")


class FeatureFlags(BaseSettings):
    """Feature flags for optional functionality."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="", extra="ignore"
    )

    debug: bool = Field(default=False, alias="CATTO_DEBUG")
    ui_language: UILanguage = Field(default=UILanguage.EN, alias="CATTO_UI_LANGUAGE")
    trace_dir: str = Field(default=".catto/traces", alias="CATTO_TRACE_DIR")


class Settings(BaseSettings):
    """
    Main CATTO settings aggregator.

    Usage:
        from catto.config import get_settings
        settings = get_settings()
        print(settings.retrieval.candidate_cap)
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    llm: LLMSettings = Field(default_factory=LLMSettings)
    retrieval: RetrievalSettings = Field(default_factory=RetrievalSettings)
    verification: VerificationSettings = Field(default_factory=VerificationSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    features: FeatureFlags = Field(default_factory=FeatureFlags)


# Singleton pattern for settings
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance (singleton)."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings (useful for testing)."""
    global _settings
    _settings = None
