"""Settings for the summarization (OpenAI LLM) stage."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, PositiveFloat, PositiveInt, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SummarizerSettings(BaseSettings):
    """Environment-driven configuration for the summarizer."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    openai_api_key: str = Field(..., alias="OPENAI_API_KEY", description="OpenAI API key")
    summary_model: str = Field("gpt-4o-mini", alias="SUMMARY_MODEL", description="OpenAI model name")
    summary_max_tokens: PositiveInt = Field(512, alias="SUMMARY_MAX_TOKENS", description="Max completion tokens")
    summary_temperature: PositiveFloat = Field(0.2, alias="SUMMARY_TEMPERATURE", description="Sampling temperature")
    summary_request_timeout_seconds: PositiveInt = Field(
        30,
        alias="SUMMARY_REQUEST_TIMEOUT_SECONDS",
        description="HTTP request timeout in seconds",
    )

    @field_validator("openai_api_key")
    @classmethod
    def _non_empty_api_key(cls, v: str) -> str:
        s = v.strip()
        if not s:
            raise ValueError("OPENAI_API_KEY must not be blank.")
        return s


@lru_cache()
def get_summarizer_settings() -> SummarizerSettings:
    try:
        return SummarizerSettings()
    except ValidationError as exc:
        raise RuntimeError(f"Summarizer settings validation failed: {exc}") from exc


def reset_summarizer_settings_cache() -> None:
    get_summarizer_settings.cache_clear()  # type: ignore[attr-defined]
