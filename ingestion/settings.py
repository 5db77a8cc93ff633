"""Configuration models for the digest pipeline."""

from __future__ import annotations

from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import (
    Field,
    PositiveInt,
    SecretStr,
    ValidationError,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_NEWS_QUERY = '"Artificial Intelligence" OR "Machine Learning" OR "Generative AI"'


class Settings(BaseSettings):
    """Environment settings for fetching, filtering and persisting the digest."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    news_api_key: Optional[SecretStr] = Field(None, alias="NEWS_API_KEY", description="NewsAPI key.")
    news_api_endpoint: str = Field(
        "https://newsapi.org/v2/everything",
        alias="NEWS_API_ENDPOINT",
        description="NewsAPI search endpoint.",
    )
    news_api_query: str = Field(DEFAULT_NEWS_QUERY, alias="NEWS_API_QUERY", description="Boolean topical query.")
    news_api_lang: str = Field("en", alias="NEWS_API_LANG", description="Language filter.")
    news_api_sort_by: str = Field("publishedAt", alias="NEWS_API_SORT_BY", description="Upstream sort order.")
    news_api_page_size: PositiveInt = Field(50, alias="NEWS_API_PAGE_SIZE", description="Candidates per run (<=100).")
    news_api_timeout_seconds: PositiveInt = Field(10, alias="NEWS_API_TIMEOUT_SECONDS", description="HTTP timeout.")
    filter_rules_path: str = Field(
        "config/filter_rules.json",
        alias="FILTER_RULES_PATH",
        description="JSON document with allow/exclude keyword and domain lists.",
    )
    public_root: str = Field("./public", alias="PUBLIC_ROOT", description="Static shell served to clients.")
    digest_data_dir: str = Field("./public/data", alias="DIGEST_DATA_DIR", description="Directory of latest.json.")
    digest_archive_dir: str = Field(
        "./public/archives",
        alias="DIGEST_ARCHIVE_DIR",
        description="Directory of dated archive snapshots.",
    )
    digest_max_articles: PositiveInt = Field(20, alias="DIGEST_MAX_ARTICLES", description="Snapshot size cap.")
    digest_summary_delay_seconds: float = Field(
        1.0,
        ge=0.0,
        alias="DIGEST_SUMMARY_DELAY_SECONDS",
        description="Pause between consecutive summarizer calls.",
    )
    digest_timezone: str = Field("Asia/Tokyo", alias="DIGEST_TIMEZONE", description="Timezone of the archive date.")
    digest_interval_minutes: PositiveInt = Field(720, alias="DIGEST_INTERVAL_MINUTES", description="Beat interval.")
    digest_schedule_enabled: bool = Field(True, alias="DIGEST_SCHEDULE_ENABLED", description="Register beat entry.")
    redis_url: str = Field(
        "redis://localhost:6379/0",
        alias="INGESTION_REDIS_URL",
        description="Celery broker/backend Redis DSN.",
    )
    structlog_level: str = Field("INFO", alias="STRUCTLOG_LEVEL", description="Log level.")
    log_json: bool = Field(False, alias="LOG_JSON", description="Emit logs as JSON lines.")

    @field_validator("news_api_page_size")
    @classmethod
    def _validate_page_size(cls, v: int) -> int:
        if v > 100:
            raise ValueError("NEWS_API_PAGE_SIZE must be <= 100.")
        return v

    @field_validator("news_api_query")
    @classmethod
    def _validate_query(cls, v: str) -> str:
        query = v.strip()
        if not query:
            raise ValueError("NEWS_API_QUERY must not be blank.")
        return query

    @field_validator("digest_timezone")
    @classmethod
    def _validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown DIGEST_TIMEZONE: {v}") from exc
        return v

    @field_validator("digest_data_dir", "digest_archive_dir", "public_root")
    @classmethod
    def _validate_dirs(cls, v: str) -> str:
        root = v.strip()
        if not root:
            raise ValueError("directory settings must not be blank.")
        return root


@lru_cache()
def get_settings() -> Settings:
    """Return the Settings instance built from the environment."""
    try:
        return Settings()
    except ValidationError as exc:
        raise RuntimeError(f"Environment validation failed: {exc}") from exc


def reset_settings_cache() -> None:
    """Clear the Settings LRU cache (test helper)."""
    get_settings.cache_clear()  # type: ignore[attr-defined]
