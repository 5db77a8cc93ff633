"""Settings for the offline cache layer."""

from __future__ import annotations

import json
from functools import lru_cache
from typing import Any, List, Optional

from pydantic import Field, PositiveInt, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_STATIC_ASSETS = ["./", "./index.html", "./style.css", "./app.js", "./manifest.json"]


class OfflineSettings(BaseSettings):
    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    origin_url: str = Field("http://localhost:8000/", alias="OFFLINE_ORIGIN_URL", description="Snapshot origin.")
    cache_name: str = Field("ai-news-v2", alias="OFFLINE_CACHE_NAME", description="Current cache version.")
    data_path: str = Field("/data/latest.json", alias="OFFLINE_DATA_PATH", description="Network-first endpoint.")
    static_assets: List[str] = Field(
        default_factory=lambda: list(DEFAULT_STATIC_ASSETS),
        alias="OFFLINE_STATIC_ASSETS",
        description="JSON array of shell assets cached on install.",
    )
    redis_url: Optional[str] = Field(None, alias="OFFLINE_REDIS_URL", description="Redis cache storage DSN.")
    fetch_timeout_seconds: PositiveInt = Field(10, alias="OFFLINE_FETCH_TIMEOUT_SECONDS", description="Network timeout.")

    @field_validator("static_assets", mode="before")
    @classmethod
    def _parse_assets(cls, value: Any) -> Any:
        if value in (None, ""):
            return list(DEFAULT_STATIC_ASSETS)
        if isinstance(value, str):
            try:
                return json.loads(value)
            except json.JSONDecodeError as exc:
                raise ValueError("OFFLINE_STATIC_ASSETS must be a JSON array.") from exc
        return value

    @field_validator("cache_name", "data_path")
    @classmethod
    def _non_blank(cls, v: str) -> str:
        s = v.strip()
        if not s:
            raise ValueError("must not be blank.")
        return s

    @field_validator("origin_url")
    @classmethod
    def _origin(cls, v: str) -> str:
        if "://" not in v:
            raise ValueError("OFFLINE_ORIGIN_URL must be an absolute URL.")
        return v if v.endswith("/") else v + "/"


@lru_cache()
def get_offline_settings() -> OfflineSettings:
    try:
        return OfflineSettings()
    except ValidationError as exc:
        raise RuntimeError(f"Offline settings validation failed: {exc}") from exc


def reset_offline_settings_cache() -> None:
    get_offline_settings.cache_clear()  # type: ignore[attr-defined]
