"""Domain DTOs for the digest pipeline."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_DATETIME = TypeAdapter(datetime)


class ArticleSource(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: Optional[str] = None
    name: Optional[str] = None

    @field_validator("id", "name", mode="before")
    @classmethod
    def _non_string_to_none(cls, v: Any) -> Any:
        return v if isinstance(v, str) else None


class RawArticle(BaseModel):
    """Article record as returned by the news search API."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    title: str = ""
    description: Optional[str] = None
    content: Optional[str] = None
    # Plain string: malformed URLs must reach the classifier intact.
    url: str = ""
    url_to_image: Optional[str] = Field(None, alias="urlToImage")
    published_at: Optional[datetime] = Field(None, alias="publishedAt")
    source: ArticleSource = Field(default_factory=ArticleSource)

    @field_validator("title", "url", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("published_at", mode="before")
    @classmethod
    def _lenient_timestamp(cls, v: Any) -> Any:
        # Unparseable dates rank as oldest instead of dropping the article.
        if isinstance(v, datetime):
            return v
        if not isinstance(v, str) or not v.strip():
            return None
        try:
            return _DATETIME.validate_python(v.strip())
        except ValidationError:
            return None

    @field_validator("source", mode="before")
    @classmethod
    def _source_default(cls, v: Any) -> Any:
        return v if isinstance(v, (dict, ArticleSource)) else {}

    @property
    def source_name(self) -> str:
        return self.source.name or ""

    def sort_key(self) -> datetime:
        """Publish instant used for ordering; missing timestamps sort as oldest."""
        if self.published_at is None:
            return EPOCH
        if self.published_at.tzinfo is None:
            return self.published_at.replace(tzinfo=timezone.utc)
        return self.published_at


class ProcessedArticle(BaseModel):
    """Article entry of a published snapshot."""

    model_config = ConfigDict(frozen=True)

    title: str
    title_ja: str
    original_url: str
    image_url: Optional[str] = None
    published_at: Optional[datetime] = None
    source: Optional[str] = None
    summary_ja: str


class Snapshot(BaseModel):
    """Serialized result of one pipeline run."""

    model_config = ConfigDict(frozen=True)

    updated_at: datetime
    articles: List[ProcessedArticle] = Field(default_factory=list)
