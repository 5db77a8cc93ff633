"""Summarizer input/output schemas."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SummaryReply(BaseModel):
    """JSON object the model is asked to return."""

    model_config = ConfigDict(extra="ignore")

    title_ja: Optional[str] = None
    summary_ja: Optional[str] = None

    @field_validator("title_ja", "summary_ja", mode="before")
    @classmethod
    def _blank_to_none(cls, v: object) -> Optional[str]:
        if not isinstance(v, str):
            return None
        s = v.strip()
        return s or None


class SummaryOutcome(BaseModel):
    """Always-displayable summary; ``error`` is for observability only."""

    model_config = ConfigDict(frozen=True)

    title_ja: str
    summary_ja: str
    fallback_used: bool = False
    error: Optional[str] = Field(default=None, description="Cause of the fallback, if any")
