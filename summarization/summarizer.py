"""Summarizer adapter: LLM translation/summary with a deterministic fallback."""

from __future__ import annotations

import json
from typing import Optional

from pydantic import ValidationError

from ingestion.models.domain import RawArticle
from ingestion.utils.logging import get_logger
from llm.client.openai_client import LLMError, OpenAIClient, ProviderFn
from summarization.models.domain import SummaryOutcome, SummaryReply
from summarization.prompts.templates import build_summary_messages

logger = get_logger(__name__)

FALLBACK_SUMMARY_MAX_CHARS = 200
FALLBACK_ELLIPSIS = "..."
SUMMARY_UNAVAILABLE = "記事の要約を取得できませんでした。"

_FENCE_PREFIXES = ("```json", "```")
_FENCE = "```"


class ReplyFormatError(ValueError):
    """Model reply is not a JSON object."""


def build_fallback_summary(article: RawArticle) -> str:
    base = article.description or article.title or SUMMARY_UNAVAILABLE
    if len(base) > FALLBACK_SUMMARY_MAX_CHARS:
        return base[: FALLBACK_SUMMARY_MAX_CHARS - len(FALLBACK_ELLIPSIS)] + FALLBACK_ELLIPSIS
    return base


def strip_code_fence(text: str) -> str:
    cleaned = text.strip()
    for prefix in _FENCE_PREFIXES:
        if cleaned.startswith(prefix):
            cleaned = cleaned[len(prefix):]
            break
    if cleaned.endswith(_FENCE):
        cleaned = cleaned[: -len(_FENCE)]
    return cleaned.strip()


def parse_reply(text: str) -> SummaryReply:
    try:
        data = json.loads(strip_code_fence(text))
    except json.JSONDecodeError as exc:
        raise ReplyFormatError(f"reply is not valid JSON: {exc.msg}") from exc
    if not isinstance(data, dict):
        raise ReplyFormatError("reply is not a JSON object")
    return SummaryReply.model_validate(data)


class Summarizer:
    """Produces a Japanese title/summary for one article at a time."""

    def __init__(self, client: Optional[OpenAIClient]):
        self._client = client

    @classmethod
    def from_env(cls, provider: Optional[ProviderFn] = None) -> "Summarizer":
        try:
            client = OpenAIClient.from_env(provider=provider)
        except RuntimeError as exc:
            # Missing credentials must not stop the run; every article gets the fallback.
            logger.warning("summarize.client_unavailable", extra={"error": str(exc)})
            client = None
        return cls(client)

    def fallback(self, article: RawArticle, error: str) -> SummaryOutcome:
        return SummaryOutcome(
            title_ja=article.title,
            summary_ja=build_fallback_summary(article),
            fallback_used=True,
            error=error,
        )

    def summarize(self, article: RawArticle) -> SummaryOutcome:
        if self._client is None:
            return self.fallback(article, "summarizer client is not configured")
        try:
            completion = self._client.complete(build_summary_messages(article))
            reply = parse_reply(completion.content)
        except (LLMError, ReplyFormatError, ValidationError) as exc:
            logger.warning(
                "summarize.fallback",
                extra={"title": article.title, "error": str(exc), "error_type": type(exc).__name__},
            )
            return self.fallback(article, f"{type(exc).__name__}: {exc}")

        missing = [name for name in ("title_ja", "summary_ja") if getattr(reply, name) is None]
        if missing:
            logger.info("summarize.partial_reply", extra={"title": article.title, "missing": missing})
        return SummaryOutcome(
            title_ja=reply.title_ja or article.title,
            summary_ja=reply.summary_ja or build_fallback_summary(article),
            fallback_used=bool(missing),
            error=f"missing fields: {', '.join(missing)}" if missing else None,
        )
