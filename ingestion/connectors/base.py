"""Connector abstraction, errors, and helpers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List

from pydantic import ValidationError

from ingestion.models.domain import RawArticle
from ingestion.utils.logging import get_logger

logger = get_logger(__name__)


class ConnectorError(Exception):
    """Base connector error."""


class TransientError(ConnectorError):
    """Upstream hiccup (rate limit, timeout, 5xx)."""


class PermanentError(ConnectorError):
    """Upstream rejected the request (4xx semantics, missing credentials)."""


class BaseConnector(ABC):
    """Single-shot connector: one upstream call per run, no retries."""

    source: str

    def fetch(self) -> List[RawArticle]:
        """Return validated candidates; raises ConnectorError on upstream failure."""
        return self._normalize(self._fetch_raw())

    def fetch_candidates(self) -> List[RawArticle]:
        """Like ``fetch`` but absorbs upstream failures into an empty result."""
        try:
            return self.fetch()
        except ConnectorError as exc:
            logger.warning(
                f"{self.source}.fetch_failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )
            return []

    @abstractmethod
    def _fetch_raw(self) -> List[Dict[str, Any]]:
        """Return a list of raw item dicts from the upstream."""

    def _normalize(self, items: Iterable[Dict[str, Any]]) -> List[RawArticle]:
        articles: List[RawArticle] = []
        for item in items:
            try:
                articles.append(RawArticle.model_validate(item))
            except ValidationError as exc:
                logger.warning(
                    f"{self.source}.invalid_item",
                    extra={"url": item.get("url") if isinstance(item, dict) else None, "error": str(exc)},
                )
        return articles
