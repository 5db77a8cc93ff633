"""Filter rule store: allow/exclude keyword and domain lists.

Rules are loaded once per process into an immutable ``FilterRules`` object
and handed explicitly to the classifier and the pipeline. Loading never
raises: any failure degrades to empty rules, which reject every article.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, field_validator

from ingestion.utils.logging import get_logger

logger = get_logger(__name__)

# Terms this short only match as whole words ("ai" must not hit "said").
SHORT_TERM_MAX_LENGTH = 3


@dataclass(frozen=True)
class TermMatcher:
    term: str
    pattern: re.Pattern[str]

    @classmethod
    def compile(cls, term: str) -> "TermMatcher":
        escaped = re.escape(term)
        if len(term) <= SHORT_TERM_MAX_LENGTH:
            escaped = rf"\b{escaped}\b"
        return cls(term=term, pattern=re.compile(escaped, re.IGNORECASE))

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None


class FilterRulesDocument(BaseModel):
    """On-disk shape of the filter configuration."""

    model_config = ConfigDict(extra="ignore")

    allow_keywords: List[str] = []
    exclude_domains: List[str] = []
    exclude_keywords: List[str] = []

    @field_validator("allow_keywords", "exclude_keywords", mode="before")
    @classmethod
    def _keywords(cls, v: Any) -> List[str]:
        return _clean_terms(v)

    @field_validator("exclude_domains", mode="before")
    @classmethod
    def _domains(cls, v: Any) -> List[str]:
        return [d.strip(".") for d in _clean_terms(v) if d.strip(".")]


def _clean_terms(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    cleaned: List[str] = []
    for item in value:
        if not isinstance(item, str):
            continue
        term = item.strip().lower()
        if term and term not in cleaned:
            cleaned.append(term)
    return cleaned


@dataclass(frozen=True)
class FilterRules:
    allow_keywords: Tuple[str, ...] = ()
    exclude_domains: Tuple[str, ...] = ()
    exclude_keywords: Tuple[str, ...] = ()
    allow_matchers: Tuple[TermMatcher, ...] = field(default=(), repr=False, compare=False)
    exclude_matchers: Tuple[TermMatcher, ...] = field(default=(), repr=False, compare=False)

    @classmethod
    def build(
        cls,
        allow_keywords: Iterable[str] = (),
        exclude_domains: Iterable[str] = (),
        exclude_keywords: Iterable[str] = (),
    ) -> "FilterRules":
        doc = FilterRulesDocument(
            allow_keywords=list(allow_keywords),
            exclude_domains=list(exclude_domains),
            exclude_keywords=list(exclude_keywords),
        )
        return cls.from_document(doc)

    @classmethod
    def from_document(cls, doc: FilterRulesDocument) -> "FilterRules":
        return cls(
            allow_keywords=tuple(doc.allow_keywords),
            exclude_domains=tuple(doc.exclude_domains),
            exclude_keywords=tuple(doc.exclude_keywords),
            allow_matchers=tuple(TermMatcher.compile(t) for t in doc.allow_keywords),
            exclude_matchers=tuple(TermMatcher.compile(t) for t in doc.exclude_keywords),
        )

    @classmethod
    def empty(cls) -> "FilterRules":
        return cls()

    @property
    def is_empty(self) -> bool:
        return not (self.allow_keywords or self.exclude_domains or self.exclude_keywords)


@dataclass(frozen=True)
class RuleLoadResult:
    rules: FilterRules
    error: Optional[str] = None


def load_filter_rules(path: str | Path) -> RuleLoadResult:
    """Read the rule document at ``path``; fall back to empty rules on any failure."""
    source = Path(path)
    try:
        raw = json.loads(source.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        return _failed(source, f"{type(exc).__name__}: {exc}")
    if not isinstance(raw, dict):
        return _failed(source, "top-level value is not an object")

    rules = FilterRules.from_document(FilterRulesDocument.model_validate(raw))
    logger.info(
        "filters.rules_loaded",
        extra={
            "path": str(source),
            "allow_keywords": len(rules.allow_keywords),
            "exclude_domains": len(rules.exclude_domains),
            "exclude_keywords": len(rules.exclude_keywords),
        },
    )
    if rules.is_empty:
        # Valid but empty document: every article will be rejected.
        logger.warning("filters.rules_empty", extra={"path": str(source)})
    return RuleLoadResult(rules=rules)


def _failed(source: Path, reason: str) -> RuleLoadResult:
    logger.warning("filters.rules_load_failed", extra={"path": str(source), "error": reason})
    return RuleLoadResult(rules=FilterRules.empty(), error=reason)
