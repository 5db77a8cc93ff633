"""Relevance classifier over a flat allow/exclude rule set."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit

from ingestion.filters.rules import FilterRules
from ingestion.models.domain import RawArticle

ACCEPTED = "accepted"
EXCLUDED_DOMAIN = "excluded_domain"
NO_ALLOW_MATCH = "no_allow_match"
EXCLUDED_KEYWORD = "excluded_keyword"


@dataclass(frozen=True)
class Verdict:
    relevant: bool
    reason: str
    term: Optional[str] = None


def build_text_blob(article: RawArticle) -> str:
    parts = (article.title, article.description, article.content, article.source_name)
    return " ".join(p or "" for p in parts).lower()


def extract_hostname(url: str) -> str:
    try:
        host = urlsplit(url or "").hostname
    except ValueError:
        return ""
    return (host or "").lower().rstrip(".")


def _matching_domain(host: str, domains: tuple[str, ...]) -> Optional[str]:
    if not host:
        return None
    for domain in domains:
        if host == domain or host.endswith("." + domain):
            return domain
    return None


def classify(article: RawArticle, rules: FilterRules) -> Verdict:
    domain = _matching_domain(extract_hostname(article.url), rules.exclude_domains)
    if domain is not None:
        return Verdict(False, EXCLUDED_DOMAIN, domain)

    blob = build_text_blob(article)
    allow_hit = next((m.term for m in rules.allow_matchers if m.matches(blob)), None)
    if allow_hit is None:
        return Verdict(False, NO_ALLOW_MATCH)

    # Exclusion wins over any allow hit.
    exclude_hit = next((m.term for m in rules.exclude_matchers if m.matches(blob)), None)
    if exclude_hit is not None:
        return Verdict(False, EXCLUDED_KEYWORD, exclude_hit)

    return Verdict(True, ACCEPTED, allow_hit)


def is_relevant(article: RawArticle, rules: FilterRules) -> bool:
    return classify(article, rules).relevant
