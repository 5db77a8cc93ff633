from __future__ import annotations

import pytest

from ingestion.filters.classifier import (
    ACCEPTED,
    EXCLUDED_DOMAIN,
    EXCLUDED_KEYWORD,
    NO_ALLOW_MATCH,
    build_text_blob,
    classify,
    extract_hostname,
    is_relevant,
)
from ingestion.filters.rules import FilterRules
from ingestion.models.domain import RawArticle


def _article(title="", description=None, content=None, url="https://example.com/a", source=None) -> RawArticle:
    return RawArticle.model_validate(
        {
            "title": title,
            "description": description,
            "content": content,
            "url": url,
            "source": {"name": source},
        }
    )


def test_allow_and_exclude_keyword_rejects():
    rules = FilterRules.build(allow_keywords=["ai"], exclude_keywords=["sports"])

    verdict = classify(_article("AI breakthrough in sports analytics"), rules)

    assert verdict.relevant is False
    assert verdict.reason == EXCLUDED_KEYWORD
    assert verdict.term == "sports"


def test_long_allow_term_accepts_case_insensitively():
    rules = FilterRules.build(allow_keywords=["machine learning"])

    verdict = classify(_article("New Machine Learning model released"), rules)

    assert verdict.relevant is True
    assert verdict.reason == ACCEPTED
    assert verdict.term == "machine learning"


def test_short_allow_term_does_not_match_inside_words():
    rules = FilterRules.build(allow_keywords=["ai"])

    assert not is_relevant(_article("Minister said the budget passed"), rules)
    assert is_relevant(_article("Minister said AI budget passed"), rules)


def test_no_allow_match_rejects():
    rules = FilterRules.build(allow_keywords=["llm"], exclude_keywords=["sports"])

    verdict = classify(_article("Quarterly earnings beat estimates"), rules)

    assert verdict == verdict.__class__(False, NO_ALLOW_MATCH, None)


def test_empty_rules_reject_everything():
    assert not is_relevant(_article("Machine learning everywhere"), FilterRules.empty())


@pytest.mark.parametrize(
    "url",
    [
        "https://spam.example/story",
        "https://www.spam.example/story",
        "https://deep.news.SPAM.example./story",
    ],
)
def test_excluded_domain_and_subdomains_reject(url):
    rules = FilterRules.build(allow_keywords=["ai"], exclude_domains=["spam.example"])

    verdict = classify(_article("AI news", url=url), rules)

    assert verdict.relevant is False
    assert verdict.reason == EXCLUDED_DOMAIN


def test_domain_suffix_without_dot_boundary_is_not_excluded():
    rules = FilterRules.build(allow_keywords=["ai"], exclude_domains=["spam.example"])

    assert is_relevant(_article("AI news", url="https://notspam.example/story"), rules)


def test_malformed_url_is_treated_as_no_hostname():
    rules = FilterRules.build(allow_keywords=["ai"], exclude_domains=["example.com"])

    assert extract_hostname("http://[::1") == ""
    assert is_relevant(_article("AI news", url="http://[::1"), rules)
    assert is_relevant(_article("AI news", url=""), rules)


def test_source_name_counts_like_title():
    rules = FilterRules.build(allow_keywords=["machine learning"])

    article = _article("Weekly roundup", source="Machine Learning Times")

    assert "machine learning times" in build_text_blob(article)
    assert is_relevant(article, rules)


def test_exclusion_applies_across_fields():
    rules = FilterRules.build(allow_keywords=["openai"], exclude_keywords=["giveaway"])

    article = _article("OpenAI ships new model", content="Enter our giveaway today")

    assert not is_relevant(article, rules)


def test_missing_fields_are_empty_text():
    article = RawArticle.model_validate({"title": None, "url": None, "source": None})

    assert build_text_blob(article) == "   "
    assert not is_relevant(article, FilterRules.build(allow_keywords=["ai"]))
