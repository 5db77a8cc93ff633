from __future__ import annotations

import json
import logging
from dataclasses import FrozenInstanceError
from pathlib import Path

import pytest

from ingestion.filters.rules import FilterRules, TermMatcher, load_filter_rules


def _write(tmp_path: Path, payload) -> Path:
    path = tmp_path / "rules.json"
    path.write_text(payload if isinstance(payload, str) else json.dumps(payload), encoding="utf-8")
    return path


def test_load_normalizes_terms(tmp_path: Path):
    path = _write(
        tmp_path,
        {
            "allow_keywords": ["  Machine Learning ", "AI", "ai", "", 42],
            "exclude_domains": ["Example.COM.", ".news.example.org"],
            "exclude_keywords": ["Sports"],
        },
    )

    result = load_filter_rules(path)

    assert result.error is None
    assert result.rules.allow_keywords == ("machine learning", "ai")
    assert result.rules.exclude_domains == ("example.com", "news.example.org")
    assert result.rules.exclude_keywords == ("sports",)
    assert [m.term for m in result.rules.allow_matchers] == ["machine learning", "ai"]


def test_non_array_fields_default_to_empty(tmp_path: Path, caplog):
    path = _write(tmp_path, {"allow_keywords": "ai", "exclude_domains": None})

    with caplog.at_level(logging.WARNING):
        result = load_filter_rules(path)

    assert result.error is None
    assert result.rules.allow_keywords == ()
    assert result.rules.exclude_domains == ()
    assert result.rules.exclude_keywords == ()
    assert any(r.getMessage() == "filters.rules_empty" for r in caplog.records)


def test_missing_file_returns_empty_rules(tmp_path: Path, caplog):
    with caplog.at_level(logging.WARNING):
        result = load_filter_rules(tmp_path / "absent.json")

    assert result.rules.is_empty
    assert result.error and "FileNotFoundError" in result.error
    assert any(r.getMessage() == "filters.rules_load_failed" for r in caplog.records)


def test_malformed_json_returns_empty_rules(tmp_path: Path):
    result = load_filter_rules(_write(tmp_path, "{not json"))

    assert result.rules == FilterRules.empty()
    assert result.error and "JSONDecodeError" in result.error


def test_top_level_array_returns_empty_rules(tmp_path: Path):
    result = load_filter_rules(_write(tmp_path, ["ai"]))

    assert result.rules.is_empty
    assert result.error == "top-level value is not an object"


def test_short_terms_match_whole_words_only():
    matcher = TermMatcher.compile("ai")

    assert matcher.matches("new ai chips")
    assert matcher.matches("AI.")
    assert not matcher.matches("she said hello")
    assert not matcher.matches("email campaign")


def test_long_terms_match_as_substrings():
    matcher = TermMatcher.compile("learning")

    assert matcher.matches("deeplearning frameworks")
    assert matcher.matches("Machine LEARNING")


def test_special_characters_are_literal():
    dotted = TermMatcher.compile("gpt-4.5")
    assert dotted.matches("gpt-4.5 launched")
    assert not dotted.matches("gpt-4x5 launched")

    short = TermMatcher.compile("a.i")
    assert short.matches("the a.i revolution")
    assert not short.matches("the abi revolution")


def test_build_is_immutable():
    rules = FilterRules.build(allow_keywords=["AI"])

    assert rules.allow_keywords == ("ai",)
    with pytest.raises(FrozenInstanceError):
        rules.allow_keywords = ("x",)  # type: ignore[misc]
