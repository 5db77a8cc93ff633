from __future__ import annotations

import json
from typing import Any, Dict

import pytest

from ingestion.models.domain import RawArticle
from llm.client.openai_client import OpenAIClient, TransientLLMError
from llm.settings import SummarizerSettings, reset_summarizer_settings_cache
from summarization.summarizer import (
    SUMMARY_UNAVAILABLE,
    Summarizer,
    build_fallback_summary,
    parse_reply,
    strip_code_fence,
)


def _article(title: str = "OpenAI ships a model", description: str | None = "Short description") -> RawArticle:
    return RawArticle.model_validate({"title": title, "description": description, "url": "https://ex.com/1"})


def _reply(content: str):
    def provider(_payload: Dict[str, Any]) -> Dict[str, Any]:
        return {"choices": [{"message": {"content": content}}], "usage": {}, "model": "gpt-4o-mini"}

    return provider


def _summarizer(provider) -> Summarizer:
    settings = SummarizerSettings(openai_api_key="sk-test")
    return Summarizer(OpenAIClient(settings, provider=provider))


def test_summarize_parses_json_reply():
    content = json.dumps({"title_ja": "OpenAIが新モデルを公開", "summary_ja": "新しいモデルが公開された。"})

    outcome = _summarizer(_reply(content)).summarize(_article())

    assert outcome.title_ja == "OpenAIが新モデルを公開"
    assert outcome.summary_ja == "新しいモデルが公開された。"
    assert outcome.fallback_used is False
    assert outcome.error is None


@pytest.mark.parametrize(
    "content",
    [
        '```json\n{"title_ja": "題", "summary_ja": "要約"}\n```',
        '```\n{"title_ja": "題", "summary_ja": "要約"}\n```',
        '  {"title_ja": "題", "summary_ja": "要約"}  ',
    ],
)
def test_fenced_replies_are_unwrapped(content):
    outcome = _summarizer(_reply(content)).summarize(_article())

    assert (outcome.title_ja, outcome.summary_ja) == ("題", "要約")


def test_transport_failure_returns_fallback():
    def provider(_payload):
        raise TransientLLMError("timeout")

    long_description = "x" * 500
    outcome = _summarizer(provider).summarize(_article(description=long_description))

    assert outcome.fallback_used is True
    assert outcome.title_ja == "OpenAI ships a model"
    assert len(outcome.summary_ja) == 200
    assert outcome.summary_ja.endswith("...")
    assert outcome.error and "TransientLLMError" in outcome.error


def test_non_json_reply_returns_fallback():
    outcome = _summarizer(_reply("Sorry, I cannot help with that.")).summarize(_article())

    assert outcome.fallback_used is True
    assert outcome.summary_ja == "Short description"
    assert outcome.title_ja == "OpenAI ships a model"


def test_json_array_reply_returns_fallback():
    outcome = _summarizer(_reply('["not", "an", "object"]')).summarize(_article())

    assert outcome.fallback_used is True


def test_missing_field_is_filled_from_fallback():
    outcome = _summarizer(_reply(json.dumps({"title_ja": "題"}))).summarize(_article())

    assert outcome.title_ja == "題"
    assert outcome.summary_ja == "Short description"
    assert outcome.fallback_used is True
    assert outcome.error == "missing fields: summary_ja"


def test_unconfigured_client_uses_fallback(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    reset_summarizer_settings_cache()

    summarizer = Summarizer.from_env()
    outcome = summarizer.summarize(_article())

    reset_summarizer_settings_cache()
    assert outcome.fallback_used is True
    assert outcome.title_ja == "OpenAI ships a model"


def test_fallback_summary_prefers_description_then_title():
    assert build_fallback_summary(_article(description="desc")) == "desc"
    assert build_fallback_summary(_article(description=None)) == "OpenAI ships a model"
    assert build_fallback_summary(_article(title="", description="")) == SUMMARY_UNAVAILABLE


def test_fallback_summary_boundary():
    exact = "y" * 200
    assert build_fallback_summary(_article(description=exact)) == exact
    assert build_fallback_summary(_article(description="y" * 201)) == "y" * 197 + "..."


def test_strip_code_fence_and_parse():
    assert strip_code_fence('```json{"a": 1}```') == '{"a": 1}'
    reply = parse_reply('```json\n{"title_ja": "  ", "summary_ja": 3}\n```')
    assert reply.title_ja is None and reply.summary_ja is None
