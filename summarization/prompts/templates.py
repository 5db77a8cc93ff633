"""Prompt templates for the translate-and-summarize call.

The model is asked for a strict JSON object with ``title_ja`` and
``summary_ja``. Article fields are passed verbatim; missing ones render as
empty strings.
"""

from __future__ import annotations

from typing import List

from ingestion.models.domain import RawArticle

JSON_SCHEMA_SNIPPET = '{"title_ja": string, "summary_ja": string}'

SYSTEM_PROMPT = (
    "You are an expert tech news translator.\n"
    "1. Translate the title into natural Japanese.\n"
    "2. Summarize the article in Japanese in about 3 sentences, focusing on impact and technology.\n\n"
    "Return the result in strict JSON format as follows (no commentary, no code fences): "
    f"{JSON_SCHEMA_SNIPPET}"
)


def build_summary_messages(article: RawArticle) -> List[dict]:
    user = "\n".join(
        [
            f"Title: {article.title}",
            f"Description: {article.description or ''}",
            f"Content: {article.content or ''}",
        ]
    )
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": user},
    ]
