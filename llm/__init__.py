"""LLM module - OpenAI client and settings."""

from llm.client.openai_client import (
    Completion,
    LLMError,
    OpenAIClient,
    PermanentLLMError,
    ProviderFn,
    TransientLLMError,
)
from llm.settings import SummarizerSettings, get_summarizer_settings

__all__ = [
    "Completion",
    "LLMError",
    "OpenAIClient",
    "PermanentLLMError",
    "ProviderFn",
    "TransientLLMError",
    "SummarizerSettings",
    "get_summarizer_settings",
]
