"""OpenAI LLM client wrapper.

Features
- single chat-completion call per request (no retries; the next scheduled
  run is the only retry)
- JSON response format requested from the model
- provider injection so tests never touch the network
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from llm.settings import SummarizerSettings, get_summarizer_settings


class LLMError(Exception):
    """Base error for LLM calls."""


class TransientLLMError(LLMError):
    """Timeouts, connection failures, rate limits, 5xx."""


class PermanentLLMError(LLMError):
    """Rejected requests, missing library, malformed replies."""


ProviderFn = Callable[[Dict[str, Any]], Dict[str, Any]]


@dataclass(frozen=True)
class Completion:
    content: str
    model: str
    prompt_tokens: int = 0
    completion_tokens: int = 0


@dataclass(frozen=True)
class OpenAIClient:
    settings: SummarizerSettings
    provider: Optional[ProviderFn] = None

    @classmethod
    def from_env(cls, provider: Optional[ProviderFn] = None) -> "OpenAIClient":
        return cls(get_summarizer_settings(), provider=provider)

    def _get_provider(self) -> ProviderFn:
        if self.provider is not None:
            return self.provider
        try:
            import openai
        except ImportError as exc:  # pragma: no cover - tests inject a provider
            raise PermanentLLMError("openai library is not installed.") from exc

        client = openai.OpenAI(
            api_key=self.settings.openai_api_key,
            timeout=float(self.settings.summary_request_timeout_seconds),
            max_retries=0,
        )

        def _call(payload: Dict[str, Any]) -> Dict[str, Any]:  # pragma: no cover - network
            try:
                resp = client.chat.completions.create(**payload)
            except (openai.APITimeoutError, openai.APIConnectionError, openai.RateLimitError) as exc:
                raise TransientLLMError(str(exc)) from exc
            except openai.APIStatusError as exc:
                if exc.status_code >= 500:
                    raise TransientLLMError(str(exc)) from exc
                raise PermanentLLMError(str(exc)) from exc
            # normalize to the dict shape providers return
            return {
                "choices": [{"message": {"content": resp.choices[0].message.content}}],
                "usage": {
                    "prompt_tokens": getattr(resp.usage, "prompt_tokens", 0),
                    "completion_tokens": getattr(resp.usage, "completion_tokens", 0),
                },
                "model": resp.model,
            }

        return _call

    def build_payload(self, messages: List[dict]) -> Dict[str, Any]:
        return {
            "model": self.settings.summary_model,
            "messages": messages,
            "temperature": float(self.settings.summary_temperature),
            "max_tokens": int(self.settings.summary_max_tokens),
            "response_format": {"type": "json_object"},
        }

    def complete(self, messages: List[dict]) -> Completion:
        payload = self.build_payload(messages)
        provider = self._get_provider()
        try:
            resp = provider(payload)
        except LLMError:
            raise
        except Exception as exc:
            raise TransientLLMError(f"LLM provider failure: {exc}") from exc

        try:
            content = resp["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise PermanentLLMError("LLM response has no message content") from exc
        if not isinstance(content, str):
            raise PermanentLLMError("LLM response content is empty")

        usage = resp.get("usage") or {}
        return Completion(
            content=content,
            model=resp.get("model") or self.settings.summary_model,
            prompt_tokens=int(usage.get("prompt_tokens", 0) or 0),
            completion_tokens=int(usage.get("completion_tokens", 0) or 0),
        )
