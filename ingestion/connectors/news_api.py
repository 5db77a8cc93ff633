"""NewsAPI connector (provider-injected for tests/offline)."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

import httpx

from ingestion.settings import Settings, get_settings

from .base import BaseConnector, PermanentError, TransientError


ProviderFn = Callable[[Dict[str, Any]], List[Dict[str, Any]]]


class NewsAPIConnector(BaseConnector):
    """Connector for the NewsAPI ``everything`` search.

    - with a provider: the provider receives the query params (offline mode)
    - without one: a real HTTP call
    """

    source = "news_api"

    def __init__(self, provider: Optional[ProviderFn] = None, settings: Optional[Settings] = None):
        self._provider = provider
        self._settings = settings

    @property
    def settings(self) -> Settings:
        return self._settings or get_settings()

    def build_params(self) -> Dict[str, Any]:
        cfg = self.settings
        return {
            "q": cfg.news_api_query,
            "language": cfg.news_api_lang,
            "sortBy": cfg.news_api_sort_by,
            "pageSize": int(cfg.news_api_page_size),
        }

    def fetch(self):
        # the upstream may ignore pageSize; keep the bound locally too
        return super().fetch()[: int(self.settings.news_api_page_size)]

    def _fetch_raw(self) -> List[Dict[str, Any]]:
        params = self.build_params()
        if self._provider is not None:
            return self._provider(params)

        cfg = self.settings
        if not cfg.news_api_key:
            raise PermanentError("NEWS_API_KEY is not configured.")

        headers = {"X-Api-Key": cfg.news_api_key.get_secret_value()}
        try:
            resp = httpx.get(
                cfg.news_api_endpoint,
                headers=headers,
                params=params,
                timeout=float(cfg.news_api_timeout_seconds),
            )
        except httpx.TimeoutException as exc:
            raise TransientError("NewsAPI timeout") from exc
        except httpx.HTTPError as exc:
            raise TransientError(f"NewsAPI transport error: {exc}") from exc

        if resp.status_code == 429 or resp.status_code >= 500:
            raise TransientError(f"NewsAPI temporary failure: {resp.status_code}")
        if resp.status_code >= 400:
            raise PermanentError(f"NewsAPI error: {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as exc:
            raise PermanentError("NewsAPI returned a non-JSON body") from exc
        if not isinstance(data, dict):
            raise PermanentError("NewsAPI returned an unexpected payload")
        if data.get("status") == "error":
            raise PermanentError(f"NewsAPI error: {data.get('code') or data.get('message')}")
        items = data.get("articles") or []
        return [it for it in items if isinstance(it, dict)]
