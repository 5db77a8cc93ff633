"""Offline cache layer with a service-worker style lifecycle.

- install: cache the static shell, all-or-nothing
- activate: drop every cache version except the current one
- fetch: network-first for the data snapshot, cache-first for the rest
"""

from __future__ import annotations

import asyncio
import enum
from typing import Iterable, List, Optional, Set
from urllib.parse import urljoin

import httpx

from ingestion.utils.logging import get_logger
from offline.cache_storage import CachedResponse, CacheStorage

logger = get_logger(__name__)


class CacheInstallError(RuntimeError):
    """A static asset could not be fetched during install."""


class LayerState(str, enum.Enum):
    NEW = "new"
    INSTALLED = "installed"
    ACTIVATED = "activated"
    REDUNDANT = "redundant"


def _origin_of(url: httpx.URL) -> tuple[str, str, Optional[int]]:
    return (url.scheme, url.host, url.port)


class OfflineCacheLayer:
    def __init__(
        self,
        storage: CacheStorage,
        client: httpx.AsyncClient,
        *,
        origin: str,
        cache_name: str,
        static_assets: Iterable[str],
        data_path: str = "/data/latest.json",
    ) -> None:
        self.storage = storage
        self.client = client
        self.origin = httpx.URL(origin if origin.endswith("/") else origin + "/")
        self.cache_name = cache_name
        self.static_assets = [urljoin(str(self.origin), a) for a in static_assets]
        self.data_path = data_path
        self.state = LayerState.NEW
        self._pending: Set[asyncio.Task[None]] = set()

    # lifecycle -----------------------------------------------------------

    async def install(self) -> List[str]:
        """Fetch and store every static asset; nothing is stored if one fails."""
        results = await asyncio.gather(
            *(self._fetch_asset(url) for url in self.static_assets), return_exceptions=True
        )
        failure = next((r for r in results if isinstance(r, BaseException)), None)
        if failure is not None:
            self.state = LayerState.REDUNDANT
            raise failure
        responses: List[CachedResponse] = list(results)  # type: ignore[arg-type]
        cache = await self.storage.open(self.cache_name)
        await cache.put_many(dict(zip(self.static_assets, responses)))
        self.state = LayerState.INSTALLED
        logger.info("offline.installed", extra={"cache": self.cache_name, "assets": len(responses)})
        return list(self.static_assets)

    async def activate(self) -> List[str]:
        """Delete all cache versions other than the current one."""
        if self.state is LayerState.REDUNDANT:
            raise CacheInstallError("cannot activate a layer whose install failed")
        deleted: List[str] = []
        for name in await self.storage.keys():
            if name != self.cache_name and await self.storage.delete(name):
                deleted.append(name)
        self.state = LayerState.ACTIVATED
        logger.info("offline.activated", extra={"cache": self.cache_name, "deleted": deleted})
        return deleted

    async def wait_pending(self) -> None:
        """Wait for background cache writes started by data fetches."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    # fetch ---------------------------------------------------------------

    def is_data_request(self, request: httpx.Request) -> bool:
        return self.data_path in str(request.url)

    def response_type(self, url: httpx.URL) -> str:
        return "basic" if _origin_of(url) == _origin_of(self.origin) else "cors"

    async def handle_fetch(self, request: httpx.Request) -> Optional[CachedResponse]:
        """Serve one request; ``None`` means neither network nor cache could answer."""
        if self.state is not LayerState.ACTIVATED or request.method != "GET":
            return await self._network_or_none(request)
        if self.is_data_request(request):
            return await self._network_first(request)
        return await self._cache_first(request)

    async def _network_first(self, request: httpx.Request) -> Optional[CachedResponse]:
        try:
            response = await self._network(request)
        except httpx.RequestError as exc:
            logger.info("offline.network_failed", extra={"url": str(request.url), "error": str(exc)})
            return await self.storage.match(str(request.url))
        if response.status == 200 and response.type == "basic":
            self._schedule_store(str(request.url), response)
        return response

    async def _cache_first(self, request: httpx.Request) -> Optional[CachedResponse]:
        cached = await self.storage.match(str(request.url))
        if cached is not None:
            return cached
        return await self._network_or_none(request)

    async def _network_or_none(self, request: httpx.Request) -> Optional[CachedResponse]:
        try:
            return await self._network(request)
        except httpx.RequestError as exc:
            logger.info("offline.network_failed", extra={"url": str(request.url), "error": str(exc)})
            return None

    async def _network(self, request: httpx.Request) -> CachedResponse:
        response = await self.client.send(request)
        return CachedResponse.from_httpx(response, self.response_type(request.url))

    async def _fetch_asset(self, url: str) -> CachedResponse:
        try:
            response = await self._network(httpx.Request("GET", url))
        except httpx.RequestError as exc:
            raise CacheInstallError(f"failed to fetch {url}: {exc}") from exc
        if not response.ok:
            raise CacheInstallError(f"failed to fetch {url}: HTTP {response.status}")
        return response

    def _schedule_store(self, url: str, response: CachedResponse) -> None:
        task = asyncio.create_task(self._store(url, response))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _store(self, url: str, response: CachedResponse) -> None:
        try:
            cache = await self.storage.open(self.cache_name)
            await cache.put(url, response)
        except Exception:
            # the response has already been served
            logger.exception("offline.cache_write_failed", extra={"url": url, "cache": self.cache_name})
