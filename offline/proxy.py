"""FastAPI shim that puts the offline cache layer in front of the origin."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx
from fastapi import FastAPI, Request, Response

from ingestion.utils.logging import get_logger
from offline.cache_storage import CacheStorage, InMemoryCacheStorage, RedisCacheStorage
from offline.service_worker import CacheInstallError, OfflineCacheLayer
from offline.settings import OfflineSettings, get_offline_settings

logger = get_logger(__name__)

# hop-by-hop or already-decoded by httpx
_DROPPED_HEADERS = {"content-length", "content-encoding", "transfer-encoding", "connection"}


def build_storage(settings: OfflineSettings) -> CacheStorage:
    if settings.redis_url:
        return RedisCacheStorage.from_url(settings.redis_url)
    return InMemoryCacheStorage()


def build_layer(settings: Optional[OfflineSettings] = None, *, client: Optional[httpx.AsyncClient] = None) -> OfflineCacheLayer:
    cfg = settings or get_offline_settings()
    return OfflineCacheLayer(
        build_storage(cfg),
        client or httpx.AsyncClient(timeout=float(cfg.fetch_timeout_seconds)),
        origin=cfg.origin_url,
        cache_name=cfg.cache_name,
        static_assets=cfg.static_assets,
        data_path=cfg.data_path,
    )


def create_offline_app(layer: Optional[OfflineCacheLayer] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        active = layer or build_layer()
        app.state.layer = active
        try:
            await active.install()
            await active.activate()
        except CacheInstallError as exc:
            # requests keep flowing straight to the network
            logger.warning("offline.install_failed", extra={"error": str(exc)})
        try:
            yield
        finally:
            await active.wait_pending()
            await active.client.aclose()

    app = FastAPI(title="AI News offline proxy", version="0.1.0", lifespan=lifespan)

    @app.api_route("/{path:path}", methods=["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE"], include_in_schema=False)
    async def proxy(path: str, request: Request) -> Response:
        active: OfflineCacheLayer = request.app.state.layer
        url = active.origin.join(path).copy_merge_params(request.query_params.multi_items())
        body = await request.body()
        upstream = httpx.Request(request.method, url, content=body or None)
        served = await active.handle_fetch(upstream)
        if served is None:
            return Response("offline: no cached copy available", status_code=504, media_type="text/plain")
        headers = {k: v for k, v in served.headers if k.lower() not in _DROPPED_HEADERS}
        return Response(content=served.body, status_code=served.status, headers=headers)

    return app
