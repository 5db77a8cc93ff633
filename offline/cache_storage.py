"""Versioned response cache storage (in-memory and Redis-backed).

A storage holds named caches (one per deployment version); each cache maps
a request URL to a stored response. ``match`` on the storage searches every
cache in creation order, like ``caches.match`` in a browser.
"""

from __future__ import annotations

import base64
import json
import time
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Protocol, Tuple
from urllib.parse import urldefrag

import httpx


@dataclass(frozen=True)
class CachedResponse:
    url: str
    status: int
    headers: Tuple[Tuple[str, str], ...] = ()
    body: bytes = b""
    type: str = "basic"

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def header(self, name: str) -> Optional[str]:
        lowered = name.lower()
        return next((v for k, v in self.headers if k.lower() == lowered), None)

    @classmethod
    def from_httpx(cls, response: httpx.Response, response_type: str) -> "CachedResponse":
        return cls(
            url=str(response.request.url),
            status=response.status_code,
            headers=tuple(response.headers.items()),
            body=response.content,
            type=response_type,
        )

    def to_json(self) -> str:
        return json.dumps(
            {
                "url": self.url,
                "status": self.status,
                "headers": [list(h) for h in self.headers],
                "body": base64.b64encode(self.body).decode("ascii"),
                "type": self.type,
            }
        )

    @classmethod
    def from_json(cls, raw: str | bytes) -> "CachedResponse":
        data = json.loads(raw)
        return cls(
            url=data["url"],
            status=int(data["status"]),
            headers=tuple((str(k), str(v)) for k, v in data.get("headers", [])),
            body=base64.b64decode(data.get("body", "")),
            type=data.get("type", "basic"),
        )


def cache_key(url: str | httpx.URL) -> str:
    """Cache lookups ignore the fragment."""
    return urldefrag(str(url))[0]


class Cache(Protocol):
    async def put(self, url: str, response: CachedResponse) -> None: ...
    async def put_many(self, entries: Mapping[str, CachedResponse]) -> None: ...
    async def match(self, url: str) -> Optional[CachedResponse]: ...


class CacheStorage(Protocol):
    async def open(self, name: str) -> Cache: ...
    async def keys(self) -> List[str]: ...
    async def delete(self, name: str) -> bool: ...
    async def match(self, url: str) -> Optional[CachedResponse]: ...


@dataclass
class InMemoryCache:
    name: str
    entries: Dict[str, CachedResponse] = field(default_factory=dict)

    async def put(self, url: str, response: CachedResponse) -> None:
        self.entries[cache_key(url)] = response

    async def put_many(self, entries: Mapping[str, CachedResponse]) -> None:
        self.entries.update({cache_key(u): r for u, r in entries.items()})

    async def match(self, url: str) -> Optional[CachedResponse]:
        return self.entries.get(cache_key(url))


class InMemoryCacheStorage:
    """Process-local storage for tests/local runs."""

    def __init__(self) -> None:
        self._caches: Dict[str, InMemoryCache] = {}

    async def open(self, name: str) -> InMemoryCache:
        if name not in self._caches:
            self._caches[name] = InMemoryCache(name)
        return self._caches[name]

    async def keys(self) -> List[str]:
        return list(self._caches)

    async def delete(self, name: str) -> bool:
        return self._caches.pop(name, None) is not None

    async def match(self, url: str) -> Optional[CachedResponse]:
        for cache in list(self._caches.values()):
            hit = await cache.match(url)
            if hit is not None:
                return hit
        return None


class _AsyncRedisLike(Protocol):
    async def zadd(self, name: str, mapping: Mapping[str, float], nx: bool = False) -> int: ...
    async def zrange(self, name: str, start: int, end: int) -> List[str]: ...
    async def zrem(self, name: str, *values: str) -> int: ...
    async def hset(self, name: str, key: Optional[str] = None, value: Optional[str] = None, mapping: Optional[Mapping[str, str]] = None) -> int: ...
    async def hget(self, name: str, key: str) -> Optional[str]: ...
    async def delete(self, *names: str) -> int: ...


class RedisCache:
    def __init__(self, client: _AsyncRedisLike, key: str):
        self._client = client
        self._key = key

    async def put(self, url: str, response: CachedResponse) -> None:
        await self._client.hset(self._key, cache_key(url), response.to_json())

    async def put_many(self, entries: Mapping[str, CachedResponse]) -> None:
        if entries:
            await self._client.hset(self._key, mapping={cache_key(u): r.to_json() for u, r in entries.items()})

    async def match(self, url: str) -> Optional[CachedResponse]:
        raw = await self._client.hget(self._key, cache_key(url))
        return CachedResponse.from_json(raw) if raw else None


class RedisCacheStorage:
    """Redis-backed storage shared by every proxy process.

    - cache names: sorted set ``{prefix}:caches`` scored by creation time
    - entries: one hash per cache, ``{prefix}:cache:{name}`` url → JSON
    """

    def __init__(self, client: _AsyncRedisLike, *, prefix: str = "offline") -> None:
        self._client = client
        self._prefix = prefix

    @classmethod
    def from_url(cls, redis_url: str, *, prefix: str = "offline") -> "RedisCacheStorage":
        from redis import asyncio as aioredis

        return cls(aioredis.Redis.from_url(redis_url, decode_responses=True), prefix=prefix)

    @property
    def _names_key(self) -> str:
        return f"{self._prefix}:caches"

    def _cache_key(self, name: str) -> str:
        return f"{self._prefix}:cache:{name}"

    async def open(self, name: str) -> RedisCache:
        await self._client.zadd(self._names_key, {name: time.time()}, nx=True)
        return RedisCache(self._client, self._cache_key(name))

    async def keys(self) -> List[str]:
        return list(await self._client.zrange(self._names_key, 0, -1))

    async def delete(self, name: str) -> bool:
        removed = await self._client.zrem(self._names_key, name)
        await self._client.delete(self._cache_key(name))
        return bool(removed)

    async def match(self, url: str) -> Optional[CachedResponse]:
        for name in await self.keys():
            hit = await RedisCache(self._client, self._cache_key(name)).match(url)
            if hit is not None:
                return hit
        return None
