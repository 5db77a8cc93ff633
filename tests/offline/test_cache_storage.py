from __future__ import annotations

from typing import Dict, List, Mapping, Optional

import pytest

from offline.cache_storage import CachedResponse, InMemoryCacheStorage, RedisCacheStorage, cache_key


class FakeAsyncRedis:
    def __init__(self) -> None:
        self._zsets: Dict[str, Dict[str, float]] = {}
        self._hashes: Dict[str, Dict[str, str]] = {}

    async def zadd(self, name: str, mapping: Mapping[str, float], nx: bool = False) -> int:
        zset = self._zsets.setdefault(name, {})
        added = 0
        for member, score in mapping.items():
            if nx and member in zset:
                continue
            added += member not in zset
            zset[member] = score
        return added

    async def zrange(self, name: str, start: int, end: int) -> List[str]:
        zset = self._zsets.get(name, {})
        # sorted() is stable, so equal scores keep insertion order
        members = [m for m, _ in sorted(zset.items(), key=lambda kv: kv[1])]
        return members[start:] if end == -1 else members[start : end + 1]

    async def zrem(self, name: str, *values: str) -> int:
        zset = self._zsets.get(name, {})
        return sum(1 for v in values if zset.pop(v, None) is not None)

    async def hset(self, name: str, key: Optional[str] = None, value: Optional[str] = None, mapping=None) -> int:
        bucket = self._hashes.setdefault(name, {})
        if key is not None:
            bucket[key] = value
        bucket.update(mapping or {})
        return 1

    async def hget(self, name: str, key: str) -> Optional[str]:
        return self._hashes.get(name, {}).get(key)

    async def delete(self, *names: str) -> int:
        return sum(1 for n in names if self._hashes.pop(n, None) is not None)


def _resp(url: str, body: bytes = b"ok", status: int = 200) -> CachedResponse:
    return CachedResponse(url=url, status=status, headers=(("content-type", "text/plain"),), body=body)


def test_cache_key_ignores_fragment():
    assert cache_key("http://o.test/index.html#top") == "http://o.test/index.html"


def test_cached_response_json_keeps_binary_body():
    original = CachedResponse(
        url="http://o.test/icon.png",
        status=200,
        headers=(("Content-Type", "image/png"),),
        body=b"\x89PNG\x00\xff",
        type="cors",
    )

    restored = CachedResponse.from_json(original.to_json())

    assert restored == original
    assert restored.header("content-type") == "image/png"


@pytest.mark.asyncio
async def test_inmemory_storage_match_searches_every_cache():
    storage = InMemoryCacheStorage()
    old = await storage.open("ai-news-v1")
    await old.put("http://o.test/a", _resp("http://o.test/a", b"old"))
    new = await storage.open("ai-news-v2")
    await new.put("http://o.test/b", _resp("http://o.test/b", b"new"))

    assert (await storage.match("http://o.test/a")).body == b"old"
    assert (await storage.match("http://o.test/b#x")).body == b"new"
    assert await storage.match("http://o.test/c") is None
    assert await storage.keys() == ["ai-news-v1", "ai-news-v2"]


@pytest.mark.asyncio
async def test_inmemory_storage_delete():
    storage = InMemoryCacheStorage()
    await storage.open("ai-news-v1")

    assert await storage.delete("ai-news-v1") is True
    assert await storage.delete("ai-news-v1") is False
    assert await storage.keys() == []


@pytest.mark.asyncio
async def test_redis_storage_roundtrip_and_delete():
    storage = RedisCacheStorage(FakeAsyncRedis(), prefix="test")
    v1 = await storage.open("ai-news-v1")
    await v1.put_many({"http://o.test/": _resp("http://o.test/", b"shell")})
    v2 = await storage.open("ai-news-v2")
    await v2.put("http://o.test/data/latest.json", _resp("http://o.test/data/latest.json", b"{}"))

    assert await storage.keys() == ["ai-news-v1", "ai-news-v2"]
    assert (await storage.match("http://o.test/")).body == b"shell"

    assert await storage.delete("ai-news-v1") is True
    assert await storage.keys() == ["ai-news-v2"]
    assert await storage.match("http://o.test/") is None
    assert (await storage.match("http://o.test/data/latest.json")).body == b"{}"


@pytest.mark.asyncio
async def test_redis_storage_open_is_idempotent():
    client = FakeAsyncRedis()
    storage = RedisCacheStorage(client, prefix="test")
    await storage.open("ai-news-v2")
    await storage.open("ai-news-v2")

    assert await storage.keys() == ["ai-news-v2"]
