from __future__ import annotations

import pytest

from offline.settings import OfflineSettings, get_offline_settings, reset_offline_settings_cache


@pytest.fixture(autouse=True)
def _reset(monkeypatch: pytest.MonkeyPatch):
    for name in ("OFFLINE_ORIGIN_URL", "OFFLINE_CACHE_NAME", "OFFLINE_STATIC_ASSETS", "OFFLINE_REDIS_URL"):
        monkeypatch.delenv(name, raising=False)
    reset_offline_settings_cache()
    yield
    reset_offline_settings_cache()


def test_defaults():
    cfg = OfflineSettings(_env_file=None)

    assert cfg.origin_url == "http://localhost:8000/"
    assert cfg.cache_name == "ai-news-v2"
    assert cfg.data_path == "/data/latest.json"
    assert "./index.html" in cfg.static_assets
    assert cfg.redis_url is None


def test_env_overrides(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("OFFLINE_ORIGIN_URL", "https://news.example")
    monkeypatch.setenv("OFFLINE_CACHE_NAME", "ai-news-v3")
    monkeypatch.setenv("OFFLINE_STATIC_ASSETS", '["./", "./app.js"]')

    cfg = get_offline_settings()

    assert cfg.origin_url == "https://news.example/"
    assert cfg.cache_name == "ai-news-v3"
    assert cfg.static_assets == ["./", "./app.js"]


def test_static_assets_string_parsed_on_init():
    cfg = OfflineSettings(_env_file=None, static_assets='["./a.css"]')

    assert cfg.static_assets == ["./a.css"]


def test_relative_origin_rejected(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("OFFLINE_ORIGIN_URL", "localhost:8000")

    with pytest.raises(RuntimeError):
        get_offline_settings()
