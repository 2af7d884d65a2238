from jamf_api_kit import cache as cache_mod
from jamf_api_kit.cache import MemoryCache


def test_set_and_get():
    cache = MemoryCache(name="lists")
    assert cache.set("buildings", [1, 2]) == [1, 2]
    assert cache.get("buildings") == [1, 2]
    assert "buildings" in cache
    assert cache.get("missing", "fallback") == "fallback"


def test_entries_expire(monkeypatch):
    now = [1000.0]
    monkeypatch.setattr(cache_mod.time, "time", lambda: now[0])
    cache = MemoryCache(default_ttl=60)
    cache.set("short", "a", ttl=5)
    cache.set("long", "b")

    now[0] += 10
    assert cache.get("short") is None
    assert cache.get("long") == "b"
    now[0] += 60
    assert cache.keys() == []


def test_no_ttl_means_no_expiry(monkeypatch):
    now = [0.0]
    monkeypatch.setattr(cache_mod.time, "time", lambda: now[0])
    cache = MemoryCache()
    cache.set("key", "value")
    now[0] += 10 ** 6
    assert cache.get("key") == "value"


def test_disabled_cache_stores_nothing():
    cache = MemoryCache(enabled=False)
    assert cache.set("key", "value") == "value"
    assert cache.get("key") is None
    assert cache.stats()["total_entries"] == 0


def test_delete_and_delete_matching():
    cache = MemoryCache()
    cache.set(("Building", "history", "1"), [])
    cache.set(("Building", "history", "2"), [])
    cache.set("Building", [])
    assert cache.delete("Building")
    assert not cache.delete("Building")
    assert cache.delete_matching(lambda key: isinstance(key, tuple) and key[1] == "history") == 2
    assert cache.keys() == []


def test_stats(monkeypatch):
    now = [0.0]
    monkeypatch.setattr(cache_mod.time, "time", lambda: now[0])
    cache = MemoryCache(name="collections", default_ttl=30)
    cache.set("old", 1)
    now[0] += 40
    cache.set("new", 2)
    stats = cache.stats()
    assert stats["name"] == "collections"
    assert stats["valid_entries"] == 1
    assert stats["expired_entries"] == 1
    assert cache.clear() == 2
