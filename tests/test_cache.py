from __future__ import annotations

from app.core.cache import InMemoryCache, NullCache, safe_get, safe_set


class _Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class _BrokenCache:
    def get(self, key: str) -> str | None:
        raise RuntimeError("cache down")

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        raise RuntimeError("cache down")

    def delete(self, key: str) -> None:
        raise RuntimeError("cache down")

    def clear(self) -> None:
        raise RuntimeError("cache down")

    def ping(self) -> bool:
        return False


def test_entries_expire_after_ttl() -> None:
    clock = _Clock()
    cache = InMemoryCache(clock=clock)

    cache.set("chart:line", "{}", 30)
    clock.now += 29
    assert cache.get("chart:line") == "{}"

    clock.now += 1
    assert cache.get("chart:line") is None
    assert len(cache) == 0


def test_least_recently_used_entry_is_evicted() -> None:
    cache = InMemoryCache(max_entries=2)

    cache.set("a", "1", 60)
    cache.set("b", "2", 60)
    assert cache.get("a") == "1"
    cache.set("c", "3", 60)

    assert cache.get("b") is None
    assert cache.get("a") == "1"
    assert cache.get("c") == "3"


def test_non_positive_ttl_is_not_stored() -> None:
    cache = InMemoryCache()

    cache.set("a", "1", 0)

    assert cache.get("a") is None


def test_delete_and_clear() -> None:
    cache = InMemoryCache()
    cache.set("a", "1", 60)
    cache.set("b", "2", 60)

    cache.delete("a")
    assert cache.get("a") is None
    cache.clear()
    assert len(cache) == 0


def test_null_cache_never_returns_values() -> None:
    cache = NullCache()

    cache.set("a", "1", 60)

    assert cache.get("a") is None
    assert cache.ping() is True


def test_safe_helpers_swallow_store_failures() -> None:
    broken = _BrokenCache()

    assert safe_get(broken, "chart:pie") is None
    assert safe_set(broken, "chart:pie", "{}", 60) is False


def test_safe_set_reports_success() -> None:
    cache = InMemoryCache()

    assert safe_set(cache, "k", "v", 60) is True
    assert safe_get(cache, "k") == "v"
