"""Tests for the pattern cache and the blacklist result cache."""

from scriptfence.cache import MAX_BLACKLIST_CACHE_LENGTH, BlacklistCache, PatternCache


def _url(i: int) -> str:
    """Ten characters long for i < 10**9."""
    return f"u{i:09d}"


class TestPatternCache:
    def test_put_get(self) -> None:
        cache = PatternCache()
        cache.put("re:a", 1)
        assert cache.get("re:a") == 1
        assert cache.get("re:b") is None

    def test_get_does_not_refresh(self) -> None:
        cache = PatternCache(max_size=2)
        cache.put("a", 1)
        cache.put("b", 2)
        cache.get("a")
        cache.put("c", 3)
        assert "a" not in cache
        assert "b" in cache and "c" in cache

    def test_hit_refreshes(self) -> None:
        cache = PatternCache(max_size=2)
        cache.put("a", 1)
        cache.put("b", 2)
        cache.hit("a")
        cache.put("c", 3)
        assert "a" in cache
        assert "b" not in cache

    def test_hit_missing_key_is_noop(self) -> None:
        cache = PatternCache()
        cache.hit("missing")
        assert len(cache) == 0

    def test_stats(self) -> None:
        cache = PatternCache(max_size=1)
        cache.put("a", 1)
        cache.get("a")
        cache.get("b")
        cache.put("b", 2)
        stats = cache.stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["evictions"] == 1
        assert stats["size"] == 1

    def test_clear(self) -> None:
        cache = PatternCache()
        cache.put("a", 1)
        cache.clear()
        assert len(cache) == 0


class TestBlacklistCache:
    def test_default_budget(self) -> None:
        assert BlacklistCache().max_length == MAX_BLACKLIST_CACHE_LENGTH == 100_000

    def test_stores_verdicts(self) -> None:
        cache = BlacklistCache()
        cache.put("http://a.com/", "a.com")
        cache.put("http://b.com/", False)
        assert cache.get("http://a.com/") == "a.com"
        assert cache.get("http://b.com/") is False
        assert cache.get("http://c.com/") is None

    def test_missing_verdict_stored_as_false(self) -> None:
        cache = BlacklistCache()
        cache.put("http://a.com/", None)
        assert cache.get("http://a.com/") is False

    def test_size_counts_key_length(self) -> None:
        cache = BlacklistCache()
        cache.put("http://a.com/", "a rather long rule text")
        assert cache.size == len("http://a.com/")

    def test_reput_does_not_double_count(self) -> None:
        cache = BlacklistCache()
        cache.put("http://a.com/", False)
        cache.put("http://a.com/", "a.com")
        assert cache.size == len("http://a.com/")
        assert len(cache) == 1

    def test_no_eviction_at_limit(self) -> None:
        cache = BlacklistCache(max_length=100)
        for i in range(10):
            cache.put(_url(i), False)
        assert cache.size == 100
        assert len(cache) == 10

    def test_evicts_oldest_to_low_water(self) -> None:
        cache = BlacklistCache(max_length=100)
        for i in range(11):
            cache.put(_url(i), False)
        # 110 > 100: drop the four oldest to get below 75
        assert cache.size == 70
        assert len(cache) == 7
        for i in range(4):
            assert _url(i) not in cache
        for i in range(4, 11):
            assert _url(i) in cache

    def test_eviction_invariant_at_default_budget(self) -> None:
        cache = BlacklistCache()
        limit = cache.max_length
        evictions = 0
        previous = 0
        for i in range(30_000):
            cache.put(f"https://example.com/page/{i}", False)
            assert cache.size <= limit
            if cache.size < previous:
                evictions += 1
                assert cache.size < limit * 0.75
            previous = cache.size
        assert evictions > 0

    def test_clear(self) -> None:
        cache = BlacklistCache()
        cache.put("http://a.com/", "a.com")
        cache.clear()
        assert cache.size == 0
        assert cache.get("http://a.com/") is None
