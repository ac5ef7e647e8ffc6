"""Tests for the lookup caches."""

import threading

import pytest

from caching import ArtworkIndexCache, BoundedCache, HarmonicPairCache


class TestBoundedCache:
    def test_get_or_compute_memoizes(self):
        cache = BoundedCache(maxsize=4)
        calls = []

        def compute():
            calls.append(1)
            return "value"

        assert cache.get_or_compute("k", compute) == "value"
        assert cache.get_or_compute("k", compute) == "value"
        assert len(calls) == 1

    def test_evicts_least_recently_used(self):
        cache = BoundedCache(maxsize=2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.get("a")
        cache.set("c", 3)
        assert "a" in cache
        assert "b" not in cache
        assert len(cache) == 2

    def test_clear(self):
        cache = BoundedCache(maxsize=2)
        cache.set("a", 1)
        cache.clear()
        assert len(cache) == 0
        assert cache.get("a") is None

    def test_concurrent_lookups_respect_capacity(self):
        cache = BoundedCache(maxsize=50)

        def worker(offset):
            for i in range(200):
                cache.get_or_compute((offset, i), lambda: i)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert len(cache) == 50


class TestHarmonicPairCache:
    def test_relation_is_cached_per_pair(self):
        cache = HarmonicPairCache(maxsize=10)
        calls = []

        def compute(a, b):
            calls.append((a, b))
            return a == b

        assert cache.relation("8A", "8A", compute) is True
        assert cache.relation("8A", "8A", compute) is True
        assert cache.relation("8A", "9A", compute) is False
        assert calls == [("8A", "8A"), ("8A", "9A")]
        assert cache.maxsize == 10


class TestArtworkIndexCache:
    def test_deterministic_index(self):
        cache = ArtworkIndexCache(pool_size=5)
        # ord("a") + ord("b") = 195
        assert cache.index_for("ab") == 195 % 5
        assert cache.index_for("ab") == ArtworkIndexCache(pool_size=5).index_for("ab")
        assert len(cache) == 1

    def test_artwork_for(self):
        cache = ArtworkIndexCache(pool_size=5)
        pool = ["p0", "p1", "p2", "p3", "p4"]
        assert cache.artwork_for("ab", pool) == "p0"
        assert cache.artwork_for("ab", []) is None

    def test_invalid_pool_size(self):
        with pytest.raises(ValueError):
            ArtworkIndexCache(pool_size=0)
