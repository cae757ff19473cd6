"""Property-based tests for the bounded TTL response cache.

**Feature: document-desk, Property 1: Bounded TTL/LRU Cache**
**Validates: expiry, capacity bound, recency-ordered eviction, prefix invalidation**
"""

import threading

from hypothesis import given, settings, strategies as st

from app.core.cache import ResponseCache, make_key


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


key_strategy = st.text(
    min_size=1,
    max_size=12,
    alphabet=st.characters(whitelist_categories=("L", "N")),
)


class TestCacheExpiry:
    """Entries are served until their TTL passes and never after."""

    def test_value_is_returned_before_expiry(self):
        clock = FakeClock()
        cache = ResponseCache(max_entries=10, clock=clock)
        cache.set("admin:assign:stats", {"total": 3}, ttl=120)

        clock.advance(119.9)
        assert cache.get("admin:assign:stats") == {"total": 3}

    def test_expired_entry_is_a_miss_and_is_removed(self):
        clock = FakeClock()
        cache = ResponseCache(max_entries=10, clock=clock)
        cache.set("admin:assign:stats", {"total": 3}, ttl=120)

        clock.advance(120)
        assert cache.get("admin:assign:stats") is None
        assert "admin:assign:stats" not in cache
        assert len(cache) == 0

    def test_set_replaces_value_and_expiry(self):
        clock = FakeClock()
        cache = ResponseCache(max_entries=10, clock=clock)
        cache.set("k", "old", ttl=10)
        clock.advance(8)
        cache.set("k", "new", ttl=10)
        clock.advance(8)

        assert cache.get("k") == "new"

    def test_missing_key_is_a_miss(self):
        cache = ResponseCache(max_entries=10, clock=FakeClock())
        assert cache.get("nothing-here") is None

    @given(ttl=st.floats(min_value=0.001, max_value=10_000), elapsed=st.floats(min_value=0, max_value=20_000))
    @settings(max_examples=100)
    def test_entry_visible_exactly_while_unexpired(self, ttl: float, elapsed: float):
        """For any TTL and elapsed time, a hit happens iff elapsed < ttl."""
        clock = FakeClock()
        cache = ResponseCache(max_entries=5, clock=clock)
        cache.set("k", 1, ttl=ttl)
        expires_at = clock.now + ttl

        clock.advance(elapsed)
        hit = cache.get("k") is not None

        assert hit == (clock.now < expires_at), (
            f"ttl={ttl}, elapsed={elapsed}: expected hit={clock.now < expires_at}"
        )


class TestCacheCapacity:
    """The cache never holds more than max_entries and evicts LRU first."""

    @given(
        capacity=st.integers(min_value=1, max_value=20),
        keys=st.lists(key_strategy, min_size=0, max_size=80),
    )
    @settings(max_examples=100)
    def test_size_never_exceeds_capacity(self, capacity: int, keys: list[str]):
        cache = ResponseCache(max_entries=capacity, clock=FakeClock())
        for key in keys:
            cache.set(key, key, ttl=60)
            assert len(cache) <= capacity, f"Cache grew to {len(cache)} with capacity {capacity}"

    @given(
        capacity=st.integers(min_value=1, max_value=10),
        keys=st.lists(key_strategy, min_size=1, max_size=40, unique=True),
    )
    @settings(max_examples=100)
    def test_most_recent_keys_survive(self, capacity: int, keys: list[str]):
        """With distinct inserts only, the last ``capacity`` keys remain."""
        cache = ResponseCache(max_entries=capacity, clock=FakeClock())
        for key in keys:
            cache.set(key, key, ttl=60)

        assert cache.keys() == keys[-capacity:]

    def test_get_refreshes_recency(self):
        cache = ResponseCache(max_entries=3, clock=FakeClock())
        cache.set("a", 1, ttl=60)
        cache.set("b", 2, ttl=60)
        cache.set("c", 3, ttl=60)

        assert cache.get("a") == 1
        cache.set("d", 4, ttl=60)

        assert "a" in cache
        assert "b" not in cache
        assert cache.keys() == ["c", "a", "d"]

    def test_overwrite_refreshes_recency(self):
        cache = ResponseCache(max_entries=2, clock=FakeClock())
        cache.set("a", 1, ttl=60)
        cache.set("b", 2, ttl=60)
        cache.set("a", 10, ttl=60)
        cache.set("c", 3, ttl=60)

        assert cache.get("a") == 10
        assert cache.get("b") is None

    def test_capacity_of_zero_is_clamped_to_one(self):
        cache = ResponseCache(max_entries=0, clock=FakeClock())
        cache.set("a", 1, ttl=60)
        cache.set("b", 2, ttl=60)

        assert cache.keys() == ["b"]


class TestCacheInvalidation:
    """Prefix deletion removes exactly the matching entries."""

    @given(
        keys=st.lists(key_strategy, min_size=0, max_size=30, unique=True),
        prefix=st.text(min_size=0, max_size=3, alphabet=st.characters(whitelist_categories=("L", "N"))),
    )
    @settings(max_examples=100)
    def test_delete_by_prefix_removes_only_matches(self, keys: list[str], prefix: str):
        cache = ResponseCache(max_entries=100, clock=FakeClock())
        for key in keys:
            cache.set(key, key, ttl=60)

        removed = cache.delete_by_prefix(prefix)

        expected_removed = [k for k in keys if k.startswith(prefix)]
        assert removed == len(expected_removed)
        assert set(cache.keys()) == {k for k in keys if not k.startswith(prefix)}

    def test_namespace_invalidation(self):
        cache = ResponseCache(max_entries=10, clock=FakeClock())
        cache.set("admin:assign:stats", 1, ttl=60)
        cache.set("admin:files:paid:1:50", 2, ttl=60)
        cache.set("admin:files:*:*:*:2:50", 3, ttl=60)
        cache.set("admin:agents:list", 4, ttl=60)

        assert cache.delete_by_prefix("admin:files") == 2
        assert cache.keys() == ["admin:assign:stats", "admin:agents:list"]

    def test_delete_and_clear_tolerate_missing_entries(self):
        cache = ResponseCache(max_entries=10, clock=FakeClock())
        assert cache.delete("missing") is False
        assert cache.delete_by_prefix("admin:") == 0
        cache.clear()
        assert len(cache) == 0


class TestMakeKey:
    """Cache keys are namespaced and skip unset parts."""

    def test_resource_only(self):
        assert make_key("assign") == "admin:assign"

    def test_parts_are_joined(self):
        assert make_key("assign", ["stats"]) == "admin:assign:stats"

    def test_none_parts_are_skipped(self):
        assert make_key("files", ["paid", None, 1, 50]) == "admin:files:paid:1:50"

    def test_booleans_are_lower_cased(self):
        assert make_key("agents", [True, False]) == "admin:agents:true:false"

    @given(parts=st.lists(st.one_of(st.none(), st.integers(), key_strategy), max_size=6))
    @settings(max_examples=100)
    def test_key_always_starts_with_resource_namespace(self, parts: list):
        key = make_key("files", parts)
        assert key.startswith("admin:files")
        assert key.count(":") == 1 + sum(1 for p in parts if p is not None)


class TestCacheThreadSafety:
    """Concurrent writers never push the cache over capacity."""

    def test_concurrent_sets_respect_capacity(self):
        cache = ResponseCache(max_entries=50)
        errors: list[BaseException] = []

        def writer(worker: int) -> None:
            try:
                for i in range(500):
                    cache.set(f"admin:files:{worker}:{i}", i, ttl=60)
                    cache.get(f"admin:files:{worker}:{i // 2}")
                    if i % 100 == 0:
                        cache.delete_by_prefix(f"admin:files:{worker}:")
            except BaseException as e:
                errors.append(e)

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert not errors
        assert len(cache) <= 50
