"""Tests for the in-memory and Redis replay caches."""

import threading
import time

import pytest

from reqseal import ConfigurationError, InMemoryReplayCache, RedisReplayCache


class TestInMemoryReplayCache:
    def test_has_add(self, clock):
        cache = InMemoryReplayCache(ttl_ms=100, clock=clock, start_sweeper=False)
        assert cache.has("k") is False
        cache.add("k")
        assert cache.has("k") is True

    def test_expiry_is_lazy_on_lookup(self, clock):
        cache = InMemoryReplayCache(ttl_ms=100, clock=clock, start_sweeper=False)
        cache.add("k")
        clock.advance(99)
        assert cache.has("k") is True
        clock.advance(1)
        assert cache.has("k") is False
        assert cache.size() == 0

    def test_check_and_add(self, clock):
        cache = InMemoryReplayCache(ttl_ms=100, clock=clock, start_sweeper=False)
        assert cache.check_and_add("k") is True
        assert cache.check_and_add("k") is False
        clock.advance(100)
        assert cache.check_and_add("k") is True

    def test_check_and_add_admits_one_of_many_threads(self, clock):
        cache = InMemoryReplayCache(ttl_ms=30_000, clock=clock, start_sweeper=False)
        workers = 16
        barrier = threading.Barrier(workers)
        results = []

        def race():
            barrier.wait()
            results.append(cache.check_and_add("k"))

        threads = [threading.Thread(target=race) for _ in range(workers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 1
        assert results.count(False) == workers - 1

    def test_cleanup_removes_only_expired(self, clock):
        cache = InMemoryReplayCache(ttl_ms=100, clock=clock, start_sweeper=False)
        cache.add("old")
        clock.advance(50)
        cache.add("new")
        clock.advance(60)
        assert cache.cleanup() == 1
        assert cache.has("new") is True
        assert cache.size() == 1

    def test_background_sweeper(self):
        cache = InMemoryReplayCache(ttl_ms=20, sweep_interval_ms=10)
        try:
            cache.add("k")
            deadline = time.time() + 2
            while cache.size() and time.time() < deadline:
                time.sleep(0.01)
            assert cache.size() == 0
        finally:
            cache.shutdown()

    def test_sweeper_is_daemon_and_stops(self):
        cache = InMemoryReplayCache(ttl_ms=1_000)
        assert cache._sweeper.daemon is True
        cache.shutdown()
        assert not cache._sweeper.is_alive()

    def test_invalid_ttl(self):
        with pytest.raises(ConfigurationError):
            InMemoryReplayCache(ttl_ms=0, start_sweeper=False)


class FakeRedis:
    """Enough of redis.Redis for SET NX PX and EXISTS."""

    def __init__(self):
        self.data = {}
        self.calls = []

    def set(self, name, value, px=None, nx=False):
        self.calls.append(("set", name, px, nx))
        if nx and name in self.data:
            return None
        self.data[name] = value
        return True

    def exists(self, *names):
        return sum(1 for n in names if n in self.data)


class TestRedisReplayCache:
    def test_has_add_use_prefix_and_ttl(self):
        client = FakeRedis()
        cache = RedisReplayCache(client, ttl_ms=30_000)
        assert cache.has("k") is False
        cache.add("k")
        assert cache.has("k") is True
        assert client.calls == [("set", "reqseal:k", 30_000, False)]

    def test_check_and_add_uses_nx(self):
        client = FakeRedis()
        cache = RedisReplayCache(client, ttl_ms=500, prefix="t:")
        assert cache.check_and_add("k") is True
        assert cache.check_and_add("k") is False
        assert client.calls[-1] == ("set", "t:k", 500, True)

    def test_invalid_ttl(self):
        with pytest.raises(ConfigurationError):
            RedisReplayCache(FakeRedis(), ttl_ms=0)

    def test_from_url_builds_client(self):
        cache = RedisReplayCache.from_url("redis://localhost:6379/0", ttl_ms=1_000)
        assert cache.ttl_ms == 1_000
        assert cache.client is not None
