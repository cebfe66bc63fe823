"""Tests for the TTL read-through cache.

Uses a fake clock so expiry is deterministic.
"""

import threading
from unittest.mock import Mock

import pytest

from src.shell.cache import CacheRead, RefreshResult, TTLCache


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return TTLCache("test", ttl_seconds=60, clock=clock)


class TestRefreshResult:
    """Tests for RefreshResult constructors."""

    def test_ok(self):
        """ok() carries the value."""
        result = RefreshResult.ok("value")
        assert result.success is True
        assert result.value == "value"
        assert result.error_category is None

    def test_failed(self):
        """failed() carries the category and message."""
        result = RefreshResult.failed("timeout", "Timed out")
        assert result.success is False
        assert result.value is None
        assert result.error_category == "timeout"
        assert result.error == "Timed out"


class TestTTLCacheGet:
    """Tests for TTLCache.get()."""

    def test_empty_cache_refreshes(self, cache):
        """An empty slot triggers a refresh and stores the value."""
        refresh = Mock(return_value=RefreshResult.ok("v1"))

        read = cache.get(refresh)

        refresh.assert_called_once()
        assert read == CacheRead(value="v1", ok=True, hit=False)
        assert cache.peek().value == "v1"

    def test_fresh_slot_skips_refresh(self, cache, clock):
        """A fresh slot is served without I/O."""
        cache.get(Mock(return_value=RefreshResult.ok("v1")))
        clock.advance(59)
        refresh = Mock(return_value=RefreshResult.ok("v2"))

        read = cache.get(refresh)

        refresh.assert_not_called()
        assert read.value == "v1"
        assert read.ok is True
        assert read.hit is True
        assert read.age_seconds == 59

    def test_expired_slot_refreshes(self, cache, clock):
        """A slot at or past the TTL is refreshed."""
        cache.get(Mock(return_value=RefreshResult.ok("v1")))
        clock.advance(60)

        read = cache.get(Mock(return_value=RefreshResult.ok("v2")))

        assert read.value == "v2"
        assert read.hit is False
        assert cache.age_seconds() == 0

    def test_failed_refresh_serves_stale(self, cache, clock):
        """A failed refresh keeps serving the previous value."""
        cache.get(Mock(return_value=RefreshResult.ok("v1")))
        clock.advance(90)

        read = cache.get(Mock(return_value=RefreshResult.failed("timeout", "Timed out")))

        assert read.value == "v1"
        assert read.ok is False
        assert read.hit is True
        assert read.age_seconds == 90
        assert read.error_category == "timeout"
        assert cache.peek().value == "v1"

    def test_failed_refresh_without_value(self, cache):
        """A failure on an empty slot serves nothing and stays empty."""
        read = cache.get(Mock(return_value=RefreshResult.failed("transport", "HTTP 500")))

        assert read.value is None
        assert read.ok is False
        assert read.hit is False
        assert read.error_category == "transport"
        assert read.error == "HTTP 500"
        assert cache.peek() is None

    def test_failure_does_not_extend_freshness(self, cache, clock):
        """A failed refresh doesn't reset the stored time."""
        cache.get(Mock(return_value=RefreshResult.ok("v1")))
        clock.advance(61)
        cache.get(Mock(return_value=RefreshResult.failed("timeout", "Timed out")))

        refresh = Mock(return_value=RefreshResult.ok("v2"))
        read = cache.get(refresh)

        refresh.assert_called_once()
        assert read.value == "v2"

    def test_recovery_clears_failure(self, cache, clock):
        """A successful refresh after a failure reports ok again."""
        cache.get(Mock(return_value=RefreshResult.failed("timeout", "Timed out")))
        cache.get(Mock(return_value=RefreshResult.ok("v1")))

        read = cache.get(Mock())

        assert read.ok is True
        assert read.error_category is None

    def test_store_and_is_fresh(self, cache, clock):
        """store() swaps in a value that counts as fresh."""
        assert cache.is_fresh() is False
        cache.store("v1")
        assert cache.is_fresh() is True
        clock.advance(60)
        assert cache.is_fresh() is False


class TestTTLCacheConcurrency:
    """Tests for single-flight refresh."""

    def test_stale_served_while_refreshing(self, cache, clock):
        """Readers get the stale value while another request refreshes."""
        cache.get(Mock(return_value=RefreshResult.ok("v1")))
        clock.advance(61)

        started = threading.Event()
        release = threading.Event()
        reads = []

        def slow_refresh():
            started.set()
            release.wait(5)
            return RefreshResult.ok("v2")

        worker = threading.Thread(target=lambda: reads.append(cache.get(slow_refresh)))
        worker.start()
        assert started.wait(5)

        second_refresh = Mock(return_value=RefreshResult.ok("other"))
        concurrent_read = cache.get(second_refresh)

        release.set()
        worker.join(5)

        second_refresh.assert_not_called()
        assert concurrent_read.value == "v1"
        assert concurrent_read.hit is True
        assert reads[0].value == "v2"
        assert cache.peek().value == "v2"

    def test_empty_slot_waits_for_refresh(self, cache):
        """Readers of an empty slot wait for the in-flight refresh."""
        started = threading.Event()
        release = threading.Event()
        calls = []

        def slow_refresh():
            calls.append(1)
            started.set()
            release.wait(5)
            return RefreshResult.ok("v1")

        reads = []
        first = threading.Thread(target=lambda: reads.append(cache.get(slow_refresh)))
        first.start()
        assert started.wait(5)

        second = threading.Thread(target=lambda: reads.append(cache.get(slow_refresh)))
        second.start()

        release.set()
        first.join(5)
        second.join(5)

        assert len(calls) == 1
        assert [r.value for r in reads] == ["v1", "v1"]
