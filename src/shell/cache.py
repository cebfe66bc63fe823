"""TTL Read-Through Cache - Imperative Shell.

One in-memory slot per logical endpoint. A slot is served as-is while
fresh; once the TTL has elapsed the next request runs a refresh. A failed
refresh never clears the slot: the previous value keeps being served,
flagged as not ok.

Two locks per slot:
- _lock guards the slot reference and is held only for the swap
- _refresh_lock makes refreshes single-flight; the network call runs
  under it, never under _lock
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar


logger = logging.getLogger(__name__)


# Validity window for cached values (seconds)
DEFAULT_TTL_SECONDS = 60.0

T = TypeVar("T")


@dataclass(frozen=True)
class CacheSlot(Generic[T]):
    """A cached value and when it was stored.

    Attributes:
        value: Fully built value
        cached_at: Clock reading at store time
    """
    value: T
    cached_at: float


@dataclass(frozen=True)
class RefreshResult(Generic[T]):
    """Outcome of one refresh attempt.

    Attributes:
        success: Whether a new value was produced
        value: The new value (success only)
        error_category: Failure category (failure only)
        error: Failure description (failure only)
    """
    success: bool
    value: T | None = None
    error_category: str | None = None
    error: str | None = None

    @classmethod
    def ok(cls, value: T) -> "RefreshResult[T]":
        return cls(success=True, value=value)

    @classmethod
    def failed(cls, category: str, error: str) -> "RefreshResult[T]":
        return cls(success=False, error_category=category, error=error)


@dataclass(frozen=True)
class CacheRead(Generic[T]):
    """What a request gets back from the cache.

    Attributes:
        value: Served value (None if the cache has never been filled)
        ok: Outcome of the most recent attempt (True on a fresh hit)
        hit: True if the value was not produced by this request
        age_seconds: Age of the served value in whole seconds
        error_category: Failure category of the attempt, if any
        error: Failure description of the attempt, if any
    """
    value: T | None
    ok: bool
    hit: bool
    age_seconds: int = 0
    error_category: str | None = None
    error: str | None = None


class TTLCache(Generic[T]):
    """Single-slot read-through cache with a fixed TTL.

    Reads never block on network I/O unless the slot is empty and another
    request is already refreshing it.
    """

    def __init__(
        self,
        name: str,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize cache.

        Args:
            name: Slot name used in logs
            ttl_seconds: How long a stored value counts as fresh
            clock: Monotonic clock
        """
        self.name = name
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._slot: CacheSlot[T] | None = None
        self._last_failure: RefreshResult[T] | None = None
        self._lock = threading.Lock()
        self._refresh_lock = threading.Lock()

    def peek(self) -> CacheSlot[T] | None:
        """Current slot, without refreshing."""
        with self._lock:
            return self._slot

    def _age(self, slot: CacheSlot[T]) -> float:
        return max(0.0, self._clock() - slot.cached_at)

    def _is_fresh(self, slot: CacheSlot[T] | None) -> bool:
        return slot is not None and self._age(slot) < self.ttl_seconds

    def is_fresh(self) -> bool:
        return self._is_fresh(self.peek())

    def age_seconds(self) -> int:
        """Age of the current value in whole seconds (0 if empty)."""
        slot = self.peek()
        if slot is None:
            return 0
        return int(self._age(slot))

    def store(self, value: T) -> CacheSlot[T]:
        """Swap in a fully built value."""
        slot = CacheSlot(value=value, cached_at=self._clock())
        with self._lock:
            self._slot = slot
            self._last_failure = None
        return slot

    def _served(self, slot: CacheSlot[T]) -> CacheRead[T]:
        failure = self._last_failure
        if failure is None:
            return CacheRead(
                value=slot.value,
                ok=True,
                hit=True,
                age_seconds=int(self._age(slot)),
            )
        return CacheRead(
            value=slot.value,
            ok=False,
            hit=True,
            age_seconds=int(self._age(slot)),
            error_category=failure.error_category,
            error=failure.error,
        )

    def _failed(self, failure: RefreshResult[T] | None) -> CacheRead[T]:
        slot = self.peek()
        category = failure.error_category if failure else "unknown"
        error = failure.error if failure else "No cached value available"
        if slot is None:
            return CacheRead(
                value=None,
                ok=False,
                hit=False,
                error_category=category,
                error=error,
            )
        return CacheRead(
            value=slot.value,
            ok=False,
            hit=True,
            age_seconds=int(self._age(slot)),
            error_category=category,
            error=error,
        )

    def get(self, refresh: Callable[[], RefreshResult[T]]) -> CacheRead[T]:
        """Read the slot, refreshing it first if empty or expired.

        The refresh callable runs at most once per call.

        Args:
            refresh: Builds a new value; must not raise for upstream errors

        Returns:
            CacheRead describing the served value and this attempt
        """
        slot = self.peek()
        if self._is_fresh(slot):
            return CacheRead(
                value=slot.value,
                ok=True,
                hit=True,
                age_seconds=int(self._age(slot)),
            )

        if not self._refresh_lock.acquire(blocking=False):
            if slot is not None:
                # Another request is refreshing; serve the stale value
                return self._served(slot)
            # Nothing to serve yet; wait for the in-flight refresh
            with self._refresh_lock:
                slot = self.peek()
                if slot is None:
                    return self._failed(self._last_failure)
                return self._served(slot)

        try:
            slot = self.peek()
            if self._is_fresh(slot):
                return self._served(slot)

            result = refresh()

            if result.success:
                self.store(result.value)
                logger.info("Cache '%s' refreshed", self.name)
                return CacheRead(value=result.value, ok=True, hit=False)

            with self._lock:
                self._last_failure = result

            if slot is not None:
                logger.warning(
                    "Cache '%s' refresh failed (%s), serving value from %ds ago",
                    self.name,
                    result.error_category,
                    int(self._age(slot)),
                )
            else:
                logger.warning(
                    "Cache '%s' refresh failed (%s), no cached value",
                    self.name,
                    result.error_category,
                )
            return self._failed(result)
        finally:
            self._refresh_lock.release()
