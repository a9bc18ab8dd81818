"""Short-lived, single-slot cache for the last combined extraction.

The system reports exactly one logical indicator set, so there is no key
space: ``set`` overwrites the slot and ``get`` serves it while it is younger
than the TTL. Expiry is checked lazily on read; an expired slot is cleared
by the read that discovers it.

Usage:
    from indicator_system.data_management.result_cache import ResultCache

    cache = ResultCache(ttl_ms=300_000)
    cache.set(result)
    cached = cache.get()  # None once older than the TTL
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from indicator_system.utils.logging import get_structured_logger


@dataclass(frozen=True)
class CacheEntry:
    """Stored payload and the epoch millisecond it was stored at."""

    payload: Any
    stored_at_epoch_ms: float


class ResultCache:
    """Time-boxed memoization of one payload.

    Attributes:
        ttl_ms: Maximum age in milliseconds at which the payload is served.
    """

    def __init__(
        self,
        ttl_ms: int = 300_000,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        """Initialize ResultCache.

        Args:
            ttl_ms: Entry lifetime in milliseconds.
            clock: Returns the current time in seconds. Defaults to time.time.

        Raises:
            ValueError: If ttl_ms is not positive.
        """
        if ttl_ms <= 0:
            raise ValueError(f"ttl_ms must be positive, got {ttl_ms}")
        self.ttl_ms = ttl_ms
        self._clock = clock or time.time
        self._entry: Optional[CacheEntry] = None
        self._logger = get_structured_logger("ResultCache")

    def _now_ms(self) -> float:
        return self._clock() * 1000.0

    def set(self, payload: Any) -> None:
        """Store payload with the current timestamp, replacing any prior entry."""
        self._entry = CacheEntry(payload=payload, stored_at_epoch_ms=self._now_ms())
        self._logger.debug("cache_set", ttl_ms=self.ttl_ms)

    def get(self) -> Optional[Any]:
        """Return the payload if it is not older than the TTL, else None.

        An expired entry is purged so it can never be served later.
        """
        if self._entry is None:
            return None

        age = self._now_ms() - self._entry.stored_at_epoch_ms
        if age > self.ttl_ms:
            self._logger.debug("cache_expired", age_ms=age, ttl_ms=self.ttl_ms)
            self._entry = None
            return None

        return self._entry.payload

    def is_valid(self) -> bool:
        return self.get() is not None

    def age(self) -> Optional[int]:
        """Milliseconds since the entry was stored, or None when empty."""
        if self._entry is None:
            return None
        return int(self._now_ms() - self._entry.stored_at_epoch_ms)

    def clear(self) -> None:
        self._entry = None
