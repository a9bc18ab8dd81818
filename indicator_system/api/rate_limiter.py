"""Per-client token bucket rate limiting for the extraction endpoints."""

import math
import threading
import time
from typing import Callable, Optional

from fastapi import HTTPException, Request

from indicator_system.config.logging import get_logger

logger = get_logger("api.rate_limiter")


class TokenBucket:
    """
    Request budget of one client.

    Holds up to ``capacity`` requests and regains ``refill_rate`` requests
    per second, continuously, so a client that waits out part of the window
    gets part of its budget back.
    """

    def __init__(
        self,
        capacity: int,
        refill_rate: float,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Args:
            capacity: Requests available to a fresh client
            refill_rate: Requests regained per second
            clock: Monotonic seconds source (defaults to time.monotonic)
        """
        self.capacity = capacity
        self.refill_rate = refill_rate
        self._clock = clock or time.monotonic
        self._available = float(capacity)
        self._updated_at = self._clock()
        self._lock = threading.Lock()

    def _top_up(self) -> float:
        now = self._clock()
        regained = (now - self._updated_at) * self.refill_rate
        self._available = min(float(self.capacity), self._available + regained)
        self._updated_at = now
        return self._available

    def acquire(self, tokens: int = 1) -> bool:
        """Spend ``tokens`` requests if the budget allows it."""
        with self._lock:
            if self._top_up() < tokens:
                return False
            self._available -= tokens
            return True

    def is_full(self) -> bool:
        """True once the whole budget has been regained."""
        with self._lock:
            return self._top_up() >= self.capacity

    def seconds_until_available(self, tokens: int = 1) -> int:
        """Whole seconds until ``tokens`` can be acquired."""
        with self._lock:
            missing = tokens - self._top_up()
            if missing <= 0:
                return 0
            return math.ceil(round(missing / self.refill_rate, 6))


class ClientRateLimiter:
    """
    One token bucket per client IP.

    Each client may spend ``max_requests`` per ``window_ms``; tokens refill
    continuously, so a throttled client regains one request every
    ``window_ms / max_requests``. Once per window, clients whose bucket is
    full again are dropped, so the table only holds recently seen clients.

    Attributes:
        max_requests: Bucket capacity per client
        window_ms: Time to refill an empty bucket
    """

    def __init__(
        self,
        max_requests: int = 60,
        window_ms: int = 3_600_000,
        clock: Optional[Callable[[], float]] = None,
    ):
        if max_requests < 1 or window_ms <= 0:
            raise ValueError("max_requests and window_ms must be positive")

        self.max_requests = max_requests
        self.window_ms = window_ms
        self._refill_rate = max_requests / (window_ms / 1000.0)
        self._clock = clock or time.monotonic
        self._buckets: dict[str, TokenBucket] = {}
        self._lock = threading.Lock()
        self._last_sweep = self._clock()

        logger.info(
            "ClientRateLimiter initialized",
            max_requests=max_requests,
            window_ms=window_ms,
        )

    @property
    def tracked_clients(self) -> int:
        return len(self._buckets)

    def _sweep(self, now: float) -> None:
        """Forget clients whose bucket is full again; a fresh bucket is identical."""
        idle = [client_id for client_id, bucket in self._buckets.items() if bucket.is_full()]
        for client_id in idle:
            del self._buckets[client_id]
        self._last_sweep = now
        if idle:
            logger.debug(
                "Evicted idle rate limit buckets",
                evicted=len(idle),
                remaining=len(self._buckets),
            )

    def _bucket(self, client_id: str) -> TokenBucket:
        with self._lock:
            now = self._clock()
            if (now - self._last_sweep) * 1000 >= self.window_ms:
                self._sweep(now)

            bucket = self._buckets.get(client_id)
            if bucket is None:
                bucket = TokenBucket(self.max_requests, self._refill_rate, self._clock)
                self._buckets[client_id] = bucket
            return bucket

    def check(self, client_id: str) -> Optional[int]:
        """
        Consume one request for the client.

        Returns:
            None if the request may proceed, else seconds until it may retry
        """
        bucket = self._bucket(client_id)
        if bucket.acquire():
            return None

        retry_after = bucket.seconds_until_available()
        logger.warning("Rate limit exceeded", ip=client_id, retry_after=retry_after)
        return retry_after


def enforce_rate_limit(request: Request) -> None:
    """
    FastAPI dependency applying the application's ClientRateLimiter.

    Raises:
        HTTPException: 429 with ``retryAfter`` seconds once the client's
            bucket is empty
    """
    limiter: ClientRateLimiter = request.app.state.rate_limiter
    client_id = request.client.host if request.client else "unknown"

    retry_after = limiter.check(client_id)
    if retry_after is not None:
        raise HTTPException(
            status_code=429,
            detail={
                "error": "Too many requests, please try again later",
                "retryAfter": retry_after,
            },
            headers={"Retry-After": str(retry_after)},
        )
