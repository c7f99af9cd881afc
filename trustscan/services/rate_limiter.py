"""Sliding-window rate limits for scans and scam reports.

Each kind keeps a list of epoch-millisecond timestamps. Only timestamps
inside the window count. ``can_perform`` filters without writing;
``record`` filters, appends and persists, so pruning becomes durable on the
next ``record``.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from trustscan.services.storage import KeyValueStore, decode_json, encode_json

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimit:
    """Ceiling of ``max_count`` actions per ``window_ms``."""

    key: str
    max_count: int
    window_ms: int


HOUR_MS = 60 * 60 * 1000
DAY_MS = 24 * HOUR_MS

LIMITS: dict[str, RateLimit] = {
    "scan": RateLimit(key="rate_limit_scans_v1", max_count=20, window_ms=HOUR_MS),
    "report": RateLimit(key="rate_limit_reports_v1", max_count=5, window_ms=DAY_MS),
}


class RateLimitExceededError(Exception):
    """The action's sliding-window ceiling has been reached."""

    def __init__(self, kind: str, retry_after_ms: int):
        super().__init__(f"Rate limit reached for {kind}")
        self.kind = kind
        self.retry_after_ms = retry_after_ms


def _epoch_ms() -> int:
    return int(time.time() * 1000)


class RateLimiter:
    """Rate limiter backed by the key-value store."""

    def __init__(
        self,
        kv: KeyValueStore,
        limits: dict[str, RateLimit] | None = None,
        clock: Callable[[], int] = _epoch_ms,
    ):
        """Initialize the limiter.

        Args:
            kv: Store holding the timestamp lists.
            limits: Limit per action kind (defaults to scan and report).
            clock: Returns the current time in epoch milliseconds.
        """
        self.kv = kv
        self.limits = limits or LIMITS
        self.clock = clock

    def _limit(self, kind: str) -> RateLimit:
        try:
            return self.limits[kind]
        except KeyError:
            raise ValueError(f"Unknown rate limit kind: {kind}") from None

    @staticmethod
    def _active(raw: str | None, cutoff: int) -> list[int]:
        stamps = decode_json(raw, default=[])
        if not isinstance(stamps, list):
            return []
        return [int(stamp) for stamp in stamps if isinstance(stamp, (int, float)) and stamp > cutoff]

    async def _load_active(self, limit: RateLimit) -> list[int]:
        cutoff = self.clock() - limit.window_ms
        try:
            raw = await self.kv.get(limit.key)
        except Exception as e:
            logger.warning(f"Failed to read rate limit state {limit.key}: {e}")
            return []
        return self._active(raw, cutoff)

    async def can_perform(self, kind: str) -> bool:
        limit = self._limit(kind)
        return len(await self._load_active(limit)) < limit.max_count

    async def remaining(self, kind: str) -> int:
        limit = self._limit(kind)
        return max(0, limit.max_count - len(await self._load_active(limit)))

    def _wait_ms(self, active: list[int], limit: RateLimit) -> int:
        if len(active) < limit.max_count:
            return 0
        # The window reopens once enough timestamps expire to leave max_count - 1.
        oldest_blocking = sorted(active)[len(active) - limit.max_count]
        return max(0, oldest_blocking + limit.window_ms - self.clock())

    async def retry_after_ms(self, kind: str) -> int:
        """Milliseconds until one more action is allowed (0 if allowed now)."""
        limit = self._limit(kind)
        return self._wait_ms(await self._load_active(limit), limit)

    async def record(self, kind: str) -> None:
        limit = self._limit(kind)
        now = self.clock()
        cutoff = now - limit.window_ms

        def mutator(raw: str | None) -> str:
            return encode_json([*self._active(raw, cutoff), now])

        await self.kv.update(limit.key, mutator)

    async def check_and_record(self, kind: str) -> None:
        """Record an action, or raise if the limit is already reached.

        The count and the append happen in one atomic update, so concurrent
        callers cannot overrun the ceiling.

        Raises:
            RateLimitExceededError: The window is full.
        """
        limit = self._limit(kind)
        now = self.clock()
        cutoff = now - limit.window_ms
        blocked: list[int] = []

        def mutator(raw: str | None) -> str:
            active = self._active(raw, cutoff)
            # Reset on every attempt; the backend may call this more than once.
            blocked.clear()
            if len(active) >= limit.max_count:
                blocked.extend(active)
                return encode_json(active)
            return encode_json([*active, now])

        await self.kv.update(limit.key, mutator)
        if blocked:
            raise RateLimitExceededError(kind, self._wait_ms(blocked, limit))
