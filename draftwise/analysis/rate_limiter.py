"""Per-user sliding-window rate limiting for analysis requests.

Each user has a list of request timestamps pruned to the trailing window on
every check. Over-limit requests are rejected, never queued. Buckets live in a
TTLCache so idle users age out without a sweep.

The cache is bounded by RATE_LIMIT_MAX_USERS. Past that, the least recently
active user is evicted and their window starts over (the limiter fails open for
that user). Evictions are counted as ``rate_limit.evicted``.
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable
from threading import Lock

from cachetools import TTLCache

from draftwise.config import RATE_LIMIT_MAX_USERS, RATE_LIMIT_RPH, RATE_LIMIT_WINDOW_SECONDS
from draftwise.errors import RateLimited
from draftwise.observability.logging import get_logger
from draftwise.observability.telemetry import counter, log_event
from draftwise.suggestions.models import RateLimitRecord

logger = get_logger(__name__)


class _BucketCache(TTLCache):
    def popitem(self):
        user_id, bucket = super().popitem()
        counter("rate_limit.evicted")
        logger.warning("Rate limit bucket for %s evicted (%d live timestamps)", user_id, len(bucket))
        return user_id, bucket


class RateLimiter:
    """
    Sliding-window limiter keyed by user id (default 1000 requests/hour).

    State is per process. For multi-instance deployments the buckets would
    need to move to shared storage.
    """

    def __init__(
        self,
        limit: int = RATE_LIMIT_RPH,
        window_seconds: int = RATE_LIMIT_WINDOW_SECONDS,
        max_users: int = RATE_LIMIT_MAX_USERS,
        now_fn: Callable[[], float] = time.time,
    ) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self._now = now_fn
        self._lock = Lock()
        # Entries outlive the window so an active user's history is never dropped early
        self._buckets: TTLCache[str, list[float]] = _BucketCache(
            maxsize=max_users, ttl=window_seconds * 2, timer=now_fn
        )

    def _prune(self, user_id: str, now: float) -> list[float]:
        bucket = [ts for ts in self._buckets.get(user_id, []) if now - ts < self.window_seconds]
        self._buckets[user_id] = bucket
        return bucket

    def check(self, user_id: str) -> None:
        """
        Record a request for ``user_id``.

        Raises:
            RateLimited: if the user already made ``limit`` requests in the window
        """
        with self._lock:
            now = self._now()
            bucket = self._prune(user_id, now)

            if len(bucket) >= self.limit:
                retry_after = max(1, math.ceil(self.window_seconds - (now - bucket[0])))
                counter("rate_limit.rejected")
                log_event(
                    "api.rate_limit.request_exceeded",
                    user_id=user_id,
                    count=len(bucket),
                    limit=self.limit,
                )
                raise RateLimited(
                    f"Rate limit exceeded. Maximum {self.limit} requests per "
                    f"{self.window_seconds // 60} minutes.",
                    retry_after=retry_after,
                )

            bucket.append(now)

    def snapshot(self, user_id: str) -> RateLimitRecord:
        with self._lock:
            bucket = self._prune(user_id, self._now())
            return RateLimitRecord(user_id=user_id, requests=list(bucket))

    def remaining(self, user_id: str) -> int:
        return max(0, self.limit - len(self.snapshot(user_id).requests))
