"""Fixed-window attempt counters stored in Redis.

Each key lives for one window; Redis expiry keeps the store bounded no matter
how many distinct callers show up.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import redis

logger = logging.getLogger(__name__)


@dataclass
class RateLimitResult:
    allowed: bool
    attempts: int
    retry_after: Optional[int] = None


class RateLimiter:
    def __init__(self, client, max_attempts: int, window: int, prefix: str) -> None:
        self.client = client
        self.max_attempts = max_attempts
        self.window = window
        self.prefix = prefix

    def _key(self, identity: str) -> str:
        return f"{self.prefix}:{identity}"

    def _retry_after(self, key: str) -> int:
        ttl = self.client.ttl(key)
        return int(ttl) if ttl and int(ttl) > 0 else self.window

    def is_blocked(self, identity: str) -> Optional[int]:
        """Return seconds until retry when the identity is over its limit."""
        key = self._key(identity)
        try:
            attempts = int(self.client.get(key) or 0)
            if attempts >= self.max_attempts:
                return self._retry_after(key)
        except redis.exceptions.RedisError as exc:
            logger.warning("Redis unavailable for %s limiter: %s", self.prefix, exc)
        return None

    def record(self, identity: str) -> int:
        key = self._key(identity)
        try:
            attempts = int(self.client.incr(key))
            if attempts == 1:
                self.client.expire(key, self.window)
            return attempts
        except redis.exceptions.RedisError as exc:
            logger.warning("Could not update %s counter: %s", self.prefix, exc)
            return 0

    def hit(self, identity: str) -> RateLimitResult:
        """Count one attempt and report whether it is within the limit."""
        key = self._key(identity)
        attempts = self.record(identity)
        if attempts > self.max_attempts:
            try:
                retry_after = self._retry_after(key)
            except redis.exceptions.RedisError:
                retry_after = self.window
            logger.info("Rate limit hit for %s (%d attempts)", key, attempts)
            return RateLimitResult(False, attempts, retry_after)
        return RateLimitResult(True, attempts)

    def reset(self, identity: str) -> None:
        try:
            self.client.delete(self._key(identity))
        except redis.exceptions.RedisError as exc:
            logger.warning("Could not reset %s counter: %s", self.prefix, exc)
