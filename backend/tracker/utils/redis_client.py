import logging
import os
from typing import Optional

import redis

from ..core.config import settings

logger = logging.getLogger(__name__)

_redis_client: Optional[redis.Redis] = None


class _NullRedis:
    """No-op Redis client used when Redis is disabled or unavailable.

    Counters never accumulate, so rate limits are effectively off.
    """

    def get(self, key: str):
        return None

    def incr(self, key: str, amount: int = 1) -> int:
        return 0

    def expire(self, key: str, seconds: int) -> bool:
        return False

    def ttl(self, key: str) -> int:
        return -2

    def delete(self, *keys: str) -> int:
        return 0

    def ping(self) -> bool:
        return False

    def close(self) -> None:
        return None


def get_redis_client() -> redis.Redis:
    global _redis_client
    if _redis_client is None:
        url = (settings.REDIS_URL or "").strip()
        # Allow disabling via empty/none/disabled/false
        if not url or url.lower() in {"none", "disabled", "false", "0"}:
            _redis_client = _NullRedis()  # type: ignore[assignment]
            return _redis_client
        # Conservative socket timeouts so a slow Redis does not stall the
        # login and signup paths that consult counters.
        _redis_client = redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=float(os.getenv("REDIS_CONNECT_TIMEOUT", "0.5")),
            socket_timeout=float(os.getenv("REDIS_SOCKET_TIMEOUT", "0.5")),
        )
    return _redis_client


def close_redis_client() -> None:
    global _redis_client
    if _redis_client is not None:
        try:
            _redis_client.close()
        except redis.exceptions.RedisError as exc:
            logger.warning("Error closing Redis client: %s", exc)
        _redis_client = None
