from __future__ import annotations

import redis

from guess_ai.config import Settings


def create_redis(settings: Settings) -> redis.Redis:
    """Client for the session store.

    Timeouts are bounded so an unreachable store surfaces as StoreUnavailable
    instead of hanging a request while it holds a session lock.
    """

    # decode_responses=True => strings in/out instead of bytes
    return redis.Redis.from_url(
        settings.redis_url,
        decode_responses=True,
        socket_connect_timeout=settings.redis_timeout_s,
        socket_timeout=settings.redis_timeout_s,
    )
