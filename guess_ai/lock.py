from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import uuid4

import redis

from guess_ai.errors import SessionBusy, StoreUnavailable

logger = logging.getLogger(__name__)

LOCK_KEY_PREFIX = "guess-ai:lock:session:"  # + {session_id}


def lock_key(session_id: str) -> str:
    return f"{LOCK_KEY_PREFIX}{session_id}"


@asynccontextmanager
async def session_lock(
    *,
    r: redis.Redis,
    session_id: str,
    ttl_ms: int = 30_000,
    wait_ms: int = 5_000,
    poll_ms: int = 10,
) -> AsyncIterator[str]:
    """Per-session mutual exclusion across processes.

    Acquire with SET NX PX and a unique token, waiting up to `wait_ms` with
    capped exponential backoff. The wait awaits, so other coroutines on the
    same event loop (including the current holder) keep running. Release only if we still hold the token, so a
    holder whose TTL lapsed never deletes someone else's lock.

    Yields the lock token.
    """

    key = lock_key(session_id)
    token = uuid4().hex
    deadline = time.monotonic() + wait_ms / 1000
    delay = poll_ms / 1000

    while True:
        try:
            acquired = r.set(key, token, nx=True, px=ttl_ms)
        except redis.RedisError as e:
            raise StoreUnavailable("Could not reach the session store to lock the session") from e
        if acquired:
            break
        if time.monotonic() >= deadline:
            raise SessionBusy(f"Session {session_id} is busy, try again")
        # Yield to the loop so the current holder can finish its critical section.
        await asyncio.sleep(delay)
        delay = min(delay * 2, 0.25)

    try:
        yield token
    finally:
        _release(r=r, key=key, token=token)


def _release(*, r: redis.Redis, key: str, token: str) -> None:
    try:
        with r.pipeline() as pipe:
            pipe.watch(key)
            current = pipe.get(key)
            if isinstance(current, bytes):
                current = current.decode()
            if current != token:
                pipe.unwatch()
                logger.warning("lock %s expired before release", key)
                return
            pipe.multi()
            pipe.delete(key)
            pipe.execute()
    except redis.WatchError:
        logger.warning("lock %s changed hands during release", key)
    except redis.RedisError as e:
        # The TTL still frees the key; the caller's result is already decided.
        logger.warning("failed to release lock %s: %s", key, e)
