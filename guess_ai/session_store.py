from __future__ import annotations

import logging
from contextlib import AbstractAsyncContextManager
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

import redis

from guess_ai.api.models import SessionState
from guess_ai.codes import normalize_code
from guess_ai.errors import SessionConflict, SessionNotFound, StoreUnavailable
from guess_ai.lock import session_lock

logger = logging.getLogger(__name__)

SESSIONS_SET_KEY = "guess-ai:sessions"
SESSION_KEY_PREFIX = "guess-ai:session:"  # + {uuid}
CODE_KEY_PREFIX = "guess-ai:code:"  # + {CODE}


def _now() -> datetime:
    return datetime.now(tz=UTC)


def _session_key(session_id: UUID) -> str:
    return f"{SESSION_KEY_PREFIX}{session_id}"


def _code_key(code: str) -> str:
    return f"{CODE_KEY_PREFIX}{normalize_code(code)}"


class SessionStore(Protocol):
    """Durable session storage used by the service layer.

    `save` must only be called on a state obtained from `load` inside the same
    `locked()` block.
    """

    def load(self, session_id: UUID) -> SessionState: ...

    def save(self, state: SessionState) -> SessionState: ...

    def insert(self, state: SessionState) -> SessionState: ...

    def find_id_by_code(self, code: str) -> UUID: ...

    def code_exists(self, code: str) -> bool: ...

    def reserve_code(self, code: str, session_id: UUID) -> bool: ...

    def release_code(self, code: str, session_id: UUID) -> None: ...

    def list_sessions(self) -> list[SessionState]: ...

    def locked(self, session_id: UUID) -> AbstractAsyncContextManager[str]: ...


class RedisSessionStore:
    """Sessions as JSON blobs in Redis, with a code -> id index."""

    def __init__(self, r: redis.Redis, *, lock_ttl_ms: int = 30_000, lock_wait_ms: int = 5_000) -> None:
        self.r = r
        self.lock_ttl_ms = lock_ttl_ms
        self.lock_wait_ms = lock_wait_ms

    def get(self, session_id: UUID) -> SessionState | None:
        try:
            raw = self.r.get(_session_key(session_id))
        except redis.RedisError as e:
            raise StoreUnavailable("Session store unavailable") from e
        if not raw:
            return None
        return SessionState.model_validate_json(raw)

    def load(self, session_id: UUID) -> SessionState:
        state = self.get(session_id)
        if state is None:
            raise SessionNotFound(f"Session {session_id} not found")
        return state

    def insert(self, state: SessionState) -> SessionState:
        saved = state.model_copy(update={"version": 1, "last_updated_at": _now()})
        try:
            created = self.r.set(_session_key(state.session_id), saved.model_dump_json(), nx=True)
            if not created:
                raise SessionConflict(f"Session {state.session_id} already exists")
            self.r.sadd(SESSIONS_SET_KEY, str(state.session_id))
        except redis.RedisError as e:
            raise StoreUnavailable("Session store unavailable") from e
        return saved

    def save(self, state: SessionState) -> SessionState:
        """Write `state` if nobody else saved since it was loaded.

        Returns the stored copy with its version bumped.
        """

        key = _session_key(state.session_id)
        try:
            with self.r.pipeline() as pipe:
                pipe.watch(key)
                raw = pipe.get(key)
                if not raw:
                    raise SessionNotFound(f"Session {state.session_id} not found")
                stored = SessionState.model_validate_json(raw)
                if stored.version != state.version:
                    raise SessionConflict(
                        f"Session {state.session_id} changed (stored v{stored.version}, saving v{state.version})"
                    )
                saved = state.model_copy(update={"version": state.version + 1, "last_updated_at": _now()})
                pipe.multi()
                pipe.set(key, saved.model_dump_json())
                pipe.execute()
        except redis.WatchError as e:
            raise SessionConflict(f"Session {state.session_id} changed during save") from e
        except redis.RedisError as e:
            raise StoreUnavailable("Session store unavailable") from e
        return saved

    def find_id_by_code(self, code: str) -> UUID:
        try:
            raw = self.r.get(_code_key(code))
        except redis.RedisError as e:
            raise StoreUnavailable("Session store unavailable") from e
        if not raw:
            raise SessionNotFound(f"No session with code {normalize_code(code)}")
        return UUID(raw if isinstance(raw, str) else raw.decode())

    def code_exists(self, code: str) -> bool:
        try:
            return bool(self.r.exists(_code_key(code)))
        except redis.RedisError as e:
            raise StoreUnavailable("Session store unavailable") from e

    def reserve_code(self, code: str, session_id: UUID) -> bool:
        """Atomically bind `code` to `session_id`; False if the code is taken."""

        try:
            return bool(self.r.set(_code_key(code), str(session_id), nx=True))
        except redis.RedisError as e:
            raise StoreUnavailable("Session store unavailable") from e

    def release_code(self, code: str, session_id: UUID) -> None:
        """Drop the `code` binding, but only while it still points at `session_id`."""

        key = _code_key(code)
        try:
            with self.r.pipeline() as pipe:
                pipe.watch(key)
                current = pipe.get(key)
                if isinstance(current, bytes):
                    current = current.decode()
                if current != str(session_id):
                    pipe.unwatch()
                    return
                pipe.multi()
                pipe.delete(key)
                pipe.execute()
        except redis.WatchError:
            logger.warning("code %s rebound during release", normalize_code(code))
            return
        except redis.RedisError as e:
            raise StoreUnavailable("Session store unavailable") from e
        logger.info("released code %s of unsaved session %s", normalize_code(code), session_id)

    def list_sessions(self) -> list[SessionState]:
        try:
            ids = sorted(self.r.smembers(SESSIONS_SET_KEY))
        except redis.RedisError as e:
            raise StoreUnavailable("Session store unavailable") from e
        out: list[SessionState] = []
        for sid in ids:
            try:
                session_id = UUID(sid)
            except ValueError:
                logger.warning("ignoring malformed session id in index: %r", sid)
                continue
            state = self.get(session_id)
            if state is not None:
                out.append(state)
        out.sort(key=lambda s: s.created_at, reverse=True)
        return out

    def locked(self, session_id: UUID) -> AbstractAsyncContextManager[str]:
        return session_lock(
            r=self.r,
            session_id=str(session_id),
            ttl_ms=self.lock_ttl_ms,
            wait_ms=self.lock_wait_ms,
        )
