from __future__ import annotations

import os
from dataclasses import dataclass


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from e


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise RuntimeError(f"{name} must be a number, got {raw!r}") from e


@dataclass(frozen=True, slots=True)
class Settings:
    redis_url: str = "redis://localhost:6379/0"
    redis_timeout_s: float = 2.0

    # Session rules captured onto each new session.
    total_rounds: int = 3
    min_players: int = 2
    max_players: int = 2

    # Safety net for the code-collision retry loop.
    code_attempts: int = 32

    # Per-session lock: how long a holder keeps it, how long a caller waits for it.
    lock_ttl_ms: int = 30_000
    lock_wait_ms: int = 5_000

    # "image" -> OpenAI-compatible image generation, "chat" -> AG2 text artifact.
    content_backend: str = "image"


def settings_from_env() -> Settings:
    d = Settings()
    s = Settings(
        redis_url=os.environ.get("REDIS_URL", d.redis_url),
        redis_timeout_s=_float_env("GUESS_AI_REDIS_TIMEOUT_S", d.redis_timeout_s),
        total_rounds=_int_env("GUESS_AI_TOTAL_ROUNDS", d.total_rounds),
        min_players=_int_env("GUESS_AI_MIN_PLAYERS", d.min_players),
        max_players=_int_env("GUESS_AI_MAX_PLAYERS", d.max_players),
        code_attempts=_int_env("GUESS_AI_CODE_ATTEMPTS", d.code_attempts),
        lock_ttl_ms=_int_env("GUESS_AI_LOCK_TTL_MS", d.lock_ttl_ms),
        lock_wait_ms=_int_env("GUESS_AI_LOCK_WAIT_MS", d.lock_wait_ms),
        content_backend=os.environ.get("GUESS_AI_CONTENT_BACKEND", d.content_backend),
    )
    validate_settings(s)
    return s


def validate_settings(s: Settings) -> None:
    if s.total_rounds < 1:
        raise RuntimeError("GUESS_AI_TOTAL_ROUNDS must be >= 1")
    if s.min_players < 2:
        raise RuntimeError("GUESS_AI_MIN_PLAYERS must be >= 2")
    if s.max_players < s.min_players:
        raise RuntimeError("GUESS_AI_MAX_PLAYERS must be >= GUESS_AI_MIN_PLAYERS")
    if s.redis_timeout_s <= 0:
        raise RuntimeError("GUESS_AI_REDIS_TIMEOUT_S must be > 0")
    if s.code_attempts < 1:
        raise RuntimeError("GUESS_AI_CODE_ATTEMPTS must be >= 1")
    if s.content_backend not in {"image", "chat"}:
        raise RuntimeError("GUESS_AI_CONTENT_BACKEND must be 'image' or 'chat'")
