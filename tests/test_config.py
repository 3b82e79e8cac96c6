from __future__ import annotations

import pytest

from guess_ai.config import Settings, settings_from_env, validate_settings

_ENV = (
    "REDIS_URL",
    "GUESS_AI_REDIS_TIMEOUT_S",
    "GUESS_AI_TOTAL_ROUNDS",
    "GUESS_AI_MIN_PLAYERS",
    "GUESS_AI_MAX_PLAYERS",
    "GUESS_AI_CODE_ATTEMPTS",
    "GUESS_AI_LOCK_TTL_MS",
    "GUESS_AI_LOCK_WAIT_MS",
    "GUESS_AI_CONTENT_BACKEND",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV:
        monkeypatch.delenv(name, raising=False)


def test_defaults_without_env() -> None:
    assert settings_from_env() == Settings()


def test_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REDIS_URL", "redis://cache:6379/2")
    monkeypatch.setenv("GUESS_AI_TOTAL_ROUNDS", "5")
    monkeypatch.setenv("GUESS_AI_MAX_PLAYERS", "6")
    monkeypatch.setenv("GUESS_AI_LOCK_WAIT_MS", " ")
    monkeypatch.setenv("GUESS_AI_CONTENT_BACKEND", "chat")

    s = settings_from_env()

    assert s.redis_url == "redis://cache:6379/2"
    assert s.total_rounds == 5
    assert (s.min_players, s.max_players) == (2, 6)
    assert s.lock_wait_ms == 5_000
    assert s.content_backend == "chat"


def test_non_integer_env_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GUESS_AI_TOTAL_ROUNDS", "three")
    with pytest.raises(RuntimeError, match="GUESS_AI_TOTAL_ROUNDS"):
        settings_from_env()


@pytest.mark.parametrize(
    "settings",
    [
        Settings(total_rounds=0),
        Settings(min_players=1),
        Settings(min_players=3, max_players=2),
        Settings(code_attempts=0),
        Settings(redis_timeout_s=0),
        Settings(content_backend="video"),
    ],
)
def test_validate_settings_rejects_bad_values(settings: Settings) -> None:
    with pytest.raises(RuntimeError):
        validate_settings(settings)
