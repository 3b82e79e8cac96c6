from __future__ import annotations

import os
import string
from collections.abc import Generator, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import fakeredis
import pytest


@pytest.fixture(scope="session", autouse=True)
def _load_dotenv_for_tests() -> None:
    """Load repo .env for local runs.

    This makes OPENAI_BASE_URL / OPENAI_MODEL available to the opt-in
    integration tests without needing to export them in your shell.

    In CI, we *don't* auto-load `.env` by default, so integration tests that require
    a live endpoint stay skipped unless explicitly opted-in.
    """

    # Opt-in locally with: GUESS_AI_LOAD_DOTENV_FOR_TESTS=1
    if os.environ.get("CI") and os.environ.get("GUESS_AI_LOAD_DOTENV_FOR_TESTS") != "1":
        return

    env_path = Path(__file__).resolve().parents[1] / ".env"
    if env_path.exists():
        from dotenv import load_dotenv

        load_dotenv(dotenv_path=env_path, override=False)


def letter_vector(text: str) -> list[float]:
    """Bag-of-letters embedding: deterministic, and "" maps to the zero vector."""

    lowered = text.lower()
    return [float(lowered.count(ch)) for ch in string.ascii_lowercase]


@dataclass
class FakeContentGenerator:
    kind: str = "image"
    calls: list[str] = field(default_factory=list)
    fail: bool = False

    async def generate_artifact(self, prompt: str) -> str:
        from guess_ai.errors import ContentUnavailable

        if self.fail:
            raise ContentUnavailable("generator offline")
        self.calls.append(prompt)
        return f"https://img.test/{len(self.calls)}.png"


@dataclass
class FakeEmbeddingClient:
    calls: list[list[str]] = field(default_factory=list)

    async def embed(self, texts: Sequence[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [letter_vector(t) for t in texts]


@pytest.fixture()
def r() -> fakeredis.FakeRedis:
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture()
def store(r: fakeredis.FakeRedis):
    from guess_ai.session_store import RedisSessionStore

    return RedisSessionStore(r, lock_ttl_ms=5_000, lock_wait_ms=2_000)


@pytest.fixture()
def settings():
    from guess_ai.config import Settings

    return Settings()


@pytest.fixture()
def content() -> FakeContentGenerator:
    return FakeContentGenerator()


@pytest.fixture()
def embeddings() -> FakeEmbeddingClient:
    return FakeEmbeddingClient()


@pytest.fixture()
def collaborators(r: fakeredis.FakeRedis, content: FakeContentGenerator, embeddings: FakeEmbeddingClient):
    from guess_ai.actions import Collaborators
    from guess_ai.users import RedisUserDirectory

    return Collaborators(identity=RedisUserDirectory(r), content=content, embeddings=embeddings)


@pytest.fixture()
def client_and_redis(
    r: fakeredis.FakeRedis,
    settings,
    content: FakeContentGenerator,
    embeddings: FakeEmbeddingClient,
):
    """FastAPI TestClient wired to fakeredis and the fake collaborators."""

    from fastapi.testclient import TestClient

    from guess_ai.api.deps import get_content_generator, get_embeddings, get_redis, get_settings
    from guess_ai.main import app

    def _override() -> Generator[fakeredis.FakeRedis, None, None]:
        yield r

    app.dependency_overrides[get_redis] = _override
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_content_generator] = lambda: content
    app.dependency_overrides[get_embeddings] = lambda: embeddings
    with TestClient(app) as c:
        yield c, r
    app.dependency_overrides.clear()
