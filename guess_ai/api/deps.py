from __future__ import annotations

from collections.abc import Generator
from functools import lru_cache

import redis
from fastapi import Depends

from guess_ai.actions import Collaborators
from guess_ai.config import Settings, settings_from_env
from guess_ai.content.base import ContentGenerator, EmbeddingClient
from guess_ai.content.factory import create_content_generator, create_embedding_client
from guess_ai.infra.redis_client import create_redis
from guess_ai.session_store import RedisSessionStore
from guess_ai.users import RedisUserDirectory


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return settings_from_env()


def get_redis(settings: Settings = Depends(get_settings)) -> Generator[redis.Redis, None, None]:
    client = create_redis(settings)
    try:
        yield client
    finally:
        client.close()


def get_store(
    r: redis.Redis = Depends(get_redis),
    settings: Settings = Depends(get_settings),
) -> RedisSessionStore:
    return RedisSessionStore(r, lock_ttl_ms=settings.lock_ttl_ms, lock_wait_ms=settings.lock_wait_ms)


def get_users(r: redis.Redis = Depends(get_redis)) -> RedisUserDirectory:
    return RedisUserDirectory(r)


def get_embeddings() -> EmbeddingClient:
    return create_embedding_client()


def get_content_generator(settings: Settings = Depends(get_settings)) -> ContentGenerator:
    return create_content_generator(settings)


def get_collaborators(
    users: RedisUserDirectory = Depends(get_users),
    content: ContentGenerator = Depends(get_content_generator),
    embeddings: EmbeddingClient = Depends(get_embeddings),
) -> Collaborators:
    return Collaborators(identity=users, content=content, embeddings=embeddings)
