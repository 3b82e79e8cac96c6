from __future__ import annotations

from typing import cast

from guess_ai.config import Settings
from guess_ai.content.ag2_backend import Ag2ChatGenerator
from guess_ai.content.base import ContentGenerator, EmbeddingClient
from guess_ai.content.openai_http import OpenAIEmbeddingClient, OpenAIImageGenerator
from guess_ai.content.settings import settings_from_env


def create_content_generator(settings: Settings) -> ContentGenerator:
    """Create the configured content generator.

    Model configuration comes from the OPENAI_* environment variables.
    """

    provider = settings_from_env()
    if settings.content_backend == "chat":
        return cast(ContentGenerator, Ag2ChatGenerator(settings=provider))
    return cast(ContentGenerator, OpenAIImageGenerator(settings=provider))


def create_embedding_client() -> EmbeddingClient:
    return cast(EmbeddingClient, OpenAIEmbeddingClient(settings=settings_from_env()))
