from __future__ import annotations

import os
from dataclasses import dataclass

# Local OpenAI-compatible servers (Ollama, LM Studio) accept any bearer token.
LOCAL_SERVER_API_KEY = "ollama"


@dataclass(frozen=True, slots=True)
class OpenAICompatibleSettings:
    """Where the content and embedding calls go, and which models they use."""

    model: str
    base_url: str | None
    api_key: str | None
    image_model: str = "dall-e-3"
    embedding_model: str = "text-embedding-ada-002"


def settings_from_env(*, default_model: str = "gpt-4o-mini") -> OpenAICompatibleSettings:
    env = os.environ
    return OpenAICompatibleSettings(
        model=env.get("OPENAI_MODEL", default_model),
        # e.g. http://127.0.0.1:11434/v1 for Ollama
        base_url=env.get("OPENAI_BASE_URL") or None,
        api_key=env.get("OPENAI_API_KEY") or None,
        image_model=env.get("OPENAI_IMAGE_MODEL", "dall-e-3"),
        embedding_model=env.get("OPENAI_EMBEDDING_MODEL", "text-embedding-ada-002"),
    )


def resolve_api_key(s: OpenAICompatibleSettings) -> str:
    """Bearer token for a provider call; raises if neither a key nor a local server is configured."""

    if s.api_key:
        return s.api_key
    if s.base_url:
        return LOCAL_SERVER_API_KEY
    raise RuntimeError("No content provider configured: set OPENAI_API_KEY, or OPENAI_BASE_URL for a local server")
