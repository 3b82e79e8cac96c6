from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Literal

import httpx

from guess_ai.content.settings import OpenAICompatibleSettings, resolve_api_key
from guess_ai.errors import ContentUnavailable

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"


async def _post_json(
    *,
    settings: OpenAICompatibleSettings,
    path: str,
    payload: dict[str, Any],
    timeout: float,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict[str, Any]:
    base = (settings.base_url or DEFAULT_BASE_URL).rstrip("/")
    try:
        api_key = resolve_api_key(settings)
    except RuntimeError as e:
        logger.warning("content provider call %s skipped: %s", path, e)
        raise ContentUnavailable("Content provider is not configured") from e
    headers = {"Authorization": f"Bearer {api_key}"}
    try:
        async with httpx.AsyncClient(base_url=base, timeout=timeout, transport=transport) as client:
            resp = await client.post(path, json=payload, headers=headers)
            resp.raise_for_status()
            data = resp.json()
    except httpx.HTTPError as e:
        logger.warning("content provider call %s failed: %s", path, e)
        raise ContentUnavailable(f"Content provider request to {path} failed") from e
    except ValueError as e:
        raise ContentUnavailable(f"Content provider returned invalid JSON for {path}") from e

    if not isinstance(data, dict):
        raise ContentUnavailable(f"Unexpected response shape from {path}")
    return data


@dataclass(slots=True)
class OpenAIImageGenerator:
    """Image artifacts via an OpenAI-compatible `/images/generations` endpoint."""

    settings: OpenAICompatibleSettings
    size: str = "1024x1024"
    quality: str = "standard"
    timeout: float = 60.0
    transport: httpx.AsyncBaseTransport | None = None
    kind: Literal["image", "text"] = "image"

    async def generate_artifact(self, prompt: str) -> str:
        data = await _post_json(
            settings=self.settings,
            path="/images/generations",
            payload={
                "model": self.settings.image_model,
                "prompt": prompt,
                "size": self.size,
                "quality": self.quality,
                "n": 1,
            },
            timeout=self.timeout,
            transport=self.transport,
        )
        items = data.get("data")
        if not isinstance(items, list) or not items or not isinstance(items[0], dict):
            raise ContentUnavailable("Image response contained no data")
        url = items[0].get("url")
        if not isinstance(url, str) or not url:
            raise ContentUnavailable("Image response contained no url")
        return url


@dataclass(slots=True)
class OpenAIEmbeddingClient:
    """Text embeddings via an OpenAI-compatible `/embeddings` endpoint."""

    settings: OpenAICompatibleSettings
    timeout: float = 30.0
    transport: httpx.AsyncBaseTransport | None = None

    async def embed(self, texts: Sequence[str]) -> list[list[float]]:
        data = await _post_json(
            settings=self.settings,
            path="/embeddings",
            payload={"model": self.settings.embedding_model, "input": list(texts)},
            timeout=self.timeout,
            transport=self.transport,
        )
        items = data.get("data")
        if not isinstance(items, list) or len(items) != len(texts):
            raise ContentUnavailable("Embedding response does not match the number of inputs")

        # The API may return items out of order; `index` is authoritative when present.
        ordered = sorted(items, key=lambda item: item.get("index", 0) if isinstance(item, dict) else 0)
        vectors: list[list[float]] = []
        for item in ordered:
            vec = item.get("embedding") if isinstance(item, dict) else None
            if not isinstance(vec, list):
                raise ContentUnavailable("Embedding response item has no vector")
            vectors.append([float(v) for v in vec])
        return vectors
