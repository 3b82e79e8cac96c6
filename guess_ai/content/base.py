from __future__ import annotations

from collections.abc import Sequence
from typing import Literal, Protocol


class ContentGenerator(Protocol):
    """Turns a player's prompt into something the other players can look at."""

    # "image" -> returns an image URL, "text" -> returns generated text.
    kind: Literal["image", "text"]

    async def generate_artifact(self, prompt: str) -> str:  # pragma: no cover
        ...


class EmbeddingClient(Protocol):
    async def embed(self, texts: Sequence[str]) -> list[list[float]]:  # pragma: no cover
        ...


class IdentityLookup(Protocol):
    def display_name_for(self, player_id: str) -> str:  # pragma: no cover
        ...
