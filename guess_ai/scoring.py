from __future__ import annotations

import math
from collections.abc import Sequence

from guess_ai.content.base import EmbeddingClient

MIN_SCORE = 0
MAX_SCORE = 100


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float | None:
    """Cosine of the angle between `a` and `b`.

    Returns None when either vector is empty or has zero magnitude.
    """

    if len(a) != len(b):
        raise ValueError(f"Vector dimensions differ: {len(a)} != {len(b)}")
    if not a:
        return None

    dot = math.fsum(x * y for x, y in zip(a, b))
    mag_a = math.sqrt(math.fsum(x * x for x in a))
    mag_b = math.sqrt(math.fsum(y * y for y in b))
    if mag_a == 0.0 or mag_b == 0.0:
        return None
    return dot / (mag_a * mag_b)


def _round_half_away_from_zero(x: float) -> int:
    # Python's round() is banker's rounding; 62.5 must become 63, not 62.
    return int(math.copysign(math.floor(abs(x) + 0.5), x))


def similarity_to_score(similarity: float) -> int:
    """Map a similarity in [-1, 1] onto an integer score in [0, 100]."""

    raw = _round_half_away_from_zero(similarity * 50 + 50)
    # Float error can nudge identical vectors a hair past 1.0.
    return max(MIN_SCORE, min(MAX_SCORE, raw))


def score_vectors(reference: Sequence[float], candidate: Sequence[float]) -> int:
    similarity = cosine_similarity(reference, candidate)
    if similarity is None:
        return MIN_SCORE
    return similarity_to_score(similarity)


async def score_texts(reference: str, candidate: str, *, embeddings: EmbeddingClient) -> int:
    """Embed both texts in a single request and score their closeness."""

    vectors = await embeddings.embed([reference, candidate])
    if len(vectors) != 2:
        raise ValueError(f"Embedding client returned {len(vectors)} vectors for 2 inputs")
    return score_vectors(vectors[0], vectors[1])
