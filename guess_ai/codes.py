from __future__ import annotations

import logging
import random
import string
from collections.abc import Callable

from guess_ai.errors import CodeSpaceExhausted

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 5

_system_rng = random.SystemRandom()


def generate_session_code(
    *,
    rng: random.Random | None = None,
    length: int = CODE_LENGTH,
    alphabet: str = CODE_ALPHABET,
) -> str:
    """Draw a code uniformly from `alphabet`, one character at a time."""

    rng = rng or _system_rng
    return "".join(rng.choice(alphabet) for _ in range(length))


def allocate_unique_code(
    *,
    exists: Callable[[str], bool],
    max_attempts: int,
    rng: random.Random | None = None,
    length: int = CODE_LENGTH,
) -> str:
    """Generate codes until one is not taken according to `exists`.

    The code space (36**5 ~ 60M) is huge compared to live sessions, so a
    collision is rare; `max_attempts` only guards against a broken predicate
    or a saturated store.
    """

    for attempt in range(1, max_attempts + 1):
        code = generate_session_code(rng=rng, length=length)
        if not exists(code):
            return code
        logger.debug("session code collision on attempt %d: %s", attempt, code)
    raise CodeSpaceExhausted(f"No free session code after {max_attempts} attempts")


def normalize_code(code: str) -> str:
    # Codes are typed by humans; be lenient about case and stray whitespace.
    return code.strip().upper()
