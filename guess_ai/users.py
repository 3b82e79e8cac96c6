from __future__ import annotations

import logging
from uuid import uuid4

import redis

from guess_ai.errors import StoreUnavailable, UsernameTaken

logger = logging.getLogger(__name__)

USER_KEY_PREFIX = "guess-ai:user:"  # + {user_id} -> username
USERNAME_KEY_PREFIX = "guess-ai:username:"  # + {casefolded username} -> user_id


class RedisUserDirectory:
    """Minimal user registry: ids for usernames, display names for ids.

    There is no authentication; an id is just a handle the client keeps.
    """

    def __init__(self, r: redis.Redis) -> None:
        self.r = r

    def create_user(self, username: str) -> str:
        username = username.strip()
        if not username:
            raise ValueError("username must not be blank")

        user_id = str(uuid4())
        try:
            claimed = self.r.set(f"{USERNAME_KEY_PREFIX}{username.casefold()}", user_id, nx=True)
            if not claimed:
                raise UsernameTaken(f"Username '{username}' already exists")
            self.r.set(f"{USER_KEY_PREFIX}{user_id}", username)
        except redis.RedisError as e:
            raise StoreUnavailable("User store unavailable") from e

        logger.info("registered user %s", user_id)
        return user_id

    def display_name_for(self, player_id: str) -> str:
        """Username for `player_id`, or "" if the id was never registered."""

        try:
            raw = self.r.get(f"{USER_KEY_PREFIX}{player_id}")
        except redis.RedisError as e:
            raise StoreUnavailable("User store unavailable") from e
        if not raw:
            return ""
        return raw if isinstance(raw, str) else raw.decode()
