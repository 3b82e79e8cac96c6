from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Literal

from autogen import ConversableAgent, LLMConfig

from guess_ai.content.settings import OpenAICompatibleSettings, resolve_api_key
from guess_ai.errors import ContentUnavailable

logger = logging.getLogger(__name__)

SCENE_SYSTEM_MESSAGE = (
    "You are the narrator of a party guessing game. "
    "Rewrite the player's prompt as a vivid two-sentence scene description. "
    "Never repeat the prompt's exact words so the other players have to guess it."
)


def llm_config_for(s: OpenAICompatibleSettings) -> LLMConfig:
    config: dict[str, str] = {"model": s.model, "api_key": resolve_api_key(s)}
    if s.base_url:
        config["base_url"] = s.base_url
    return LLMConfig(config_list=[config])


def _extract_last_content(messages: object) -> str:
    """Newest non-blank text content in an AG2 chat history, or ""."""

    if not isinstance(messages, list):
        return ""
    texts = (m.get("content") for m in reversed(messages) if isinstance(m, dict))
    return next((t.strip() for t in texts if isinstance(t, str) and t.strip()), "")


@dataclass(slots=True)
class Ag2ChatGenerator:
    """Text artifacts from a chat model, driven through AG2 (`autogen`).

    Used when the deployment has no image model: the other players guess the
    prompt from a generated scene description instead of a picture.
    """

    settings: OpenAICompatibleSettings
    name: str = "narrator"
    kind: Literal["image", "text"] = "text"

    def _run(self, prompt: str) -> str:
        agent = ConversableAgent(
            name=self.name,
            system_message=SCENE_SYSTEM_MESSAGE,
            llm_config=llm_config_for(self.settings),
            human_input_mode="NEVER",
        )
        result = agent.run(message=prompt, max_turns=1)
        result.process()

        text = _extract_last_content(list(result.messages))
        if not text:
            # Fallback: attempt to use summary if provided.
            summary = result.summary
            if isinstance(summary, str):
                text = summary.strip()
        return text

    async def generate_artifact(self, prompt: str) -> str:
        try:
            # AG2's run() is blocking.
            text = await asyncio.to_thread(self._run, prompt)
        except Exception as e:
            logger.warning("chat content generation failed: %s", e)
            raise ContentUnavailable("Chat content generation failed") from e
        if not text:
            raise ContentUnavailable("Chat model returned an empty response")
        return text
