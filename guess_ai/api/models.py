from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    # camelCase on the wire, snake_case in Python; both accepted on input.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SessionPhase(StrEnum):
    lobby = "Lobby"
    imagining = "Imagining"
    guessing = "Guessing"
    scoring = "Scoring"
    complete = "Complete"


class PlayerState(WireModel):
    id: str
    display_name: str = ""
    score: int = 0
    ready: bool = False


class GuessRecord(WireModel):
    guesser_id: str
    target_id: str
    guess: str


class ScoredGuess(GuessRecord):
    score: int


class RoundSummary(WireModel):
    round: int
    prompts: dict[str, str] = Field(default_factory=dict)
    guesses: list[ScoredGuess] = Field(default_factory=list)


class SessionState(WireModel):
    session_id: UUID
    code: str
    created_at: datetime
    last_updated_at: datetime

    phase: SessionPhase = SessionPhase.lobby
    current_round: int = 1
    total_rounds: int = 3

    # Capacity rules are fixed at creation so a config change never strands a live game.
    min_players: int = 2
    max_players: int = 2

    # Join order.
    players: list[PlayerState] = Field(default_factory=list)

    # Current round only; cleared by scoring.
    submitted_prompts: dict[str, str] = Field(default_factory=dict)
    submitted_guesses: list[GuessRecord] = Field(default_factory=list)
    artifacts: dict[str, str] = Field(default_factory=dict)

    current_prompt: str = ""
    current_image: str = ""

    round_history: list[RoundSummary] = Field(default_factory=list)

    # Bumped on every save; used to detect a lost update.
    version: int = 0


class SessionView(WireModel):
    """What clients see when polling a session.

    Prompts stay server-side until the round is scored; clients only learn who
    has submitted.
    """

    session_id: UUID
    code: str
    phase: SessionPhase
    current_round: int
    total_rounds: int
    min_players: int
    max_players: int
    players: list[PlayerState]
    current_prompt: str
    current_image: str
    artifacts: dict[str, str]
    submitted_prompt_player_ids: list[str]
    submitted_guess_count: int
    round_history: list[RoundSummary]

    @classmethod
    def from_state(cls, state: SessionState) -> "SessionView":
        return cls(
            session_id=state.session_id,
            code=state.code,
            phase=state.phase,
            current_round=state.current_round,
            total_rounds=state.total_rounds,
            min_players=state.min_players,
            max_players=state.max_players,
            players=state.players,
            current_prompt=state.current_prompt,
            current_image=state.current_image,
            artifacts=state.artifacts,
            submitted_prompt_player_ids=[p.id for p in state.players if p.id in state.submitted_prompts],
            submitted_guess_count=len(state.submitted_guesses),
            round_history=state.round_history,
        )


class JoinAction(WireModel):
    action: Literal["join"] = "join"
    player_id: str = Field(..., min_length=1, max_length=128)


class ReadyAction(WireModel):
    action: Literal["ready"] = "ready"
    player_id: str = Field(..., min_length=1, max_length=128)


class SubmitPromptAction(WireModel):
    action: Literal["prompt"] = "prompt"
    player_id: str = Field(..., min_length=1, max_length=128)
    prompt: str = Field(..., min_length=1, max_length=1000)


class SubmitGuessAction(WireModel):
    action: Literal["guess"] = "guess"
    player_id: str = Field(..., min_length=1, max_length=128)
    target_id: str = Field(..., min_length=1, max_length=128)
    guess: str = Field(..., min_length=1, max_length=1000)


# Discriminated on `action` wherever it is parsed from a request body.
SessionAction = JoinAction | ReadyAction | SubmitPromptAction | SubmitGuessAction


class SessionCreateRequest(WireModel):
    total_rounds: int | None = Field(default=None, ge=1, le=20)
    min_players: int | None = Field(default=None, ge=2, le=16)
    max_players: int | None = Field(default=None, ge=2, le=16)


class JoinByCodeRequest(WireModel):
    code: str = Field(..., min_length=1, max_length=16)
    player_id: str = Field(..., min_length=1, max_length=128)


class PromptRequest(WireModel):
    prompt: str = Field(..., min_length=1, max_length=1000)


class GuessRequest(WireModel):
    target_id: str = Field(..., min_length=1, max_length=128)
    guess: str = Field(..., min_length=1, max_length=1000)


class UserCreateRequest(WireModel):
    username: str = Field(..., min_length=1, max_length=64)


class UserCreateResponse(WireModel):
    user_id: str
    username: str


class SimilarityRequest(WireModel):
    reference: str = Field(..., min_length=1, max_length=1000)
    candidate: str = Field(..., min_length=1, max_length=1000)


class SimilarityResponse(WireModel):
    score: int

