from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID, uuid4

from guess_ai.api.models import (
    JoinAction,
    ReadyAction,
    SessionPhase,
    SessionState,
    SubmitGuessAction,
    SubmitPromptAction,
)
from guess_ai.codes import allocate_unique_code
from guess_ai.config import Settings
from guess_ai.content.base import ContentGenerator, EmbeddingClient, IdentityLookup
from guess_ai.errors import GameError
from guess_ai.scoring import score_texts
from guess_ai.session_machine import (
    Action,
    apply_action,
    attach_artifacts,
    check_session_rules,
    complete_scoring,
    new_session,
)
from guess_ai.session_store import SessionStore
from guess_ai.turn_processing.validators import has_player

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Collaborators:
    identity: IdentityLookup
    content: ContentGenerator
    embeddings: EmbeddingClient


@dataclass(frozen=True, slots=True)
class ActionResult:
    state: SessionState
    # False when the action was accepted but was a no-op (e.g. re-join).
    changed: bool


def create_session(
    *,
    store: SessionStore,
    settings: Settings,
    total_rounds: int | None = None,
    min_players: int | None = None,
    max_players: int | None = None,
    rng: random.Random | None = None,
) -> SessionState:
    rounds = total_rounds if total_rounds is not None else settings.total_rounds
    min_p = min_players if min_players is not None else settings.min_players
    max_p = max_players if max_players is not None else max(settings.max_players, min_p)
    check_session_rules(total_rounds=rounds, min_players=min_p, max_players=max_p)

    session_id = uuid4()

    def _taken(code: str) -> bool:
        # The reserve is the atomic claim; the exists check just avoids a write.
        return store.code_exists(code) or not store.reserve_code(code, session_id)

    code = allocate_unique_code(exists=_taken, max_attempts=settings.code_attempts, rng=rng)

    state = new_session(
        session_id=session_id,
        code=code,
        now=datetime.now(tz=UTC),
        total_rounds=rounds,
        min_players=min_p,
        max_players=max_p,
    )
    try:
        saved = store.insert(state)
    except GameError:
        # Unbind the code so it never points at a session that was not written.
        store.release_code(code, session_id)
        raise
    logger.info("created session %s with code %s", saved.session_id, saved.code)
    return saved


def get_state(*, store: SessionStore, session_id: UUID) -> SessionState:
    return store.load(session_id)


def get_state_by_code(*, store: SessionStore, code: str) -> SessionState:
    return store.load(store.find_id_by_code(code))


async def _generate_artifacts(state: SessionState, *, content: ContentGenerator) -> SessionState:
    order = [p.id for p in state.players if p.id in state.submitted_prompts]
    refs = await asyncio.gather(*(content.generate_artifact(state.submitted_prompts[pid]) for pid in order))
    return attach_artifacts(state, dict(zip(order, refs)), kind=content.kind)


async def _score_round(state: SessionState, *, embeddings: EmbeddingClient) -> SessionState:
    scores = await asyncio.gather(
        *(
            score_texts(state.submitted_prompts[g.target_id], g.guess, embeddings=embeddings)
            for g in state.submitted_guesses
        )
    )
    return complete_scoring(state, list(scores))


async def dispatch_action_async(
    *,
    store: SessionStore,
    session_id: UUID,
    action: Action,
    collaborators: Collaborators,
) -> ActionResult:
    """Entry point for every player action.

    Applies an action by:
    - acquiring the per-session lock
    - loading session state
    - computing the next state via the pure session machine
    - running collaborators for the phases that need them
      (content generation when prompts fill, scoring when guesses fill)
    - persisting state

    Any rejection raises before the save, so the stored session is untouched.
    """

    async with store.locked(session_id):
        state = store.load(session_id)

        display_name = ""
        if isinstance(action, JoinAction) and not has_player(state, action.player_id):
            display_name = collaborators.identity.display_name_for(action.player_id)

        try:
            nxt = apply_action(state, action, display_name=display_name)
            if state.phase == SessionPhase.imagining and nxt.phase == SessionPhase.guessing:
                nxt = await _generate_artifacts(nxt, content=collaborators.content)
            if nxt.phase == SessionPhase.scoring:
                nxt = await _score_round(nxt, embeddings=collaborators.embeddings)
        except GameError as e:
            logger.debug(
                "rejected %s by %s on session %s: %s: %s", action.action, action.player_id, session_id, e.kind, e
            )
            raise

        if nxt == state:
            return ActionResult(state=state, changed=False)

        saved = store.save(nxt)

    if saved.phase != state.phase:
        logger.info(
            "session %s: %s -> %s (round %d/%d)",
            session_id,
            state.phase.value,
            saved.phase.value,
            saved.current_round,
            saved.total_rounds,
        )
    return ActionResult(state=saved, changed=True)


async def join(*, store: SessionStore, code: str, player_id: str, collaborators: Collaborators) -> SessionState:
    session_id = store.find_id_by_code(code)
    result = await dispatch_action_async(
        store=store, session_id=session_id, action=JoinAction(player_id=player_id), collaborators=collaborators
    )
    return result.state


async def set_ready(
    *, store: SessionStore, session_id: UUID, player_id: str, collaborators: Collaborators
) -> SessionState:
    result = await dispatch_action_async(
        store=store, session_id=session_id, action=ReadyAction(player_id=player_id), collaborators=collaborators
    )
    return result.state


async def submit_prompt(
    *, store: SessionStore, session_id: UUID, player_id: str, prompt: str, collaborators: Collaborators
) -> SessionState:
    result = await dispatch_action_async(
        store=store,
        session_id=session_id,
        action=SubmitPromptAction(player_id=player_id, prompt=prompt),
        collaborators=collaborators,
    )
    return result.state


async def submit_guess(
    *,
    store: SessionStore,
    session_id: UUID,
    player_id: str,
    target_id: str,
    guess: str,
    collaborators: Collaborators,
) -> SessionState:
    result = await dispatch_action_async(
        store=store,
        session_id=session_id,
        action=SubmitGuessAction(player_id=player_id, target_id=target_id, guess=guess),
        collaborators=collaborators,
    )
    return result.state
