"""Pure session transitions.

Every function here takes a SessionState and returns a new one; the input is
never mutated, so a rejected action leaves the caller's (and the store's) copy
untouched. Storage, locking and collaborator calls live in guess_ai.actions.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Literal
from uuid import UUID

from guess_ai.api.models import (
    GuessRecord,
    JoinAction,
    PlayerState,
    ReadyAction,
    RoundSummary,
    ScoredGuess,
    SessionAction,
    SessionPhase,
    SessionState,
    SubmitGuessAction,
    SubmitPromptAction,
)
from guess_ai.errors import SessionFull, WrongPhase
from guess_ai.fsm import SessionFSM
from guess_ai.turn_processing.validators import ValidationContext, has_player, pipeline_for_action

Action = SessionAction
ArtifactKind = Literal["image", "text"]


def check_session_rules(*, total_rounds: int, min_players: int, max_players: int) -> None:
    if total_rounds < 1:
        raise ValueError("total_rounds must be >= 1")
    if min_players < 2 or max_players < min_players:
        raise ValueError("player limits must satisfy 2 <= min_players <= max_players")


def new_session(
    *,
    session_id: UUID,
    code: str,
    now: datetime,
    total_rounds: int,
    min_players: int,
    max_players: int,
) -> SessionState:
    check_session_rules(total_rounds=total_rounds, min_players=min_players, max_players=max_players)
    return SessionState(
        session_id=session_id,
        code=code,
        created_at=now,
        last_updated_at=now,
        phase=SessionPhase.lobby,
        current_round=1,
        total_rounds=total_rounds,
        min_players=min_players,
        max_players=max_players,
    )


def expected_guess_count(num_players: int) -> int:
    """Each player guesses every other player's prompt once per round."""

    return num_players * (num_players - 1)


def prompts_complete(state: SessionState) -> bool:
    return bool(state.players) and all(p.id in state.submitted_prompts for p in state.players)


def guesses_complete(state: SessionState) -> bool:
    pairs = {(g.guesser_id, g.target_id) for g in state.submitted_guesses}
    return bool(state.players) and len(pairs) >= expected_guess_count(len(state.players))


def apply_action(state: SessionState, action: Action, *, display_name: str = "") -> SessionState:
    """Validate `action` against `state` and return the next state.

    `display_name` is only used when a Join seats a new player.
    Raises a GameError subclass on rejection.
    """

    ctx = ValidationContext(
        session_id=str(state.session_id),
        player_id=action.player_id,
        action=action.action,
        target_id=getattr(action, "target_id", None),
    )
    pipeline_for_action(action.action).validate(ctx=ctx, state=state)

    nxt = state.model_copy(deep=True)
    fsm = SessionFSM(nxt)

    if isinstance(action, JoinAction):
        _join(nxt, player_id=action.player_id, display_name=display_name)
    elif isinstance(action, ReadyAction):
        _ready(nxt, fsm, player_id=action.player_id)
    elif isinstance(action, SubmitPromptAction):
        _submit_prompt(nxt, fsm, player_id=action.player_id, prompt=action.prompt)
    elif isinstance(action, SubmitGuessAction):
        _submit_guess(nxt, fsm, guesser_id=action.player_id, target_id=action.target_id, guess=action.guess)
    else:
        raise ValueError(f"Unknown action: {action!r}")

    fsm.sync_phase_to_model()
    return nxt


def _join(state: SessionState, *, player_id: str, display_name: str) -> None:
    # Re-joining (e.g. a reloaded client) is a no-op in any live phase.
    if has_player(state, player_id):
        return
    if state.phase != SessionPhase.lobby:
        raise WrongPhase(f"Cannot join a session in phase '{state.phase.value}'")
    if len(state.players) >= state.max_players:
        raise SessionFull(f"Session {state.code} is full ({state.max_players} players)")
    state.players.append(PlayerState(id=player_id, display_name=display_name))


def _ready(state: SessionState, fsm: SessionFSM, *, player_id: str) -> None:
    player = next(p for p in state.players if p.id == player_id)
    player.ready = True
    if len(state.players) >= state.min_players and all(p.ready for p in state.players):
        fsm.all_ready()


def _submit_prompt(state: SessionState, fsm: SessionFSM, *, player_id: str, prompt: str) -> None:
    state.submitted_prompts[player_id] = prompt
    if prompts_complete(state):
        fsm.prompts_filled()


def _submit_guess(state: SessionState, fsm: SessionFSM, *, guesser_id: str, target_id: str, guess: str) -> None:
    record = GuessRecord(guesser_id=guesser_id, target_id=target_id, guess=guess)
    for idx, existing in enumerate(state.submitted_guesses):
        if existing.guesser_id == guesser_id and existing.target_id == target_id:
            state.submitted_guesses[idx] = record
            break
    else:
        state.submitted_guesses.append(record)

    if guesses_complete(state):
        fsm.guesses_filled()


def featured_player_id(state: SessionState) -> str | None:
    """The player whose artifact is shown as the round's current content (first to join)."""

    for p in state.players:
        if p.id in state.artifacts:
            return p.id
    return None


def attach_artifacts(state: SessionState, artifacts: Mapping[str, str], *, kind: ArtifactKind) -> SessionState:
    """Record generated content for this round's prompts.

    Image references feed `current_image`, text artifacts feed `current_prompt`.
    """

    if state.phase != SessionPhase.guessing:
        raise WrongPhase(f"Artifacts can only be attached while guessing, not in '{state.phase.value}'")

    nxt = state.model_copy(deep=True)
    nxt.artifacts.update({pid: ref for pid, ref in artifacts.items() if pid in nxt.submitted_prompts})

    featured = featured_player_id(nxt)
    if featured is not None:
        if kind == "image":
            nxt.current_image = nxt.artifacts[featured]
        else:
            nxt.current_prompt = nxt.artifacts[featured]
    return nxt


def complete_scoring(state: SessionState, scores: Sequence[int]) -> SessionState:
    """Apply one similarity score per recorded guess (same order) and close the round.

    The last round ends the session; any other round starts the next one in
    Imagining with every player's ready flag cleared.
    """

    if state.phase != SessionPhase.scoring:
        raise WrongPhase(f"Cannot score a session in phase '{state.phase.value}'")
    if len(scores) != len(state.submitted_guesses):
        raise ValueError(f"Expected {len(state.submitted_guesses)} scores, got {len(scores)}")
    if any(s < 0 or s > 100 for s in scores):
        raise ValueError("Scores must be within 0..100")

    nxt = state.model_copy(deep=True)
    fsm = SessionFSM(nxt)

    by_id = {p.id: p for p in nxt.players}
    scored: list[ScoredGuess] = []
    for guess, score in zip(nxt.submitted_guesses, scores):
        by_id[guess.guesser_id].score += int(score)
        scored.append(ScoredGuess(**guess.model_dump(), score=int(score)))

    nxt.round_history.append(
        RoundSummary(round=nxt.current_round, prompts=dict(nxt.submitted_prompts), guesses=scored)
    )

    nxt.submitted_prompts = {}
    nxt.submitted_guesses = []
    nxt.artifacts = {}
    nxt.current_prompt = ""
    nxt.current_image = ""

    if nxt.current_round >= nxt.total_rounds:
        fsm.finish()
    else:
        nxt.current_round += 1
        for p in nxt.players:
            p.ready = False
        fsm.next_round()

    fsm.sync_phase_to_model()
    return nxt
