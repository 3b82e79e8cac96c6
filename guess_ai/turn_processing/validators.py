from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from guess_ai.api.models import SessionPhase, SessionState
from guess_ai.errors import InvalidTarget, UnknownPlayer, WrongPhase


@dataclass(frozen=True, slots=True)
class ValidationContext:
    """Inputs available to validators.

    Keep this tight and serializable-ish so we can safely log it.
    """

    session_id: str
    player_id: str
    action: str
    target_id: str | None = None


class ActionValidator(ABC):
    """A small, composable validation unit for an incoming action."""

    @abstractmethod
    def validate(self, *, ctx: ValidationContext, state: SessionState) -> None:
        raise NotImplementedError


def has_player(state: SessionState, player_id: str) -> bool:
    return any(p.id == player_id for p in state.players)


@dataclass(frozen=True, slots=True)
class MembershipValidator(ActionValidator):
    """The acting player must already be seated in the session."""

    def validate(self, *, ctx: ValidationContext, state: SessionState) -> None:
        if not has_player(state, ctx.player_id):
            raise UnknownPlayer(f"Player '{ctx.player_id}' is not in session {ctx.session_id}")


@dataclass(frozen=True, slots=True)
class CompletedSessionValidator(ActionValidator):
    """Deny every action after the session is complete."""

    def validate(self, *, ctx: ValidationContext, state: SessionState) -> None:
        if state.phase == SessionPhase.complete:
            raise WrongPhase("Session is complete")


@dataclass(frozen=True, slots=True)
class PhaseValidator(ActionValidator):
    allowed_phases: frozenset[SessionPhase]

    def validate(self, *, ctx: ValidationContext, state: SessionState) -> None:
        if state.phase not in self.allowed_phases:
            allowed = ",".join(sorted(p.value for p in self.allowed_phases))
            raise WrongPhase(f"Action '{ctx.action}' not allowed in phase '{state.phase.value}' (allowed: {allowed})")


@dataclass(frozen=True, slots=True)
class GuessTargetValidator(ActionValidator):
    """A guess must name another player who is in the session."""

    def validate(self, *, ctx: ValidationContext, state: SessionState) -> None:
        if not ctx.target_id:
            raise InvalidTarget("Guess target is required")
        if ctx.target_id == ctx.player_id:
            raise InvalidTarget("Players cannot guess their own prompt")
        if not has_player(state, ctx.target_id):
            raise InvalidTarget(f"Guess target '{ctx.target_id}' is not in session {ctx.session_id}")


@dataclass(frozen=True, slots=True)
class ValidatorPipeline:
    validators: tuple[ActionValidator, ...]

    def validate(self, *, ctx: ValidationContext, state: SessionState) -> None:
        for v in self.validators:
            v.validate(ctx=ctx, state=state)


# Membership is checked before phase so a stranger always gets UnknownPlayer.
DEFAULT_ACTION_PIPELINES: dict[str, ValidatorPipeline] = {
    "join": ValidatorPipeline(validators=(CompletedSessionValidator(),)),
    "ready": ValidatorPipeline(
        validators=(
            MembershipValidator(),
            CompletedSessionValidator(),
            PhaseValidator(allowed_phases=frozenset({SessionPhase.lobby})),
        )
    ),
    "prompt": ValidatorPipeline(
        validators=(
            MembershipValidator(),
            CompletedSessionValidator(),
            PhaseValidator(allowed_phases=frozenset({SessionPhase.imagining})),
        )
    ),
    "guess": ValidatorPipeline(
        validators=(
            MembershipValidator(),
            CompletedSessionValidator(),
            PhaseValidator(allowed_phases=frozenset({SessionPhase.guessing})),
            GuessTargetValidator(),
        )
    ),
}


def pipeline_for_action(action: str) -> ValidatorPipeline:
    pipe = DEFAULT_ACTION_PIPELINES.get(action)
    if pipe is None:
        raise ValueError(f"Unknown action: {action}")
    return pipe
