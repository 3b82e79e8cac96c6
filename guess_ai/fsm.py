from __future__ import annotations

from statemachine import State, StateMachine

from guess_ai.api.models import SessionPhase, SessionState


class SessionFSM(StateMachine):
    """FSM wrapper around SessionState.

    Lobby -> Imagining -> Guessing -> Scoring -> (Imagining | Complete).

    The session machine mutates the model; the FSM only guards which phase
    edges exist, so a skipped or backwards move raises TransitionNotAllowed.
    """

    lobby = State(SessionPhase.lobby.value, value=SessionPhase.lobby.value, initial=True)
    imagining = State(SessionPhase.imagining.value, value=SessionPhase.imagining.value)
    guessing = State(SessionPhase.guessing.value, value=SessionPhase.guessing.value)
    scoring = State(SessionPhase.scoring.value, value=SessionPhase.scoring.value)
    complete = State(SessionPhase.complete.value, value=SessionPhase.complete.value, final=True)

    all_ready = lobby.to(imagining)
    prompts_filled = imagining.to(guessing)
    guesses_filled = guessing.to(scoring)
    next_round = scoring.to(imagining)
    finish = scoring.to(complete)

    def __init__(self, session: SessionState):
        self.session = session
        super().__init__(start_value=session.phase.value)

    def sync_phase_to_model(self) -> None:
        self.session.phase = SessionPhase(str(self.current_state.value))
