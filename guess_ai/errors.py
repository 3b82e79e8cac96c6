from __future__ import annotations

from typing import ClassVar


class GameError(ValueError):
    """Base class for every rejection the game surfaces to callers.

    `kind` is stable and goes on the wire; `status_code` is what the HTTP
    layer maps it to.
    """

    kind: ClassVar[str] = "GameError"
    status_code: ClassVar[int] = 422

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.kind)

    @property
    def message(self) -> str:
        return str(self)


class SessionNotFound(GameError):
    kind = "SessionNotFound"
    status_code = 404


class UnknownPlayer(GameError):
    kind = "UnknownPlayer"
    status_code = 404


class SessionFull(GameError):
    kind = "SessionFull"
    status_code = 409


class WrongPhase(GameError):
    kind = "WrongPhase"
    status_code = 409


class InvalidTarget(GameError):
    kind = "InvalidTarget"
    status_code = 422


class SessionBusy(GameError):
    kind = "SessionBusy"
    status_code = 423


class SessionConflict(GameError):
    kind = "SessionConflict"
    status_code = 409


class UsernameTaken(GameError):
    kind = "UsernameTaken"
    status_code = 409


class ContentUnavailable(GameError):
    kind = "ContentUnavailable"
    status_code = 502


class CodeSpaceExhausted(GameError):
    kind = "CodeSpaceExhausted"
    status_code = 503


class StoreUnavailable(GameError):
    kind = "StoreUnavailable"
    status_code = 503
