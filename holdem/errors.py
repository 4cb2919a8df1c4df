from __future__ import annotations

# Two families: ActionRejected is a caller mistake and leaves the table untouched;
# InvariantViolation means the engine itself is broken and the hand is abandoned.


class ActionRejected(ValueError):
    code = "REJECTED"

    def __init__(self, msg: str, code: str | None = None) -> None:
        super().__init__(msg)
        if code is not None:
            self.code = code
        self.msg = msg


class InvalidTurn(ActionRejected):
    code = "NOT_YOUR_TURN"


class InvalidRaise(ActionRejected):
    code = "INVALID_RAISE"


class RoundClosed(ActionRejected):
    code = "ROUND_CLOSED"


class RoundNotClosed(ActionRejected):
    code = "ROUND_NOT_CLOSED"


class InvalidPhase(ActionRejected):
    code = "INVALID_PHASE"


class InvariantViolation(RuntimeError):
    pass


class DeckExhausted(InvariantViolation):
    pass


class NoActiveSeat(InvariantViolation):
    pass


class EngineHalted(RuntimeError):
    """Raised for any call after an invariant violation until a new tournament starts."""
