"""Exception hierarchy shared by the rules, engine and game layers."""

from __future__ import annotations


class ChessDuelError(Exception):
    """Base class for every error raised by chessduel."""


# ── Move-level errors (recovered locally) ────────────────────────────────────


class IllegalMoveError(ChessDuelError):
    """A move was rejected by the rules authority."""

    def __init__(self, move: str, reason: str = "illegal move") -> None:
        super().__init__(f"{reason}: {move}")
        self.move = move
        self.reason = reason


class PromotionRequiredError(IllegalMoveError):
    """A pawn reached the last rank but no promotion piece was given."""

    def __init__(self, move: str) -> None:
        super().__init__(move, "promotion piece required")


class NotPlayersTurnError(ChessDuelError):
    """A player action was attempted while the session was not waiting for one."""


# ── Engine / protocol errors (fatal to the current game) ────────────────────


class ProtocolError(ChessDuelError):
    """Malformed move address or engine reply."""


class EngineIllegalMoveError(ChessDuelError):
    """The engine answered with a well-formed move that is illegal here."""

    def __init__(self, move: str, fen: str) -> None:
        super().__init__(f"engine played illegal move {move} in {fen}")
        self.move = move
        self.fen = fen


class EngineError(ChessDuelError):
    """Base class for failures of the engine adapter."""


class InitializationError(EngineError):
    """The engine never completed the handshake."""


class EngineTimeoutError(EngineError):
    """No best-move reply arrived within the time budget."""


class EngineProcessError(EngineError):
    """The engine process failed or exited unexpectedly."""
