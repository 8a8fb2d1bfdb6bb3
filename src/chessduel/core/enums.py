"""Core enumerations for the chess domain."""

from __future__ import annotations

from enum import Enum, IntEnum


class Color(IntEnum):
    """Side color."""

    WHITE = 0
    BLACK = 1

    @property
    def opposite(self) -> Color:
        return Color(1 - self.value)

    @property
    def fen_char(self) -> str:
        """Side-to-move field as written in FEN (``w`` / ``b``)."""
        return "w" if self is Color.WHITE else "b"

    @classmethod
    def from_fen_char(cls, char: str) -> Color:
        if char == "w":
            return cls.WHITE
        if char == "b":
            return cls.BLACK
        raise ValueError(f"Invalid side-to-move field: {char!r}")

    def __str__(self) -> str:
        return self.name.lower()


class CastleSide(Enum):
    """Which wing a castling move went to."""

    KINGSIDE = "k"
    QUEENSIDE = "q"


class DrawReason(Enum):
    """Why a position is drawn, in reporting priority order."""

    STALEMATE = "stalemate"
    REPETITION = "repetition"
    INSUFFICIENT_MATERIAL = "insufficient"
    FIFTY_MOVE = "50-move"

    def __str__(self) -> str:
        return self.value


class TerminalKind(Enum):
    """Classification of a finished (or unfinished) position."""

    NONE = "none"
    CHECKMATE = "checkmate"
    STALEMATE = "stalemate"
    DRAW = "draw"
