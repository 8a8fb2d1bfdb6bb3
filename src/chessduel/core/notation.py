"""Compact move-address notation (UCI long algebraic, e.g. ``e2e4``, ``e7e8q``)."""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass

from chessduel.core.errors import ProtocolError

STARTING_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"

PROMOTION_PIECES = ("q", "r", "b", "n")

_ADDRESS_RE = re.compile(r"^([a-h][1-8])([a-h][1-8])([qrbn])?$")
_SQUARE_RE = re.compile(r"^[a-h][1-8]$")


@dataclass(frozen=True, slots=True)
class MoveAddress:
    """Structured form of a move address."""

    from_square: str
    to_square: str
    promotion: str | None = None

    def __iter__(self) -> Iterator[str | None]:
        yield self.from_square
        yield self.to_square
        yield self.promotion

    def __str__(self) -> str:
        return encode(self.from_square, self.to_square, self.promotion)


def is_well_formed(text: str) -> bool:
    """Return True if *text* is a 4 or 5 character move address."""
    return isinstance(text, str) and _ADDRESS_RE.fullmatch(text) is not None


def decode(text: str) -> MoveAddress:
    """Parse *text* into a :class:`MoveAddress`.

    Raises:
        ProtocolError: if *text* is not a well-formed address.
    """
    match = _ADDRESS_RE.fullmatch(text) if isinstance(text, str) else None
    if match is None:
        raise ProtocolError(f"Malformed move address: {text!r}")
    from_square, to_square, promotion = match.groups()
    return MoveAddress(from_square, to_square, promotion)


def encode(from_square: str, to_square: str, promotion: str | None = None) -> str:
    """Build a move address from its parts, e.g. ``('e7', 'e8', 'q') -> 'e7e8q'``."""
    for square in (from_square, to_square):
        if not _SQUARE_RE.fullmatch(square):
            raise ValueError(f"Invalid square name: {square!r}")
    if promotion is not None and promotion not in PROMOTION_PIECES:
        raise ValueError(f"Invalid promotion piece: {promotion!r}")
    return f"{from_square}{to_square}{promotion or ''}"


def side_to_move(fen: str) -> str:
    """Return the side-to-move field (``w`` / ``b``) of a FEN string."""
    parts = fen.split()
    if len(parts) < 2:
        raise ValueError(f"Invalid FEN (missing side-to-move field): {fen!r}")
    return parts[1]
