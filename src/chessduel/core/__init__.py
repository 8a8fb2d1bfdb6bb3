"""Core domain layer: enumerations, errors, move notation and the rules adapter.

Quick start::

    from chessduel.core import ChessRules, STARTING_FEN, decode

    rules = ChessRules()
    outcome = rules.apply_move(STARTING_FEN, decode("e2e4"))
    print(outcome.san, outcome.fen)
"""

from chessduel.core.enums import CastleSide, Color, DrawReason, TerminalKind
from chessduel.core.errors import (
    ChessDuelError,
    EngineError,
    EngineIllegalMoveError,
    EngineProcessError,
    EngineTimeoutError,
    IllegalMoveError,
    InitializationError,
    NotPlayersTurnError,
    PromotionRequiredError,
    ProtocolError,
)
from chessduel.core.notation import (
    PROMOTION_PIECES,
    STARTING_FEN,
    MoveAddress,
    decode,
    encode,
    is_well_formed,
)
from chessduel.core.rules import (
    ChessRules,
    Classification,
    IRules,
    MoveFlags,
    MoveOutcome,
)

__all__ = [
    # Enums
    "CastleSide",
    "Color",
    "DrawReason",
    "TerminalKind",
    # Errors
    "ChessDuelError",
    "EngineError",
    "EngineIllegalMoveError",
    "EngineProcessError",
    "EngineTimeoutError",
    "IllegalMoveError",
    "InitializationError",
    "NotPlayersTurnError",
    "PromotionRequiredError",
    "ProtocolError",
    # Notation
    "PROMOTION_PIECES",
    "STARTING_FEN",
    "MoveAddress",
    "decode",
    "encode",
    "is_well_formed",
    # Rules
    "ChessRules",
    "Classification",
    "IRules",
    "MoveFlags",
    "MoveOutcome",
]
