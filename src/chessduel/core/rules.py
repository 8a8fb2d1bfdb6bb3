"""Rules authority: move legality, move effects and position classification.

The game layer talks to :class:`IRules` only.  :class:`ChessRules` is the
concrete implementation backed by *python-chess*.

Positions are plain FEN strings.  Repetition cannot be read off a single FEN,
so the classification calls accept *history*: the FENs of every earlier
position of the game, oldest first.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import chess

from chessduel.core.enums import CastleSide, Color, DrawReason, TerminalKind
from chessduel.core.errors import (
    IllegalMoveError,
    PromotionRequiredError,
    ProtocolError,
)
from chessduel.core.notation import MoveAddress, decode

# Pieces each side starts with, used to derive captured material.
_START_COUNTS: dict[int, int] = {
    chess.QUEEN: 1,
    chess.ROOK: 2,
    chess.BISHOP: 2,
    chess.KNIGHT: 2,
    chess.PAWN: 8,
}


# ── Value objects ────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class MoveFlags:
    """Classification of a single applied move."""

    capture: bool = False
    promotion: str | None = None
    castle_side: CastleSide | None = None
    en_passant: bool = False
    gives_check: bool = False


@dataclass(frozen=True, slots=True)
class Classification:
    """Status of a position from the side to move's point of view."""

    check: bool = False
    checkmate: bool = False
    stalemate: bool = False
    draw_reason: DrawReason | None = None

    @property
    def is_draw(self) -> bool:
        return self.draw_reason is not None

    @property
    def terminal_kind(self) -> TerminalKind:
        if self.checkmate:
            return TerminalKind.CHECKMATE
        if self.stalemate:
            return TerminalKind.STALEMATE
        if self.draw_reason is not None:
            return TerminalKind.DRAW
        return TerminalKind.NONE

    @property
    def is_terminal(self) -> bool:
        return self.terminal_kind is not TerminalKind.NONE


@dataclass(frozen=True, slots=True)
class MoveOutcome:
    """Result of applying a legal move."""

    fen: str
    san: str
    uci: str
    flags: MoveFlags
    classification: Classification


# ── Interface ────────────────────────────────────────────────────────────────


class IRules(ABC):
    """Interface of the rules authority consumed by the game session."""

    @abstractmethod
    def turn(self, fen: str) -> Color:
        """Side to move in *fen*."""

    @abstractmethod
    def legal_moves(self, fen: str, square: str | None = None) -> list[str]:
        """Destination squares of legal moves, optionally from *square* only."""

    @abstractmethod
    def apply_move(
        self,
        fen: str,
        move: MoveAddress,
        history: Sequence[str] = (),
    ) -> MoveOutcome:
        """Apply *move* to *fen*.

        Raises:
            PromotionRequiredError: pawn to the last rank without a piece.
            IllegalMoveError: any other rejected move.
        """

    @abstractmethod
    def classify(self, fen: str, history: Sequence[str] = ()) -> Classification:
        """Check / mate / draw status of *fen*."""

    def is_terminal(self, fen: str, history: Sequence[str] = ()) -> TerminalKind:
        return self.classify(fen, history).terminal_kind

    @abstractmethod
    def replay(self, start_fen: str, moves: Iterable[str]) -> str:
        """Apply address-notation *moves* in order and return the final FEN."""

    @abstractmethod
    def needs_promotion(self, fen: str, from_square: str, to_square: str) -> bool:
        """True if the move is a pawn promotion that still needs a piece choice."""

    @abstractmethod
    def king_square_in_check(self, fen: str) -> str | None:
        """Square of the side-to-move king if it is in check."""

    @abstractmethod
    def captured_pieces(self, fen: str) -> dict[Color, list[str]]:
        """Piece symbols captured *by* each color, most valuable first."""


# ── python-chess implementation ─────────────────────────────────────────────


def _repetition_key(fen: str) -> str:
    # placement, side to move, castling, en passant
    return " ".join(fen.split()[:4])


def _to_chess_move(move: MoveAddress) -> chess.Move:
    promotion = (
        chess.PIECE_SYMBOLS.index(move.promotion) if move.promotion is not None else None
    )
    try:
        return chess.Move(
            chess.parse_square(move.from_square),
            chess.parse_square(move.to_square),
            promotion=promotion,
        )
    except ValueError as exc:
        raise IllegalMoveError(str(move), "invalid square") from exc


class ChessRules(IRules):
    """Stateless rules authority built on :mod:`chess`."""

    __slots__ = ()

    def turn(self, fen: str) -> Color:
        return Color.WHITE if chess.Board(fen).turn == chess.WHITE else Color.BLACK

    def legal_moves(self, fen: str, square: str | None = None) -> list[str]:
        board = chess.Board(fen)
        origin = chess.parse_square(square) if square is not None else None
        targets = [
            chess.square_name(move.to_square)
            for move in board.legal_moves
            if origin is None or move.from_square == origin
        ]
        # Four promotion moves share a destination.
        return list(dict.fromkeys(targets))

    def apply_move(
        self,
        fen: str,
        move: MoveAddress,
        history: Sequence[str] = (),
    ) -> MoveOutcome:
        board = chess.Board(fen)
        candidate = _to_chess_move(move)
        if move.promotion is not None and not self._is_promotion(board, candidate):
            # A piece letter on an ordinary move is ignored.
            move = MoveAddress(move.from_square, move.to_square)
            candidate = chess.Move(candidate.from_square, candidate.to_square)
        if not board.is_legal(candidate):
            if move.promotion is None and self._is_promotion(board, candidate):
                raise PromotionRequiredError(str(move))
            raise IllegalMoveError(str(move))

        castle_side: CastleSide | None = None
        if board.is_kingside_castling(candidate):
            castle_side = CastleSide.KINGSIDE
        elif board.is_queenside_castling(candidate):
            castle_side = CastleSide.QUEENSIDE

        capture = board.is_capture(candidate)
        en_passant = board.is_en_passant(candidate)
        san = board.san(candidate)
        board.push(candidate)

        flags = MoveFlags(
            capture=capture,
            promotion=move.promotion,
            castle_side=castle_side,
            en_passant=en_passant,
            gives_check=board.is_check(),
        )
        new_fen = board.fen()
        return MoveOutcome(
            fen=new_fen,
            san=san,
            uci=candidate.uci(),
            flags=flags,
            classification=self._classify_board(board, [*history, fen]),
        )

    def classify(self, fen: str, history: Sequence[str] = ()) -> Classification:
        return self._classify_board(chess.Board(fen), history)

    def replay(self, start_fen: str, moves: Iterable[str]) -> str:
        fen = start_fen
        for text in moves:
            try:
                address = decode(text)
            except ProtocolError as exc:
                raise IllegalMoveError(text, "malformed move") from exc
            fen = self.apply_move(fen, address).fen
        return fen

    def needs_promotion(self, fen: str, from_square: str, to_square: str) -> bool:
        board = chess.Board(fen)
        try:
            candidate = chess.Move(
                chess.parse_square(from_square), chess.parse_square(to_square)
            )
        except ValueError:
            return False
        return self._is_promotion(board, candidate)

    def king_square_in_check(self, fen: str) -> str | None:
        board = chess.Board(fen)
        if not board.is_check():
            return None
        king = board.king(board.turn)
        return chess.square_name(king) if king is not None else None

    def captured_pieces(self, fen: str) -> dict[Color, list[str]]:
        board = chess.Board(fen)
        captured: dict[Color, list[str]] = {Color.WHITE: [], Color.BLACK: []}
        for capturer, victim in ((Color.WHITE, chess.BLACK), (Color.BLACK, chess.WHITE)):
            for piece_type, start_count in _START_COUNTS.items():
                missing = start_count - len(board.pieces(piece_type, victim))
                symbol = chess.Piece(piece_type, victim).symbol()
                captured[capturer].extend(symbol for _ in range(max(0, missing)))
        return captured

    # ── Internal ─────────────────────────────────────────────────────────

    @staticmethod
    def _is_promotion(board: chess.Board, move: chess.Move) -> bool:
        queening = chess.Move(move.from_square, move.to_square, promotion=chess.QUEEN)
        return board.is_legal(queening)

    @staticmethod
    def _classify_board(board: chess.Board, history: Sequence[str]) -> Classification:
        checkmate = board.is_checkmate()
        stalemate = board.is_stalemate()

        draw_reason: DrawReason | None = None
        if stalemate:
            draw_reason = DrawReason.STALEMATE
        elif not checkmate:
            key = _repetition_key(board.fen())
            occurrences = 1 + sum(1 for fen in history if _repetition_key(fen) == key)
            if occurrences >= 3:
                draw_reason = DrawReason.REPETITION
            elif board.is_insufficient_material():
                draw_reason = DrawReason.INSUFFICIENT_MATERIAL
            elif board.halfmove_clock >= 100:
                draw_reason = DrawReason.FIFTY_MOVE

        return Classification(
            check=board.is_check(),
            checkmate=checkmate,
            stalemate=stalemate,
            draw_reason=draw_reason,
        )
