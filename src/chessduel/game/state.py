"""Session state: move history, game result and read-only snapshots."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from chessduel.core.enums import Color, DrawReason
from chessduel.core.errors import ChessDuelError
from chessduel.core.notation import STARTING_FEN, side_to_move
from chessduel.core.rules import MoveFlags
from chessduel.engine.difficulty import Difficulty
from chessduel.game.interfaces import Actor, ResultKind, SessionPhase, SessionStatus


@dataclass(frozen=True, slots=True)
class MoveRecord:
    """A single entry in the move history."""

    san: str
    uci: str
    actor: Actor
    timestamp_ms: int
    flags: MoveFlags
    fen_after: str

    @property
    def from_square(self) -> str:
        return self.uci[:2]

    @property
    def to_square(self) -> str:
        return self.uci[2:4]


@dataclass(frozen=True, slots=True)
class GameResult:
    """Terminal result descriptor."""

    kind: ResultKind
    winner: Actor | None = None
    reason: str | None = None

    @property
    def message(self) -> str:
        """Short text for the player, e.g. ``"You win!"`` or ``"Draw: stalemate"``."""
        if self.kind is ResultKind.CHECKMATE:
            return "You win!" if self.winner is Actor.PLAYER else "You lose!"
        if self.kind in (ResultKind.STALEMATE, ResultKind.DRAW):
            return f"Draw: {self.reason}"
        if self.kind is ResultKind.RESIGNATION:
            return "You resigned."
        return f"Game aborted: {self.reason}"


@dataclass(frozen=True, slots=True)
class MoveAttempt:
    """Outcome of :meth:`GameSession.submit_player_move`."""

    success: bool
    error: ChessDuelError | None = None
    record: MoveRecord | None = None


@dataclass
class GameState:
    """Mutable game data owned by one session.

    This is a pure data class: no engine, no Qt, no rule checks.  The
    session is responsible for only pushing validated moves.
    """

    start_fen: str = STARTING_FEN
    fen: str = STARTING_FEN
    moves: list[MoveRecord] = field(default_factory=list)
    phase: SessionPhase = SessionPhase.UNINITIALIZED
    player_color: Color = Color.WHITE
    difficulty: Difficulty = Difficulty.MEDIUM
    result: GameResult | None = None

    # ── Lifecycle ────────────────────────────────────────────────────────

    def setup(
        self,
        player_color: Color,
        difficulty: Difficulty,
        fen: str | None = None,
    ) -> None:
        """Initialise (or re-initialise) a fresh game."""
        self.start_fen = fen or STARTING_FEN
        self.fen = self.start_fen
        self.moves.clear()
        self.player_color = player_color
        self.difficulty = difficulty
        self.result = None

    def clear(self) -> None:
        """Back to the start screen; nothing is kept."""
        self.start_fen = STARTING_FEN
        self.fen = STARTING_FEN
        self.moves.clear()
        self.phase = SessionPhase.UNINITIALIZED
        self.result = None

    # ── History ──────────────────────────────────────────────────────────

    def push(self, record: MoveRecord) -> None:
        self.moves.append(record)
        self.fen = record.fen_after

    def pop_last_turn(self) -> list[MoveRecord]:
        """Remove records from the tail up to and including the last player move.

        Returns the removed records, most recent first.  ``fen`` is left
        untouched; the caller recomputes it.
        """
        removed: list[MoveRecord] = []
        while self.moves:
            record = self.moves.pop()
            removed.append(record)
            if record.actor is Actor.PLAYER:
                break
        return removed

    def history(self) -> list[str]:
        """FENs of every position before the current one, oldest first."""
        positions = [self.start_fen, *(record.fen_after for record in self.moves)]
        return positions[:-1]

    # ── Query helpers ────────────────────────────────────────────────────

    @property
    def side_to_move(self) -> Color:
        return Color.from_fen_char(side_to_move(self.fen))

    @property
    def opponent_color(self) -> Color:
        return self.player_color.opposite

    @property
    def ply_count(self) -> int:
        return len(self.moves)

    @property
    def has_player_move(self) -> bool:
        return any(record.actor is Actor.PLAYER for record in self.moves)


@dataclass(frozen=True, slots=True)
class SessionState:
    """Immutable snapshot handed to the presentation layer."""

    fen: str
    turn: Color
    moves: tuple[MoveRecord, ...]
    phase: SessionPhase
    status: SessionStatus
    player_color: Color
    opponent_color: Color
    difficulty: Difficulty
    result: GameResult | None = None
    is_check: bool = False
    is_checkmate: bool = False
    is_stalemate: bool = False
    draw_reason: DrawReason | None = None
    last_move: tuple[str, str] | None = None
    king_square_in_check: str | None = None
    captured_pieces: Mapping[Color, tuple[str, ...]] = field(default_factory=dict)

    @property
    def is_draw(self) -> bool:
        return self.draw_reason is not None

    @property
    def is_game_over(self) -> bool:
        return self.phase is SessionPhase.TERMINAL

    @property
    def is_player_turn(self) -> bool:
        return self.phase is SessionPhase.AWAITING_PLAYER_MOVE

    @property
    def result_message(self) -> str | None:
        return self.result.message if self.result is not None else None
