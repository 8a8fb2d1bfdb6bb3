"""GameSession: one human player against one UCI engine.

Owns the authoritative position and move history, validates player moves,
asks the engine for replies and detects the end of the game.  Everything
runs on the Qt event loop; engine replies arrive as callbacks.

Every action that invalidates an in-flight engine request (undo, resign,
reset, a new game) bumps a generation counter.  Replies are tagged with
the generation they were requested under and dropped when it no longer
matches.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from functools import partial

from PyQt6.QtCore import QObject, QTimer

from chessduel.core.enums import Color, TerminalKind
from chessduel.core.errors import (
    ChessDuelError,
    EngineIllegalMoveError,
    IllegalMoveError,
    NotPlayersTurnError,
    ProtocolError,
)
from chessduel.core.notation import MoveAddress, decode, encode
from chessduel.core.rules import ChessRules, Classification, IRules, MoveOutcome
from chessduel.engine.difficulty import Difficulty
from chessduel.engine.search import (
    DEFAULT_MOVE_TIME_MS,
    EngineStatus,
    IEngineAdapter,
    SearchOutcome,
)
from chessduel.game.interfaces import (
    Actor,
    IGameSession,
    ResultKind,
    SessionPhase,
    SessionStatus,
)
from chessduel.game.state import (
    GameResult,
    GameState,
    MoveAttempt,
    MoveRecord,
    SessionState,
)

_LOGGER = logging.getLogger(__name__)

# ── Event definitions ────────────────────────────────────────────────────────

StateCallback = Callable[[SessionState], None]
MoveCallback = Callable[[MoveRecord, SessionState], None]
GameOverCallback = Callable[[GameResult], None]


@dataclass
class SessionEvents:
    """Observable callbacks. Multiple handlers per event."""

    on_state_changed: list[StateCallback] = field(default_factory=list)
    on_move: list[MoveCallback] = field(default_factory=list)
    on_game_over: list[GameOverCallback] = field(default_factory=list)


# ── Session ──────────────────────────────────────────────────────────────────


class GameSession(IGameSession):
    """Orchestrates a human-vs-engine game.

    Args:
        engine: Adapter that answers best-move requests.
        rules: Move validation and position classification.
        move_time_ms: Thinking time handed to the engine per move.
        request_delay_ms: Pause before the engine request goes out, so the
            player's move is shown before the engine starts thinking.
        parent: Qt parent for the internal dispatch timer.
    """

    _REQUEST_DELAY_MS = 50

    __slots__ = (
        "_engine",
        "_rules",
        "_game",
        "_move_time_ms",
        "_request_delay_ms",
        "_dispatch_timer",
        "_generation",
        "_scheduled_generation",
        "_in_flight_generation",
        "events",
    )

    def __init__(
        self,
        engine: IEngineAdapter,
        *,
        rules: IRules | None = None,
        move_time_ms: int = DEFAULT_MOVE_TIME_MS,
        request_delay_ms: int = _REQUEST_DELAY_MS,
        parent: QObject | None = None,
    ) -> None:
        self._engine = engine
        self._rules = rules if rules is not None else ChessRules()
        self._game = GameState()
        self._move_time_ms = move_time_ms
        self._request_delay_ms = request_delay_ms

        self._dispatch_timer = QTimer(parent)
        self._dispatch_timer.setSingleShot(True)
        self._dispatch_timer.timeout.connect(self._dispatch_pending_request)
        engine.status_changed.connect(self._on_engine_status)

        self._generation = 0
        self._scheduled_generation: int | None = None
        self._in_flight_generation: int | None = None
        self.events = SessionEvents()

    # ── Properties ───────────────────────────────────────────────────────

    @property
    def state(self) -> SessionState:
        return self._snapshot()

    @property
    def adapter_status(self) -> EngineStatus:
        return self._engine.status

    @property
    def phase(self) -> SessionPhase:
        return self._game.phase

    @property
    def generation(self) -> int:
        """Current request generation; bumped whenever a pending reply goes stale."""
        return self._generation

    @property
    def has_pending_request(self) -> bool:
        """True from scheduling an engine request until its reply is handled."""
        return (
            self._scheduled_generation is not None
            or self._in_flight_generation is not None
        )

    @property
    def can_undo(self) -> bool:
        game = self._game
        return (
            game.phase is not SessionPhase.UNINITIALIZED
            and game.ply_count >= 2
            and game.has_player_move
        )

    # ── IGameSession impl ────────────────────────────────────────────────

    def start(
        self,
        player_color: Color,
        difficulty: Difficulty,
        fen: str | None = None,
    ) -> None:
        """Begin a new game; the engine moves first when the player is black.

        A custom *fen* is validated up front and rejected with
        :class:`ValueError` if the rules cannot parse it.
        """
        if fen is not None:
            self._rules.turn(fen)
        self._invalidate()
        self._game.setup(player_color, difficulty, fen)
        _LOGGER.info(
            "New game: player=%s difficulty=%s fen=%s",
            player_color,
            difficulty,
            self._game.fen,
        )

        classification = self._classify()
        if classification.is_terminal:
            # Only possible from a custom FEN; the side not to move delivered it.
            mover = Actor.OPPONENT if self._game.side_to_move is player_color else Actor.PLAYER
            self._finish(self._result_from(classification, mover))
        else:
            self._enter_turn_phase()
        self._emit_state()

    def submit_player_move(
        self,
        from_square: str,
        to_square: str,
        promotion: str | None = None,
    ) -> MoveAttempt:
        game = self._game
        if game.phase is not SessionPhase.AWAITING_PLAYER_MOVE:
            error = NotPlayersTurnError(f"Not the player's turn (status: {self._public_status()})")
            _LOGGER.debug("%s", error)
            return MoveAttempt(False, error)

        try:
            encode(from_square, to_square, promotion)
        except ValueError as exc:
            return MoveAttempt(
                False, IllegalMoveError(f"{from_square}{to_square}{promotion or ''}", str(exc))
            )
        address = MoveAddress(from_square, to_square, promotion)

        try:
            outcome = self._rules.apply_move(game.fen, address, game.history())
        except IllegalMoveError as exc:
            _LOGGER.debug("Rejected player move %s: %s", address, exc.reason)
            return MoveAttempt(False, exc)

        record = self._advance(outcome, Actor.PLAYER)
        return MoveAttempt(True, record=record)

    def undo(self) -> bool:
        """Take back the last player move and any opponent reply after it."""
        if not self.can_undo:
            return False
        game = self._game
        self._invalidate()
        removed = game.pop_last_turn()
        game.fen = self._rules.replay(game.start_fen, [record.uci for record in game.moves])
        game.result = None
        game.phase = SessionPhase.AWAITING_PLAYER_MOVE
        _LOGGER.info("Undo: removed %s", " ".join(record.uci for record in reversed(removed)))
        self._emit_state()
        return True

    def resign(self) -> bool:
        if self._game.phase not in (
            SessionPhase.AWAITING_PLAYER_MOVE,
            SessionPhase.AWAITING_OPPONENT_MOVE,
        ):
            return False
        self._invalidate()
        _LOGGER.info("Player resigned after %d plies", self._game.ply_count)
        self._finish(GameResult(ResultKind.RESIGNATION, winner=Actor.OPPONENT))
        self._emit_state()
        return True

    def reset(self) -> None:
        self._invalidate()
        self._game.clear()
        self._emit_state()

    new_game = reset

    # ── Queries ──────────────────────────────────────────────────────────

    def legal_moves(self, square: str | None = None) -> list[str]:
        """Destination squares open to the player now, optionally from *square* only."""
        if self._game.phase is not SessionPhase.AWAITING_PLAYER_MOVE:
            return []
        try:
            return self._rules.legal_moves(self._game.fen, square)
        except ValueError:
            return []

    def needs_promotion(self, from_square: str, to_square: str) -> bool:
        if self._game.phase is not SessionPhase.AWAITING_PLAYER_MOVE:
            return False
        try:
            return self._rules.needs_promotion(self._game.fen, from_square, to_square)
        except ValueError:
            return False

    def shutdown(self) -> None:
        """Drop any pending request and stop the engine."""
        self._invalidate()
        self._engine.terminate()

    # ── Opponent turn ────────────────────────────────────────────────────

    def _schedule_opponent_move(self) -> None:
        self._generation += 1
        self._scheduled_generation = self._generation
        self._dispatch_timer.start(self._request_delay_ms)

    def _dispatch_pending_request(self) -> None:
        generation = self._scheduled_generation
        if generation is None or generation != self._generation:
            return
        self._scheduled_generation = None
        self._dispatch_timer.stop()
        if self._game.phase is not SessionPhase.AWAITING_OPPONENT_MOVE:
            return
        game = self._game
        _LOGGER.debug("Requesting engine move (generation %d): %s", generation, game.fen)
        self._in_flight_generation = generation
        self._engine.get_best_move(
            game.fen,
            game.difficulty,
            partial(self._on_engine_reply, generation),
            self._move_time_ms,
        )

    def _on_engine_reply(self, generation: int, outcome: SearchOutcome) -> None:
        if generation != self._generation:
            _LOGGER.info(
                "Discarding stale engine reply (generation %d, current %d)",
                generation,
                self._generation,
            )
            return
        game = self._game
        if game.phase is not SessionPhase.AWAITING_OPPONENT_MOVE:
            return
        self._in_flight_generation = None

        if not outcome.ok:
            self._abort(outcome.error or ProtocolError("Engine returned no move"))
            return

        text = outcome.move or ""
        try:
            address = decode(text)
        except ProtocolError as exc:
            self._abort(exc)
            return
        try:
            result = self._rules.apply_move(game.fen, address, game.history())
        except IllegalMoveError:
            self._abort(EngineIllegalMoveError(text, game.fen))
            return

        _LOGGER.info("Engine played %s in %d ms", result.san, outcome.elapsed_ms)
        self._advance(result, Actor.OPPONENT)

    def _on_engine_status(self, status: EngineStatus) -> None:
        # The public status and adapter_status both follow the engine.
        if self._game.phase is SessionPhase.UNINITIALIZED:
            return
        _LOGGER.debug("Engine status is now %s", status)
        self._emit_state()

    def _abort(self, error: ChessDuelError) -> None:
        _LOGGER.error("Engine move failed, ending game: %s", error)
        self._finish(GameResult(ResultKind.ENGINE_FAILURE, reason=str(error)))
        self._emit_state()

    # ── Internal helpers ─────────────────────────────────────────────────

    def _advance(self, outcome: MoveOutcome, actor: Actor) -> MoveRecord:
        """Record a validated move, then hand the turn over or end the game."""
        record = MoveRecord(
            san=outcome.san,
            uci=outcome.uci,
            actor=actor,
            timestamp_ms=int(time.time() * 1000),
            flags=outcome.flags,
            fen_after=outcome.fen,
        )
        self._game.push(record)

        snapshot = self._snapshot()
        for callback in self.events.on_move:
            callback(record, snapshot)

        classification = outcome.classification
        if classification.is_terminal:
            self._finish(self._result_from(classification, actor))
        else:
            self._enter_turn_phase()
        self._emit_state()
        return record

    def _enter_turn_phase(self) -> None:
        game = self._game
        if game.side_to_move is game.player_color:
            game.phase = SessionPhase.AWAITING_PLAYER_MOVE
        else:
            game.phase = SessionPhase.AWAITING_OPPONENT_MOVE
            self._schedule_opponent_move()

    def _finish(self, result: GameResult) -> None:
        game = self._game
        game.phase = SessionPhase.TERMINAL
        game.result = result
        _LOGGER.info("Game over: %s", result.message)
        for callback in self.events.on_game_over:
            callback(result)

    def _invalidate(self) -> None:
        self._generation += 1
        self._scheduled_generation = None
        self._in_flight_generation = None
        self._dispatch_timer.stop()

    @staticmethod
    def _result_from(classification: Classification, mover: Actor) -> GameResult:
        kind = classification.terminal_kind
        if kind is TerminalKind.CHECKMATE:
            return GameResult(ResultKind.CHECKMATE, winner=mover)
        if kind is TerminalKind.STALEMATE:
            return GameResult(ResultKind.STALEMATE, reason="stalemate")
        return GameResult(ResultKind.DRAW, reason=str(classification.draw_reason))

    def _classify(self) -> Classification:
        game = self._game
        return self._rules.classify(game.fen, game.history())

    def _public_status(self) -> SessionStatus:
        phase = self._game.phase
        if phase is SessionPhase.UNINITIALIZED:
            return SessionStatus.START_SCREEN
        if phase is SessionPhase.TERMINAL:
            return SessionStatus.GAME_OVER
        if phase is SessionPhase.AWAITING_PLAYER_MOVE:
            return SessionStatus.PLAYER_TURN
        if self._engine.status is EngineStatus.INITIALIZING:
            return SessionStatus.INITIALIZING
        return SessionStatus.AI_THINKING

    def _snapshot(self) -> SessionState:
        game = self._game
        rules = self._rules
        classification = self._classify()
        last = game.moves[-1] if game.moves else None
        captured = rules.captured_pieces(game.fen)
        return SessionState(
            fen=game.fen,
            turn=game.side_to_move,
            moves=tuple(game.moves),
            phase=game.phase,
            status=self._public_status(),
            player_color=game.player_color,
            opponent_color=game.opponent_color,
            difficulty=game.difficulty,
            result=game.result,
            is_check=classification.check,
            is_checkmate=classification.checkmate,
            is_stalemate=classification.stalemate,
            draw_reason=classification.draw_reason,
            last_move=(last.from_square, last.to_square) if last is not None else None,
            king_square_in_check=rules.king_square_in_check(game.fen),
            captured_pieces={color: tuple(pieces) for color, pieces in captured.items()},
        )

    def _emit_state(self) -> None:
        if not self.events.on_state_changed:
            return
        snapshot = self._snapshot()
        for callback in self.events.on_state_changed:
            callback(snapshot)
