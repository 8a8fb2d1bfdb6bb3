"""Abstract interfaces and state enumerations for the game layer.

The presentation layer depends on :class:`IGameSession`, not on the
concrete :class:`~chessduel.game.session.GameSession`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum, IntEnum, auto
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from chessduel.core.enums import Color
    from chessduel.engine.difficulty import Difficulty
    from chessduel.engine.search import EngineStatus
    from chessduel.game.state import MoveAttempt, SessionState


# ── Session FSM states ───────────────────────────────────────────────────────


class SessionPhase(IntEnum):
    """Finite-state-machine states of a game session."""

    UNINITIALIZED = auto()
    AWAITING_PLAYER_MOVE = auto()
    AWAITING_OPPONENT_MOVE = auto()  # engine is computing
    TERMINAL = auto()


class SessionStatus(Enum):
    """Public status literal shown to the presentation layer."""

    START_SCREEN = "startScreen"
    INITIALIZING = "initializing"
    PLAYER_TURN = "playerTurn"
    AI_THINKING = "aiThinking"
    GAME_OVER = "gameOver"

    def __str__(self) -> str:
        return self.value


class Actor(Enum):
    """Who made a move."""

    PLAYER = "player"
    OPPONENT = "opponent"

    def __str__(self) -> str:
        return self.value


class ResultKind(Enum):
    """How a game ended."""

    CHECKMATE = "checkmate"
    STALEMATE = "stalemate"
    DRAW = "draw"
    RESIGNATION = "resignation"
    ENGINE_FAILURE = "engine_failure"  # abnormal end, engine misbehaved


# ── Abstract interface ───────────────────────────────────────────────────────


class IGameSession(ABC):
    """Interface for the human-vs-engine session orchestrator."""

    @property
    @abstractmethod
    def state(self) -> SessionState:
        """Read-only snapshot of the current session."""

    @property
    @abstractmethod
    def adapter_status(self) -> EngineStatus:
        """Lifecycle state of the engine adapter."""

    @abstractmethod
    def start(
        self,
        player_color: Color,
        difficulty: Difficulty,
        fen: str | None = None,
    ) -> None:
        """Begin a new game."""

    @abstractmethod
    def submit_player_move(
        self,
        from_square: str,
        to_square: str,
        promotion: str | None = None,
    ) -> MoveAttempt:
        """Play a move for the human side."""

    @abstractmethod
    def undo(self) -> bool:
        """Take back the last full turn. Returns True on success."""

    @abstractmethod
    def resign(self) -> bool:
        """The player resigns. Returns True if the game was in progress."""

    @abstractmethod
    def reset(self) -> None:
        """Discard the game and return to the start screen."""
