"""Game management layer: session orchestrator, state and snapshots.

Quick start::

    from chessduel.core import Color
    from chessduel.engine import Difficulty, EngineAdapter, ProcessChannel
    from chessduel.game import GameSession

    engine = EngineAdapter(ProcessChannel("stockfish"))
    session = GameSession(engine)
    session.start(Color.WHITE, Difficulty.EASY)
    session.submit_player_move("e2", "e4")
"""

from chessduel.game.interfaces import (
    Actor,
    IGameSession,
    ResultKind,
    SessionPhase,
    SessionStatus,
)
from chessduel.game.session import GameSession, SessionEvents
from chessduel.game.state import (
    GameResult,
    GameState,
    MoveAttempt,
    MoveRecord,
    SessionState,
)

__all__ = [
    # Interfaces
    "Actor",
    "IGameSession",
    "ResultKind",
    "SessionPhase",
    "SessionStatus",
    # Concrete
    "GameResult",
    "GameSession",
    "GameState",
    "MoveAttempt",
    "MoveRecord",
    "SessionEvents",
    "SessionState",
]
