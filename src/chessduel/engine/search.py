"""Shared engine search models and the adapter protocol."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from PyQt6.QtCore import pyqtBoundSignal

    from chessduel.core.errors import ChessDuelError
    from chessduel.engine.difficulty import Difficulty

DEFAULT_MOVE_TIME_MS = 5000


class EngineStatus(Enum):
    """Lifecycle state of an engine adapter."""

    IDLE = "idle"
    INITIALIZING = "initializing"
    READY = "ready"
    THINKING = "thinking"
    ERROR = "error"

    def __str__(self) -> str:
        return self.value


@dataclass(slots=True, frozen=True)
class SearchOutcome:
    """Reply to a best-move request: either a move or an error, never both."""

    move: str | None = None
    elapsed_ms: int = 0
    error: ChessDuelError | None = None

    @classmethod
    def success(cls, move: str, elapsed_ms: int) -> SearchOutcome:
        return cls(move=move, elapsed_ms=elapsed_ms)

    @classmethod
    def failure(cls, error: ChessDuelError, elapsed_ms: int = 0) -> SearchOutcome:
        return cls(error=error, elapsed_ms=elapsed_ms)

    @property
    def ok(self) -> bool:
        return self.error is None and self.move is not None


ReadyCallback = Callable[[], None]
ErrorCallback = Callable[["ChessDuelError"], None]
SearchCallback = Callable[[SearchOutcome], None]


class IEngineAdapter(Protocol):
    """What the game session needs from an engine adapter."""

    # Emits the new EngineStatus on every transition.
    status_changed: pyqtBoundSignal

    @property
    def status(self) -> EngineStatus: ...

    def ensure_ready(self, on_ready: ReadyCallback, on_error: ErrorCallback) -> None: ...

    def get_best_move(
        self,
        fen: str,
        difficulty: Difficulty,
        on_done: SearchCallback,
        timeout_ms: int = DEFAULT_MOVE_TIME_MS,
    ) -> None: ...

    def terminate(self) -> None: ...
