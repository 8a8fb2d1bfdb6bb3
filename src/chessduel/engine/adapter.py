"""UCI engine adapter: handshake, configuration, best-move requests, shutdown.

The adapter owns one :class:`ILineChannel` and turns its stream of text lines
into callback-style requests on the Qt event loop::

    idle -> initializing -> ready <-> thinking
                 |                        |
                 +--------> error <-------+

``terminate()`` returns any state to ``idle``.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from chessduel.core.errors import (
    ChessDuelError,
    EngineProcessError,
    EngineTimeoutError,
    InitializationError,
    ProtocolError,
)
from chessduel.core.notation import is_well_formed
from chessduel.engine.channel import ILineChannel
from chessduel.engine.correlation import ResponseRegistry, first_token_is
from chessduel.engine.difficulty import Difficulty, resolve, to_engine_directives
from chessduel.engine.search import (
    DEFAULT_MOVE_TIME_MS,
    EngineStatus,
    ErrorCallback,
    ReadyCallback,
    SearchCallback,
    SearchOutcome,
)

_LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class _SearchRequest:
    fen: str
    difficulty: Difficulty
    timeout_ms: int
    on_done: SearchCallback
    ticket: int | None = None
    started_at: float = 0.0


class EngineAdapter(QObject):
    """Drives one UCI engine through its full lifecycle.

    Best-move requests are served one at a time.  A request made while a
    search is running waits in a queue until the running search resolves,
    so a late ``bestmove`` is always consumed by the request it belongs to.

    Args:
        channel: Transport to the engine process; opened by the constructor.
        init_timeout_ms: Budget for the ``uci``/``isready`` handshake.
        grace_ms: Added to each request's move time before it times out.
    """

    status_changed = pyqtSignal(object)

    INIT_TIMEOUT_MS = 10_000
    GRACE_MS = 1_000

    __slots__ = (
        "_channel",
        "_registry",
        "_status",
        "_error",
        "_ready_waiters",
        "_queue",
        "_active",
        "_grace_ms",
        "_init_timeout_ms",
        "_init_timer",
        "_search_timer",
    )

    def __init__(
        self,
        channel: ILineChannel,
        *,
        init_timeout_ms: int = INIT_TIMEOUT_MS,
        grace_ms: int = GRACE_MS,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._channel = channel
        self._registry = ResponseRegistry()
        self._status = EngineStatus.IDLE
        self._error: ChessDuelError | None = None
        self._ready_waiters: list[tuple[ReadyCallback, ErrorCallback]] = []
        self._queue: deque[_SearchRequest] = deque()
        self._active: _SearchRequest | None = None
        self._grace_ms = grace_ms
        self._init_timeout_ms = init_timeout_ms

        self._init_timer = QTimer(self)
        self._init_timer.setSingleShot(True)
        self._init_timer.timeout.connect(self._on_init_timeout)

        self._search_timer = QTimer(self)
        self._search_timer.setSingleShot(True)
        self._search_timer.timeout.connect(self._on_search_timeout)

        channel.line_received.connect(self._on_line)
        channel.failed.connect(self._on_channel_failed)

        self._initialize()

    # ── Properties ───────────────────────────────────────────────────────

    @property
    def status(self) -> EngineStatus:
        return self._status

    @property
    def error(self) -> ChessDuelError | None:
        """The failure that moved the adapter to ``error``, if any."""
        return self._error

    @property
    def pending_requests(self) -> int:
        """Requests accepted but not yet resolved (running + queued)."""
        return len(self._queue) + (1 if self._active is not None else 0)

    # ── Public API ───────────────────────────────────────────────────────

    def ensure_ready(self, on_ready: ReadyCallback, on_error: ErrorCallback) -> None:
        """Call *on_ready* once the handshake is done, or *on_error* if it fails.

        Callers arriving during initialization share the same handshake.
        """
        status = self._status
        if status in (EngineStatus.READY, EngineStatus.THINKING):
            on_ready()
        elif status is EngineStatus.INITIALIZING:
            self._ready_waiters.append((on_ready, on_error))
        elif status is EngineStatus.ERROR:
            on_error(self._error or InitializationError("Engine initialization failed"))
        else:
            on_error(InitializationError("Engine is not running"))

    def get_best_move(
        self,
        fen: str,
        difficulty: Difficulty,
        on_done: SearchCallback,
        timeout_ms: int = DEFAULT_MOVE_TIME_MS,
    ) -> None:
        """Search *fen* at *difficulty* strength for up to *timeout_ms*.

        *on_done* always receives a :class:`SearchOutcome`; failures are
        delivered as values, never raised.
        """
        request = _SearchRequest(fen, difficulty, timeout_ms, on_done)
        self.ensure_ready(
            lambda: self._enqueue(request),
            lambda error: on_done(SearchOutcome.failure(error)),
        )

    def terminate(self) -> None:
        """Kill the engine and drop every pending callback without calling it."""
        self._init_timer.stop()
        self._search_timer.stop()
        self._registry.clear()
        self._ready_waiters.clear()
        self._queue.clear()
        self._active = None
        self._channel.close()
        self._set_status(EngineStatus.IDLE)

    # ── Handshake ────────────────────────────────────────────────────────

    def _initialize(self) -> None:
        self._set_status(EngineStatus.INITIALIZING)
        self._registry.expect(first_token_is("uciok"), self._on_uciok)
        self._init_timer.start(self._init_timeout_ms)
        self._channel.open()
        self._send("uci")

    def _on_uciok(self, _line: str) -> None:
        if self._status is not EngineStatus.INITIALIZING:
            return
        self._registry.expect(first_token_is("readyok"), self._on_readyok)
        self._send("isready")

    def _on_readyok(self, _line: str) -> None:
        if self._status is not EngineStatus.INITIALIZING:
            return
        self._init_timer.stop()
        self._set_status(EngineStatus.READY)
        waiters, self._ready_waiters = self._ready_waiters, []
        for on_ready, _on_error in waiters:
            on_ready()

    def _on_init_timeout(self) -> None:
        if self._status is not EngineStatus.INITIALIZING:
            return
        self._fail_initialization(
            InitializationError(
                f"Engine initialization timed out after {self._init_timeout_ms} ms"
            )
        )

    def _fail_initialization(self, error: InitializationError) -> None:
        _LOGGER.warning("%s", error)
        self._init_timer.stop()
        self._registry.clear()
        self._error = error
        self._set_status(EngineStatus.ERROR)
        waiters, self._ready_waiters = self._ready_waiters, []
        for _on_ready, on_error in waiters:
            on_error(error)

    # ── Searching ────────────────────────────────────────────────────────

    def _enqueue(self, request: _SearchRequest) -> None:
        self._queue.append(request)
        if self._active is not None:
            _LOGGER.debug("Search in progress, queued request (%d waiting)", len(self._queue))
            return
        self._start_next_search()

    def _start_next_search(self) -> None:
        if self._status is not EngineStatus.READY or not self._queue:
            return
        request = self._queue.popleft()
        self._active = request
        self._set_status(EngineStatus.THINKING)

        request.started_at = time.monotonic()
        request.ticket = self._registry.expect(first_token_is("bestmove"), self._on_bestmove)
        for directive in to_engine_directives(resolve(request.difficulty)):
            self._send(directive)
        self._send(f"position fen {request.fen}")
        self._send(f"go movetime {request.timeout_ms}")
        if self._active is request:
            self._search_timer.start(request.timeout_ms + self._grace_ms)

    def _on_bestmove(self, line: str) -> None:
        request = self._active
        if request is None:
            return
        self._search_timer.stop()
        self._active = None
        elapsed_ms = self._elapsed_ms(request)

        parts = line.split()
        move = parts[1] if len(parts) >= 2 else ""
        if not is_well_formed(move):
            self._fail(request, ProtocolError(f"Malformed bestmove reply: {line!r}"), elapsed_ms)
            return

        self._set_status(EngineStatus.READY)
        _LOGGER.debug("Best move %s after %d ms", move, elapsed_ms)
        request.on_done(SearchOutcome.success(move, elapsed_ms))
        self._start_next_search()

    def _on_search_timeout(self) -> None:
        request = self._active
        if request is None:
            return
        if request.ticket is not None:
            self._registry.cancel(request.ticket)
        self._active = None
        error = EngineTimeoutError(
            f"No bestmove within {request.timeout_ms + self._grace_ms} ms"
        )
        self._fail(request, error, self._elapsed_ms(request))

    def _fail(self, request: _SearchRequest, error: ChessDuelError, elapsed_ms: int) -> None:
        """Put the adapter in ``error`` and fail *request* plus everything queued."""
        _LOGGER.warning("Engine search failed: %s", error)
        self._error = error
        self._set_status(EngineStatus.ERROR)
        request.on_done(SearchOutcome.failure(error, elapsed_ms))
        queued, self._queue = self._queue, deque()
        for waiting in queued:
            waiting.on_done(SearchOutcome.failure(error))

    # ── Channel slots ────────────────────────────────────────────────────

    def _on_line(self, line: str) -> None:
        line = line.strip()
        if not line:
            return
        if not self._registry.dispatch(line):
            _LOGGER.debug("Unsolicited engine output: %s", line)

    def _on_channel_failed(self, message: str) -> None:
        status = self._status
        if status is EngineStatus.INITIALIZING:
            self._fail_initialization(InitializationError(message))
        elif status is EngineStatus.THINKING and self._active is not None:
            request, self._active = self._active, None
            self._search_timer.stop()
            self._registry.clear()
            self._fail(request, EngineProcessError(message), self._elapsed_ms(request))
        elif status is EngineStatus.READY:
            _LOGGER.warning("Engine failed while idle: %s", message)
            self._registry.clear()
            self._error = EngineProcessError(message)
            self._set_status(EngineStatus.ERROR)

    # ── Internal helpers ─────────────────────────────────────────────────

    def _send(self, command: str) -> None:
        if self._status in (EngineStatus.IDLE, EngineStatus.ERROR):
            return
        self._channel.write_line(command)

    def _set_status(self, status: EngineStatus) -> None:
        if status is self._status:
            return
        _LOGGER.debug("Engine status %s -> %s", self._status, status)
        self._status = status
        self.status_changed.emit(status)

    @staticmethod
    def _elapsed_ms(request: _SearchRequest) -> int:
        return int((time.monotonic() - request.started_at) * 1000)


