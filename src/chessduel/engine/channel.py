"""Line-oriented transport to an external engine process."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Protocol

from PyQt6.QtCore import QObject, QProcess, pyqtSignal

_LOGGER = logging.getLogger(__name__)


class LineSignal(Protocol):
    """Minimal signal interface used by :class:`EngineAdapter`."""

    def connect(self, slot: Callable[..., object]) -> object: ...


class ILineChannel(Protocol):
    """Bidirectional text channel delivering one line per signal emission."""

    line_received: LineSignal
    failed: LineSignal

    def open(self) -> None: ...

    def write_line(self, line: str) -> None: ...

    def close(self) -> None: ...


class ProcessChannel(QObject):
    """Runs an engine executable under :class:`QProcess` and splits its output into lines.

    Output is merged (stdout + stderr).  ``failed`` is emitted when the
    process cannot be started, crashes or exits on its own; it is not emitted
    for a shutdown requested through :meth:`close`.
    """

    line_received = pyqtSignal(str)
    failed = pyqtSignal(str)

    _QUIT_WAIT_MS = 500
    _KILL_WAIT_MS = 1000

    __slots__ = ("_program", "_arguments", "_working_directory", "_process", "_closing")

    def __init__(
        self,
        program: str,
        arguments: Sequence[str] = (),
        *,
        working_directory: str | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._program = program
        self._arguments = list(arguments)
        self._working_directory = working_directory
        self._process: QProcess | None = None
        self._closing = False

    @property
    def is_running(self) -> bool:
        return (
            self._process is not None
            and self._process.state() != QProcess.ProcessState.NotRunning
        )

    def open(self) -> None:
        """Start the process. Writes issued before it is up are buffered."""
        if self._process is not None:
            return
        self._closing = False

        process = QProcess(self)
        process.setProcessChannelMode(QProcess.ProcessChannelMode.MergedChannels)
        if self._working_directory:
            process.setWorkingDirectory(self._working_directory)
        process.readyReadStandardOutput.connect(self._read_lines)
        process.errorOccurred.connect(self._on_error)
        process.finished.connect(self._on_finished)
        self._process = process

        _LOGGER.info("Starting engine: %s %s", self._program, " ".join(self._arguments))
        process.start(self._program, self._arguments)

    def write_line(self, line: str) -> None:
        process = self._process
        if process is None or process.state() == QProcess.ProcessState.NotRunning:
            _LOGGER.warning("Engine not running, dropped command: %s", line)
            return
        _LOGGER.debug(">> %s", line)
        process.write(f"{line}\n".encode())

    def close(self) -> None:
        """Ask the engine to quit, then kill it if it does not exit promptly."""
        process = self._process
        if process is None:
            return
        self._closing = True
        self._process = None

        if process.state() != QProcess.ProcessState.NotRunning:
            process.write(b"quit\n")
            process.closeWriteChannel()
            if not process.waitForFinished(self._QUIT_WAIT_MS):
                _LOGGER.info("Engine ignored quit, killing process")
                process.kill()
                process.waitForFinished(self._KILL_WAIT_MS)
        process.deleteLater()

    # ── QProcess slots ───────────────────────────────────────────────────

    def _read_lines(self) -> None:
        process = self._process
        if process is None:
            return
        while process.canReadLine():
            line = bytes(process.readLine()).decode("utf-8", errors="replace").strip()
            if line:
                _LOGGER.debug("<< %s", line)
                self.line_received.emit(line)

    def _on_error(self, error: QProcess.ProcessError) -> None:
        if self._closing:
            return
        process = self._process
        detail = process.errorString() if process is not None else error.name
        _LOGGER.warning("Engine process error (%s): %s", error.name, detail)
        self.failed.emit(f"engine process error: {detail}")

    def _on_finished(self, exit_code: int, _exit_status: QProcess.ExitStatus) -> None:
        if self._closing:
            return
        _LOGGER.warning("Engine exited unexpectedly with code %s", exit_code)
        self.failed.emit(f"engine exited with code {exit_code}")
