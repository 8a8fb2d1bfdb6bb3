"""Console entry point: play one engine from the terminal."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Callable, Sequence
from dataclasses import replace

import chess
from PyQt6.QtCore import QCoreApplication, QEventLoop

from chessduel.core.enums import Color
from chessduel.core.errors import ProtocolError
from chessduel.core.notation import PROMOTION_PIECES, decode
from chessduel.engine.adapter import EngineAdapter
from chessduel.engine.channel import ProcessChannel
from chessduel.engine.difficulty import Difficulty
from chessduel.game.interfaces import SessionPhase
from chessduel.game.session import GameSession
from chessduel.game.state import SessionState
from chessduel.settings import AppSettings, parse_color

_LOGGER = logging.getLogger(__name__)

_HELP = """\
Commands:
  <move>    play a move in coordinate form, e.g. e2e4 or e7e8q
  moves     list the moves played so far
  legal     list legal moves (optionally: legal e2)
  undo      take back your last move and the engine's reply
  resign    resign the game
  new       start a new game with the same settings
  fen       print the current position as FEN
  help      show this text
  quit      leave"""


# ── Settings from the command line ───────────────────────────────────────────


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chessduel",
        description="Play chess against a UCI engine in the terminal.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--engine", help="Engine command line (env: CHESSDUEL_ENGINE)")
    parser.add_argument(
        "--difficulty",
        type=Difficulty.parse,
        help="easy, medium, hard or veryHard (env: CHESSDUEL_DIFFICULTY)",
    )
    parser.add_argument(
        "--color",
        type=parse_color,
        help="Side you play: white or black (env: CHESSDUEL_COLOR)",
    )
    parser.add_argument("--fen", help="Start from this position instead of the initial one")
    parser.add_argument(
        "--move-time", type=int, dest="move_time_ms", help="Engine time per move in ms"
    )
    parser.add_argument(
        "--init-timeout", type=int, dest="init_timeout_ms", help="Engine handshake timeout in ms"
    )
    parser.add_argument(
        "--log-level",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        type=str.upper,
        help="Logging verbosity (env: CHESSDUEL_LOG_LEVEL)",
    )
    return parser


def settings_from_args(args: argparse.Namespace, base: AppSettings) -> AppSettings:
    """Overlay explicitly given flags on *base*."""
    overrides: dict[str, object] = {}
    if args.engine:
        overrides["engine_command"] = args.engine
    for name in ("difficulty", "move_time_ms", "init_timeout_ms", "log_level"):
        value = getattr(args, name)
        if value is not None:
            overrides[name] = value
    if args.color is not None:
        overrides["player_color"] = args.color
    return replace(base, **overrides)


# ── Console loop ─────────────────────────────────────────────────────────────


class ConsoleGame:
    """Line-oriented front end for a :class:`GameSession`.

    Input and output are injectable so the command handling can run without
    a terminal.
    """

    __slots__ = ("_session", "_settings", "_fen", "_read_line", "_write")

    def __init__(
        self,
        session: GameSession,
        settings: AppSettings,
        *,
        fen: str | None = None,
        read_line: Callable[[str], str] = input,
        write: Callable[[str], None] = print,
    ) -> None:
        self._session = session
        self._settings = settings
        self._fen = fen
        self._read_line = read_line
        self._write = write
        session.events.on_game_over.append(lambda result: self._write(result.message))

    def new_game(self) -> None:
        settings = self._settings
        self._session.start(settings.player_color, settings.difficulty, self._fen)
        self._write(
            f"New game: you play {settings.player_color!s}, difficulty {settings.difficulty}."
        )

    def run(self) -> int:
        """Play until the user quits or input ends."""
        self.new_game()
        while True:
            self._wait_for_player()
            self._render(self._session.state)
            try:
                line = self._read_line("> ")
            except EOFError:
                break
            if not self.handle_command(line):
                break
        return 0

    def handle_command(self, line: str) -> bool:
        """Run one command. Returns False when the user wants to leave."""
        session = self._session
        words = line.strip().split()
        if not words:
            return True
        command, args = words[0].lower(), words[1:]

        if command in ("quit", "exit", "q"):
            return False
        if command == "help":
            self._write(_HELP)
        elif command == "moves":
            self._write(_format_moves(session.state) or "No moves yet.")
        elif command == "legal":
            square = args[0] if args else None
            self._write(" ".join(session.legal_moves(square)) or "No legal moves.")
        elif command == "undo":
            if not session.undo():
                self._write("Nothing to undo.")
        elif command == "resign":
            if not session.resign():
                self._write("No game in progress.")
        elif command == "new":
            self.new_game()
        elif command == "fen":
            self._write(session.state.fen)
        else:
            self._play(command)
        return True

    def _play(self, text: str) -> None:
        try:
            address = decode(text)
        except ProtocolError:
            self._write(f"Unknown command or move: {text!r} (type 'help')")
            return
        promotion = address.promotion
        if promotion is None and self._session.needs_promotion(
            address.from_square, address.to_square
        ):
            promotion = self._ask_promotion()
            if promotion is None:
                return
        attempt = self._session.submit_player_move(
            address.from_square, address.to_square, promotion
        )
        if not attempt.success:
            self._write(f"Rejected: {attempt.error}")

    def _ask_promotion(self) -> str | None:
        choices = "/".join(PROMOTION_PIECES)
        while True:
            try:
                answer = self._read_line(f"Promote to ({choices}): ").strip().lower()
            except EOFError:
                return None
            if answer in PROMOTION_PIECES:
                return answer
            if not answer:
                return None

    def _wait_for_player(self) -> None:
        """Spin the Qt event loop while the engine is thinking."""
        session = self._session
        if session.phase is not SessionPhase.AWAITING_OPPONENT_MOVE:
            return
        self._write("Engine is thinking...")
        loop = QEventLoop()

        def on_state(state: SessionState) -> None:
            if state.phase is not SessionPhase.AWAITING_OPPONENT_MOVE:
                loop.quit()

        session.events.on_state_changed.append(on_state)
        try:
            loop.exec()
        finally:
            session.events.on_state_changed.remove(on_state)

    def _render(self, state: SessionState) -> None:
        board = chess.Board(state.fen)
        self._write(str(board))
        if state.moves:
            last = state.moves[-1]
            self._write(f"Last move: {last.san} ({last.actor})")
        if state.is_check and not state.is_game_over:
            self._write("Check!")
        if state.is_game_over:
            # The result itself was printed by the game-over hook.
            self._write("Game over. Type 'new' or 'quit'.")
        elif state.turn is Color.WHITE:
            self._write("White to move.")
        else:
            self._write("Black to move.")


def _format_moves(state: SessionState) -> str:
    """Move list in numbered pairs: ``1. e4 e5 2. Nf3``."""
    parts: list[str] = []
    fullmove = int(state.moves[0].fen_after.split()[5]) if state.moves else 1
    black_first = bool(state.moves) and state.moves[0].fen_after.split()[1] == "w"
    if black_first:
        fullmove -= 1
        parts.append(f"{fullmove}...")
    for record in state.moves:
        white_moved = record.fen_after.split()[1] == "b"
        if white_moved:
            parts.append(f"{fullmove}.")
        parts.append(record.san)
        if not white_moved:
            fullmove += 1
    return " ".join(parts)


# ── Entry point ──────────────────────────────────────────────────────────────


def main(argv: Sequence[str] | None = None) -> int:
    """Launch the console game."""
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    try:
        settings = settings_from_args(args, AppSettings.from_env())
    except ValueError as exc:
        parser.error(str(exc))

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    program, *arguments = settings.engine_argv or ["stockfish"]
    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    app.setApplicationName("ChessDuel")

    channel = ProcessChannel(program, arguments)
    engine = EngineAdapter(channel, init_timeout_ms=settings.init_timeout_ms)
    session = GameSession(
        engine,
        move_time_ms=settings.move_time_ms,
        request_delay_ms=settings.request_delay_ms,
    )
    console = ConsoleGame(session, settings, fen=args.fen)
    try:
        return console.run()
    except ValueError as exc:
        _LOGGER.error("Cannot start game: %s", exc)
        return 2
    finally:
        session.shutdown()


if __name__ == "__main__":
    sys.exit(main())
