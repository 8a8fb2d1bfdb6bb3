"""Runtime settings for the console front end.

Defaults can be overridden by ``CHESSDUEL_*`` environment variables, which
are in turn overridden by command-line flags.
"""

from __future__ import annotations

import os
import shlex
from collections.abc import Mapping
from dataclasses import dataclass, replace

from chessduel.core.enums import Color
from chessduel.engine.adapter import EngineAdapter
from chessduel.engine.difficulty import Difficulty
from chessduel.engine.search import DEFAULT_MOVE_TIME_MS

ENV_PREFIX = "CHESSDUEL_"


@dataclass(slots=True, frozen=True)
class AppSettings:
    """Everything needed to wire an engine, a session and the console loop."""

    engine_command: str = "stockfish"
    difficulty: Difficulty = Difficulty.MEDIUM
    player_color: Color = Color.WHITE
    move_time_ms: int = DEFAULT_MOVE_TIME_MS
    init_timeout_ms: int = EngineAdapter.INIT_TIMEOUT_MS
    request_delay_ms: int = 50
    log_level: str = "WARNING"

    @property
    def engine_argv(self) -> list[str]:
        """``engine_command`` split into program and arguments."""
        return shlex.split(self.engine_command)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> AppSettings:
        """Build settings from defaults plus ``CHESSDUEL_*`` overrides.

        Raises:
            ValueError: If a variable holds an unparsable value.
        """
        env = os.environ if environ is None else environ
        settings = cls()

        def get(name: str) -> str | None:
            value = env.get(f"{ENV_PREFIX}{name}")
            return value if value else None

        overrides: dict[str, object] = {}
        if (value := get("ENGINE")) is not None:
            overrides["engine_command"] = value
        if (value := get("DIFFICULTY")) is not None:
            overrides["difficulty"] = Difficulty.parse(value)
        if (value := get("COLOR")) is not None:
            overrides["player_color"] = parse_color(value)
        if (value := get("MOVE_TIME_MS")) is not None:
            overrides["move_time_ms"] = _positive_int(value, "MOVE_TIME_MS")
        if (value := get("INIT_TIMEOUT_MS")) is not None:
            overrides["init_timeout_ms"] = _positive_int(value, "INIT_TIMEOUT_MS")
        if (value := get("REQUEST_DELAY_MS")) is not None:
            overrides["request_delay_ms"] = _non_negative_int(value, "REQUEST_DELAY_MS")
        if (value := get("LOG_LEVEL")) is not None:
            overrides["log_level"] = value.upper()
        return replace(settings, **overrides)


def parse_color(text: str) -> Color:
    """Accept ``white``/``black`` or the FEN letters ``w``/``b``."""
    key = text.strip().lower()
    if key in ("w", "white"):
        return Color.WHITE
    if key in ("b", "black"):
        return Color.BLACK
    raise ValueError(f"Unknown color: {text!r}")


def _positive_int(text: str, name: str) -> int:
    value = _non_negative_int(text, name)
    if value == 0:
        raise ValueError(f"{ENV_PREFIX}{name} must be positive")
    return value


def _non_negative_int(text: str, name: str) -> int:
    try:
        value = int(text)
    except ValueError as exc:
        raise ValueError(f"{ENV_PREFIX}{name} must be an integer, got {text!r}") from exc
    if value < 0:
        raise ValueError(f"{ENV_PREFIX}{name} must not be negative")
    return value
