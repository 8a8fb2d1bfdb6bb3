"""Engine package: UCI process channel, adapter and difficulty profiles."""

from chessduel.engine.adapter import EngineAdapter
from chessduel.engine.channel import ILineChannel, ProcessChannel
from chessduel.engine.correlation import ResponseRegistry, first_token_is
from chessduel.engine.difficulty import (
    Difficulty,
    EngineConfig,
    resolve,
    to_engine_directives,
)
from chessduel.engine.search import (
    DEFAULT_MOVE_TIME_MS,
    EngineStatus,
    IEngineAdapter,
    SearchOutcome,
)

__all__ = [
    "DEFAULT_MOVE_TIME_MS",
    "Difficulty",
    "EngineAdapter",
    "EngineConfig",
    "EngineStatus",
    "IEngineAdapter",
    "ILineChannel",
    "ProcessChannel",
    "ResponseRegistry",
    "SearchOutcome",
    "first_token_is",
    "resolve",
    "to_engine_directives",
]
