"""Difficulty tiers and their mapping to UCI engine options."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Difficulty(Enum):
    """Named strength tier chosen by the player."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    VERY_HARD = "veryHard"

    @classmethod
    def parse(cls, text: str) -> Difficulty:
        """Parse a tier name; accepts ``veryHard``, ``very_hard`` or ``very-hard``."""
        wanted = text.strip().replace("_", "").replace("-", "").lower()
        for tier in cls:
            if tier.value.lower() == wanted:
                return tier
        raise ValueError(f"Unknown difficulty: {text!r}")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class EngineConfig:
    """Engine parameters for one difficulty tier."""

    skill_level: int
    depth: int
    elo: int | None = None


_PROFILES: dict[Difficulty, EngineConfig] = {
    Difficulty.EASY: EngineConfig(skill_level=1, depth=1),
    Difficulty.MEDIUM: EngineConfig(skill_level=5, depth=5),
    Difficulty.HARD: EngineConfig(skill_level=10, depth=10),
    Difficulty.VERY_HARD: EngineConfig(skill_level=20, depth=20, elo=2000),
}


def resolve(difficulty: Difficulty) -> EngineConfig:
    """Return the engine configuration for *difficulty*."""
    return _PROFILES[difficulty]


def to_engine_directives(config: EngineConfig) -> list[str]:
    """UCI ``setoption`` commands that apply *config*, in sending order."""
    directives = [f"setoption name Skill Level value {config.skill_level}"]
    if config.elo is not None:
        directives.append("setoption name UCI_LimitStrength value true")
        directives.append(f"setoption name UCI_Elo value {config.elo}")
    return directives
