"""Tests for AppSettings environment overrides and CLI parsing."""

import pytest

from chessduel.app import build_parser, settings_from_args
from chessduel.core.enums import Color
from chessduel.engine.difficulty import Difficulty
from chessduel.settings import AppSettings, parse_color


class TestFromEnv:
    def test_defaults_without_environment(self) -> None:
        settings = AppSettings.from_env({})
        assert settings == AppSettings()
        assert settings.engine_argv == ["stockfish"]

    def test_overrides(self) -> None:
        settings = AppSettings.from_env(
            {
                "CHESSDUEL_ENGINE": "/opt/engines/sf --threads 2",
                "CHESSDUEL_DIFFICULTY": "very_hard",
                "CHESSDUEL_COLOR": "b",
                "CHESSDUEL_MOVE_TIME_MS": "1500",
                "CHESSDUEL_LOG_LEVEL": "debug",
            }
        )
        assert settings.engine_argv == ["/opt/engines/sf", "--threads", "2"]
        assert settings.difficulty is Difficulty.VERY_HARD
        assert settings.player_color is Color.BLACK
        assert settings.move_time_ms == 1500
        assert settings.log_level == "DEBUG"

    def test_empty_values_ignored(self) -> None:
        assert AppSettings.from_env({"CHESSDUEL_ENGINE": ""}).engine_command == "stockfish"

    @pytest.mark.parametrize(
        "environ",
        [
            {"CHESSDUEL_MOVE_TIME_MS": "fast"},
            {"CHESSDUEL_MOVE_TIME_MS": "0"},
            {"CHESSDUEL_REQUEST_DELAY_MS": "-5"},
            {"CHESSDUEL_COLOR": "green"},
            {"CHESSDUEL_DIFFICULTY": "insane"},
        ],
    )
    def test_bad_values(self, environ: dict[str, str]) -> None:
        with pytest.raises(ValueError):
            AppSettings.from_env(environ)


class TestParseColor:
    @pytest.mark.parametrize(
        ("text", "color"),
        [("white", Color.WHITE), ("W", Color.WHITE), ("Black", Color.BLACK)],
    )
    def test_accepted(self, text: str, color: Color) -> None:
        assert parse_color(text) is color


class TestCommandLine:
    def test_flags_override_base(self) -> None:
        args = build_parser().parse_args(
            ["--engine", "fairy", "--difficulty", "hard", "--color", "black", "--move-time", "800"]
        )
        settings = settings_from_args(args, AppSettings(log_level="INFO"))
        assert settings.engine_command == "fairy"
        assert settings.difficulty is Difficulty.HARD
        assert settings.player_color is Color.BLACK
        assert settings.move_time_ms == 800
        assert settings.log_level == "INFO"

    def test_no_flags_keeps_base(self) -> None:
        base = AppSettings(engine_command="sf", difficulty=Difficulty.EASY)
        assert settings_from_args(build_parser().parse_args([]), base) == base

    def test_log_level_is_case_insensitive(self) -> None:
        args = build_parser().parse_args(["--log-level", "debug"])
        assert args.log_level == "DEBUG"
