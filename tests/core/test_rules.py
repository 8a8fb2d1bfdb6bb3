"""Tests for ChessRules: legality, move effects and classification."""

import pytest

from chessduel.core.enums import CastleSide, Color, DrawReason, TerminalKind
from chessduel.core.errors import IllegalMoveError, PromotionRequiredError
from chessduel.core.notation import STARTING_FEN, decode
from chessduel.core.rules import ChessRules

PROMOTION_FEN = "4k3/P7/8/8/8/8/8/4K3 w - - 0 1"
FOOLS_MATE_SETUP = "rnbqkbnr/pppp1ppp/8/4p3/6P1/5P2/PPPPP2P/RNBQKBNR b KQkq g3 0 2"
FOOLS_MATE = "rnb1kbnr/pppp1ppp/8/4p3/6Pq/5P2/PPPPP2P/RNBQKBNR w KQkq - 1 3"


@pytest.fixture
def rules() -> ChessRules:
    return ChessRules()


class TestApplyMove:
    def test_opening_move(self, rules: ChessRules) -> None:
        outcome = rules.apply_move(STARTING_FEN, decode("e2e4"))
        assert outcome.san == "e4"
        assert outcome.uci == "e2e4"
        assert outcome.fen.split()[1] == "b"
        assert not outcome.flags.capture
        assert not outcome.classification.is_terminal

    def test_illegal_move_rejected(self, rules: ChessRules) -> None:
        with pytest.raises(IllegalMoveError) as info:
            rules.apply_move(STARTING_FEN, decode("e2e5"))
        assert info.value.move == "e2e5"

    def test_moving_opponent_piece_rejected(self, rules: ChessRules) -> None:
        with pytest.raises(IllegalMoveError):
            rules.apply_move(STARTING_FEN, decode("e7e5"))

    def test_promotion_required(self, rules: ChessRules) -> None:
        with pytest.raises(PromotionRequiredError):
            rules.apply_move(PROMOTION_FEN, decode("a7a8"))

    def test_promotion_to_queen(self, rules: ChessRules) -> None:
        outcome = rules.apply_move(PROMOTION_FEN, decode("a7a8q"))
        assert outcome.fen.split()[0] == "Q3k3/8/8/8/8/8/8/4K3"
        assert outcome.flags.promotion == "q"
        assert outcome.flags.gives_check
        assert outcome.san == "a8=Q+"

    def test_underpromotion(self, rules: ChessRules) -> None:
        outcome = rules.apply_move(PROMOTION_FEN, decode("a7a8n"))
        assert outcome.fen.startswith("N3k3/")

    def test_piece_letter_ignored_on_ordinary_move(self, rules: ChessRules) -> None:
        outcome = rules.apply_move(STARTING_FEN, decode("e2e4q"))
        assert outcome.uci == "e2e4"
        assert outcome.san == "e4"
        assert outcome.flags.promotion is None

    def test_piece_letter_on_illegal_move_still_rejected(self, rules: ChessRules) -> None:
        with pytest.raises(IllegalMoveError) as info:
            rules.apply_move(STARTING_FEN, decode("e2e5q"))
        assert info.value.move == "e2e5"

    def test_capture_flag(self, rules: ChessRules) -> None:
        fen = rules.replay(STARTING_FEN, ["e2e4", "d7d5"])
        outcome = rules.apply_move(fen, decode("e4d5"))
        assert outcome.flags.capture
        assert outcome.san == "exd5"

    def test_en_passant_flag(self, rules: ChessRules) -> None:
        fen = "4k3/8/8/3pP3/8/8/8/4K3 w - d6 0 2"
        outcome = rules.apply_move(fen, decode("e5d6"))
        assert outcome.flags.en_passant
        assert outcome.flags.capture
        assert outcome.fen.split()[0] == "4k3/8/3P4/8/8/8/8/4K3"

    @pytest.mark.parametrize(
        ("move", "side"),
        [("e1g1", CastleSide.KINGSIDE), ("e1c1", CastleSide.QUEENSIDE)],
    )
    def test_castling_flag(self, rules: ChessRules, move: str, side: CastleSide) -> None:
        fen = "r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1"
        outcome = rules.apply_move(fen, decode(move))
        assert outcome.flags.castle_side is side


class TestClassification:
    def test_fools_mate(self, rules: ChessRules) -> None:
        outcome = rules.apply_move(FOOLS_MATE_SETUP, decode("d8h4"))
        assert outcome.san == "Qh4#"
        assert outcome.classification.checkmate
        assert outcome.classification.terminal_kind is TerminalKind.CHECKMATE
        assert not outcome.classification.is_draw

    def test_check_only(self, rules: ChessRules) -> None:
        classification = rules.classify("4k3/8/8/8/8/8/8/4K2R b - - 0 1")
        assert not classification.check
        classification = rules.classify("4k3/8/8/8/8/8/8/4R1K1 b - - 0 1")
        assert classification.check
        assert not classification.checkmate

    def test_stalemate(self, rules: ChessRules) -> None:
        classification = rules.classify("7k/5Q2/6K1/8/8/8/8/8 b - - 0 1")
        assert classification.stalemate
        assert classification.draw_reason is DrawReason.STALEMATE
        assert rules.is_terminal("7k/5Q2/6K1/8/8/8/8/8 b - - 0 1") is TerminalKind.STALEMATE

    def test_insufficient_material(self, rules: ChessRules) -> None:
        classification = rules.classify("8/8/8/4k3/8/8/8/4K3 w - - 0 1")
        assert classification.draw_reason is DrawReason.INSUFFICIENT_MATERIAL
        assert classification.terminal_kind is TerminalKind.DRAW

    def test_fifty_move_rule(self, rules: ChessRules) -> None:
        classification = rules.classify("8/8/8/4k3/8/8/R7/4K3 w - - 100 60")
        assert classification.draw_reason is DrawReason.FIFTY_MOVE

    def test_ninety_nine_half_moves_is_not_a_draw(self, rules: ChessRules) -> None:
        classification = rules.classify("8/8/8/4k3/8/8/R7/4K3 w - - 99 60")
        assert classification.draw_reason is None

    def test_threefold_repetition(self, rules: ChessRules) -> None:
        shuffle = ["g1f3", "g8f6", "f3g1", "f6g8"] * 2
        fen = STARTING_FEN
        history: list[str] = []
        outcome = None
        for text in shuffle:
            outcome = rules.apply_move(fen, decode(text), history)
            history.append(fen)
            fen = outcome.fen
        assert outcome is not None
        assert outcome.classification.draw_reason is DrawReason.REPETITION

    def test_twofold_repetition_is_not_a_draw(self, rules: ChessRules) -> None:
        fen = STARTING_FEN
        history: list[str] = []
        outcome = None
        for text in ["g1f3", "g8f6", "f3g1", "f6g8"]:
            outcome = rules.apply_move(fen, decode(text), history)
            history.append(fen)
            fen = outcome.fen
        assert outcome is not None
        assert outcome.classification.draw_reason is None

    def test_starting_position_not_terminal(self, rules: ChessRules) -> None:
        assert rules.is_terminal(STARTING_FEN) is TerminalKind.NONE


class TestQueries:
    def test_turn(self, rules: ChessRules) -> None:
        assert rules.turn(STARTING_FEN) is Color.WHITE
        assert rules.turn(FOOLS_MATE_SETUP) is Color.BLACK

    def test_legal_moves_from_square(self, rules: ChessRules) -> None:
        assert sorted(rules.legal_moves(STARTING_FEN, "e2")) == ["e3", "e4"]
        assert sorted(rules.legal_moves(STARTING_FEN, "g1")) == ["f3", "h3"]

    def test_legal_moves_empty_square(self, rules: ChessRules) -> None:
        assert rules.legal_moves(STARTING_FEN, "e4") == []

    def test_legal_moves_whole_position(self, rules: ChessRules) -> None:
        assert len(rules.legal_moves(STARTING_FEN)) == 16  # distinct destinations

    def test_promotion_destinations_not_repeated(self, rules: ChessRules) -> None:
        assert rules.legal_moves(PROMOTION_FEN, "a7") == ["a8"]

    def test_needs_promotion(self, rules: ChessRules) -> None:
        assert rules.needs_promotion(PROMOTION_FEN, "a7", "a8")
        assert not rules.needs_promotion(PROMOTION_FEN, "e1", "e2")
        assert not rules.needs_promotion(STARTING_FEN, "e2", "e4")

    def test_king_square_in_check(self, rules: ChessRules) -> None:
        assert rules.king_square_in_check(FOOLS_MATE) == "e1"
        assert rules.king_square_in_check(STARTING_FEN) is None

    def test_captured_pieces(self, rules: ChessRules) -> None:
        assert rules.captured_pieces(STARTING_FEN) == {Color.WHITE: [], Color.BLACK: []}
        fen = rules.replay(STARTING_FEN, ["e2e4", "d7d5", "e4d5", "d8d5"])
        captured = rules.captured_pieces(fen)
        assert captured[Color.WHITE] == ["p"]
        assert captured[Color.BLACK] == ["P"]


class TestReplay:
    def test_matches_step_by_step(self, rules: ChessRules) -> None:
        fen = STARTING_FEN
        for text in ("e2e4", "e7e5", "g1f3", "b8c6"):
            fen = rules.apply_move(fen, decode(text)).fen
        assert rules.replay(STARTING_FEN, ["e2e4", "e7e5", "g1f3", "b8c6"]) == fen

    def test_empty_replay(self, rules: ChessRules) -> None:
        assert rules.replay(STARTING_FEN, []) == STARTING_FEN

    def test_illegal_move_in_sequence(self, rules: ChessRules) -> None:
        with pytest.raises(IllegalMoveError):
            rules.replay(STARTING_FEN, ["e2e4", "e2e4"])

    def test_malformed_move_in_sequence(self, rules: ChessRules) -> None:
        with pytest.raises(IllegalMoveError):
            rules.replay(STARTING_FEN, ["e2e4", "nonsense"])
