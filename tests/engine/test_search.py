"""Tests for evaluation line models and search budgets."""

from __future__ import annotations

import pytest

from chessreview.engine import (
    SCORE_CAP_CP,
    EvaluationLine,
    LineUpdate,
    ScoreKind,
    SearchBudget,
    clamp_cp,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [(0, 0), (999, 999), (1000, 1000), (1001, 1000), (-5000, -1000), (-1000, -1000)],
)
def test_clamp_cp(raw: int, expected: int) -> None:
    assert clamp_cp(raw) == expected


class TestEvaluationLine:
    def test_centipawn_is_clamped(self) -> None:
        line = EvaluationLine(1, ScoreKind.CENTIPAWN, 2400, ("d1h5",))
        assert line.clamped_cp == SCORE_CAP_CP

    @pytest.mark.parametrize(("mate", "expected"), [(3, 1000), (1, 1000), (-2, -1000), (0, -1000)])
    def test_mate_maps_to_cap(self, mate: int, expected: int) -> None:
        assert EvaluationLine(1, ScoreKind.MATE, mate).clamped_cp == expected

    def test_move_is_first_pv_move(self) -> None:
        assert EvaluationLine(1, ScoreKind.CENTIPAWN, 20, ("e2e4", "e7e5")).move == "e2e4"
        assert EvaluationLine(1, ScoreKind.CENTIPAWN, 20).move is None

    def test_format_score(self) -> None:
        assert EvaluationLine(1, ScoreKind.CENTIPAWN, 35).format_score() == "+0.35"
        assert EvaluationLine(1, ScoreKind.CENTIPAWN, -120).format_score() == "-1.20"
        assert EvaluationLine(1, ScoreKind.MATE, -4).format_score() == "mate -4"


def test_line_update_drops_depth() -> None:
    update = LineUpdate(2, ScoreKind.CENTIPAWN, -15, ("g8f6",), depth=12)
    assert update.to_line() == EvaluationLine(2, ScoreKind.CENTIPAWN, -15, ("g8f6",))


class TestSearchBudget:
    def test_default_is_depth_limited(self) -> None:
        budget = SearchBudget()
        assert budget.max_depth == 14
        assert budget.time_limit_ms is None

    def test_time_only(self) -> None:
        assert SearchBudget(max_depth=None, time_limit_ms=500).time_limit_ms == 500

    def test_requires_a_limit(self) -> None:
        with pytest.raises(ValueError):
            SearchBudget(max_depth=None, time_limit_ms=None)
