"""Tests for per-side summaries and the accuracy curve."""

from __future__ import annotations

import pytest

from chessreview.analysis import (
    MoveTag,
    PlyRecord,
    accuracy_from_average_loss,
    summarize,
)
from chessreview.core import Side


def _record(ply: int, loss: int, tag: MoveTag) -> PlyRecord:
    return PlyRecord(
        ply_index=ply,
        side=Side.WHITE if ply % 2 else Side.BLACK,
        move_text="e4",
        move_uci="e2e4",
        pre_score=0,
        post_score=-loss,
        loss=loss,
        tag=tag,
    )


@pytest.mark.parametrize(
    ("average", "expected"),
    [(0, 100), (5, 99), (50, 89), (255, 44), (454.5, 0), (455, 0), (1000, 0)],
)
def test_accuracy_curve(average: float, expected: int) -> None:
    assert accuracy_from_average_loss(average) == expected


def test_accuracy_is_monotonic() -> None:
    values = [accuracy_from_average_loss(loss / 2) for loss in range(0, 2001)]
    assert all(a >= b for a, b in zip(values, values[1:]))
    assert min(values) == 0


def test_summary_of_no_moves() -> None:
    summary = summarize([])
    assert summary.move_count == 0
    assert summary.average_loss == 0.0
    assert summary.accuracy_percent == 100
    assert summary.count(MoveTag.BEST) == 0


def test_summary_counts_and_average() -> None:
    summary = summarize(
        [
            _record(1, 5, MoveTag.BEST),
            _record(3, 195, MoveTag.MISTAKE),
            _record(5, 0, MoveTag.BEST),
        ]
    )
    assert summary.move_count == 3
    assert summary.average_loss == pytest.approx(200 / 3)
    assert summary.rounded_average_loss == 67
    assert summary.count(MoveTag.BEST) == 2
    assert summary.count(MoveTag.MISTAKE) == 1
    assert summary.count(MoveTag.BLUNDER) == 0
    assert sum(summary.tag_histogram.values()) == summary.move_count
