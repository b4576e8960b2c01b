"""Tests for the request/response evaluator adapter."""

from __future__ import annotations

import asyncio

import pytest

from chessreview.core import STARTING_FEN
from chessreview.engine import (
    EvaluatorAdapter,
    LineUpdate,
    ScoreKind,
    SearchBudget,
    SearchComplete,
)
from chessreview.errors import EvaluatorBusyError, EvaluatorUnavailableError

_BUDGET = SearchBudget(max_depth=8)


def _update(rank: int, score: int, move: str, depth: int = 10) -> LineUpdate:
    return LineUpdate(rank, ScoreKind.CENTIPAWN, score, (move,), depth)


def test_top_lines_are_ranked(scripted_evaluator, make_cp_lines) -> None:
    evaluator = scripted_evaluator([make_cp_lines(40, 25, 10)])
    adapter = EvaluatorAdapter(evaluator)

    lines = asyncio.run(adapter.top_lines(STARTING_FEN, _BUDGET, 3))

    assert [line.rank for line in lines] == [1, 2, 3]
    assert [line.score_value for line in lines] == [40, 25, 10]
    assert evaluator.calls[0].fen == STARTING_FEN
    assert evaluator.calls[0].restrict_to is None
    assert not adapter.is_busy


def test_out_of_order_updates_keep_deepest(scripted_evaluator) -> None:
    script = [
        _update(2, 5, "d2d4", depth=5),
        _update(1, 30, "e2e4", depth=6),
        _update(2, 12, "g1f3", depth=6),
        _update(1, 22, "c2c4", depth=4),
        SearchComplete("e2e4"),
    ]
    adapter = EvaluatorAdapter(scripted_evaluator([script]))

    lines = asyncio.run(adapter.top_lines(STARTING_FEN, _BUDGET, 2))

    assert [(line.rank, line.move) for line in lines] == [(1, "e2e4"), (2, "g1f3")]


def test_ranks_beyond_requested_count_are_ignored(scripted_evaluator, make_cp_lines) -> None:
    adapter = EvaluatorAdapter(scripted_evaluator([make_cp_lines(40, 25, 10)]))
    lines = asyncio.run(adapter.top_lines(STARTING_FEN, _BUDGET, 2))
    assert len(lines) == 2


def test_fewer_lines_than_requested(scripted_evaluator, make_cp_lines) -> None:
    adapter = EvaluatorAdapter(scripted_evaluator([make_cp_lines(15)]))
    lines = asyncio.run(adapter.top_lines(STARTING_FEN, _BUDGET, 3))
    assert len(lines) == 1


def test_line_count_reconfigured_only_on_change(scripted_evaluator, make_cp_lines) -> None:
    evaluator = scripted_evaluator([make_cp_lines(1), make_cp_lines(2), make_cp_lines(3)])
    adapter = EvaluatorAdapter(evaluator)

    async def run() -> None:
        await adapter.top_lines(STARTING_FEN, _BUDGET, 3)
        await adapter.top_lines(STARTING_FEN, _BUDGET, 3)
        await adapter.top_lines(STARTING_FEN, _BUDGET, 1)

    asyncio.run(run())

    assert evaluator.line_counts == [3, 1]
    assert adapter.line_count == 1


def test_line_count_is_shared_by_adapters_on_one_session(
    scripted_evaluator,
    make_cp_lines,
) -> None:
    evaluator = scripted_evaluator(
        [make_cp_lines(30, 20, 10), make_cp_lines(30), make_cp_lines(30, 20, 10)]
    )
    wide = EvaluatorAdapter(evaluator)
    narrow = EvaluatorAdapter(evaluator)

    async def run():
        first = await wide.top_lines(STARTING_FEN, _BUDGET, 3)
        middle = await narrow.top_lines(STARTING_FEN, _BUDGET, 1)
        last = await wide.top_lines(STARTING_FEN, _BUDGET, 3)
        return first, middle, last

    first, middle, last = asyncio.run(run())

    assert [line.rank for line in first] == [1, 2, 3]
    assert [line.rank for line in middle] == [1]
    assert [line.rank for line in last] == [1, 2, 3]
    assert evaluator.line_counts == [3, 1, 3]
    assert wide.line_count == narrow.line_count == 3


def test_adapters_on_different_sessions_are_independent(
    scripted_evaluator,
    make_cp_lines,
) -> None:
    first = scripted_evaluator([make_cp_lines(30, 20)])
    second = scripted_evaluator([make_cp_lines(30, 20)])

    asyncio.run(EvaluatorAdapter(first).top_lines(STARTING_FEN, _BUDGET, 2))
    asyncio.run(EvaluatorAdapter(second).top_lines(STARTING_FEN, _BUDGET, 2))

    assert first.line_counts == [2]
    assert second.line_counts == [2]


def test_invalid_line_count(scripted_evaluator) -> None:
    adapter = EvaluatorAdapter(scripted_evaluator([]))
    with pytest.raises(ValueError):
        asyncio.run(adapter.top_lines(STARTING_FEN, _BUDGET, 0))


def test_forced_line_restricts_search(scripted_evaluator, make_cp_lines) -> None:
    evaluator = scripted_evaluator([make_cp_lines(-20, best_move="a2a3")])
    adapter = EvaluatorAdapter(evaluator)

    line = asyncio.run(adapter.forced_line_for(STARTING_FEN, "a2a3", _BUDGET))

    assert line is not None
    assert line.score_value == -20
    assert evaluator.calls[0].restrict_to == "a2a3"


def test_forced_line_without_report_is_none(scripted_evaluator) -> None:
    adapter = EvaluatorAdapter(scripted_evaluator([[SearchComplete(None)]]))
    assert asyncio.run(adapter.forced_line_for(STARTING_FEN, "e2e4", _BUDGET)) is None


def test_search_without_completion_is_unavailable(scripted_evaluator) -> None:
    adapter = EvaluatorAdapter(scripted_evaluator([[_update(1, 10, "e2e4")]]))
    with pytest.raises(EvaluatorUnavailableError):
        asyncio.run(adapter.top_lines(STARTING_FEN, _BUDGET, 1))
    assert not adapter.is_busy


def test_new_game_is_forwarded(scripted_evaluator) -> None:
    evaluator = scripted_evaluator([])
    asyncio.run(EvaluatorAdapter(evaluator).new_game())
    assert evaluator.new_games == 1


class _BlockingEvaluator:
    def __init__(self) -> None:
        self.release = asyncio.Event()
        self.searches = 0

    async def new_game(self) -> None:
        return None

    async def set_line_count(self, count: int) -> None:
        return None

    async def search(self, fen, budget, *, restrict_to=None):
        self.searches += 1
        await self.release.wait()
        yield _update(1, 0, "e2e4")
        yield SearchComplete("e2e4")


def test_second_request_while_busy_is_rejected() -> None:
    async def run() -> None:
        evaluator = _BlockingEvaluator()
        adapter = EvaluatorAdapter(evaluator)
        first = asyncio.create_task(adapter.top_lines(STARTING_FEN, _BUDGET, 1))
        await asyncio.sleep(0)
        assert adapter.is_busy

        with pytest.raises(EvaluatorBusyError):
            await adapter.forced_line_for(STARTING_FEN, "e2e4", _BUDGET)

        evaluator.release.set()
        lines = await first
        assert lines[0].move == "e2e4"
        assert evaluator.searches == 1
        assert not adapter.is_busy

    asyncio.run(run())


def test_request_from_another_adapter_on_busy_session_is_rejected() -> None:
    async def run() -> None:
        evaluator = _BlockingEvaluator()
        owner = EvaluatorAdapter(evaluator)
        other = EvaluatorAdapter(evaluator)
        first = asyncio.create_task(owner.top_lines(STARTING_FEN, _BUDGET, 1))
        await asyncio.sleep(0)
        assert other.is_busy

        with pytest.raises(EvaluatorBusyError):
            await other.top_lines(STARTING_FEN, _BUDGET, 1)
        with pytest.raises(EvaluatorBusyError):
            await other.new_game()

        evaluator.release.set()
        await first
        assert evaluator.searches == 1
        assert not other.is_busy

        line = await other.forced_line_for(STARTING_FEN, "e2e4", _BUDGET)
        assert line is not None
        assert evaluator.searches == 2

    asyncio.run(run())


class _FailingEvaluator:
    async def new_game(self) -> None:
        raise RuntimeError("pipe closed")

    async def set_line_count(self, count: int) -> None:
        raise RuntimeError("pipe closed")

    async def search(self, fen, budget, *, restrict_to=None):
        yield SearchComplete(None)


def test_evaluator_failures_are_wrapped() -> None:
    adapter = EvaluatorAdapter(_FailingEvaluator())
    with pytest.raises(EvaluatorUnavailableError):
        asyncio.run(adapter.new_game())
    with pytest.raises(EvaluatorUnavailableError):
        asyncio.run(adapter.top_lines(STARTING_FEN, _BUDGET, 2))
    assert adapter.line_count is None
