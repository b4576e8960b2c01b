"""Shared pytest fixtures used across the test suite."""

from __future__ import annotations

import os
import sys
from collections.abc import AsyncGenerator, Iterator, Sequence
from dataclasses import dataclass, field

import pytest

from chessreview.engine.search import (
    EvaluatorEvent,
    LineUpdate,
    ScoreKind,
    SearchBudget,
    SearchComplete,
)

# Linux CI runners are often headless. Force an offscreen backend only there.
if (
    sys.platform.startswith("linux")
    and "QT_QPA_PLATFORM" not in os.environ
    and "DISPLAY" not in os.environ
    and "WAYLAND_DISPLAY" not in os.environ
):
    os.environ["QT_QPA_PLATFORM"] = "offscreen"


@pytest.fixture(scope="session")
def qapp() -> Iterator[object]:
    """Provide a singleton QCoreApplication for threaded session tests."""
    from PyQt6.QtCore import QCoreApplication

    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    yield app


def cp_lines(*scores: int, best_move: str = "e2e4") -> list[EvaluatorEvent]:
    """Events of one finished search reporting centipawn *scores* by rank."""
    events: list[EvaluatorEvent] = [
        LineUpdate(
            rank=rank,
            score_kind=ScoreKind.CENTIPAWN,
            score_value=score,
            pv=(best_move,),
            depth=10,
        )
        for rank, score in enumerate(scores, start=1)
    ]
    events.append(SearchComplete(best_move))
    return events


@dataclass
class SearchCall:
    fen: str
    budget: SearchBudget
    restrict_to: str | None


@dataclass
class ScriptedEvaluator:
    """Evaluator stub replaying one pre-recorded event list per search."""

    scripts: list[Sequence[EvaluatorEvent]]
    calls: list[SearchCall] = field(default_factory=list)
    line_counts: list[int] = field(default_factory=list)
    new_games: int = 0
    entered: bool = False
    exited: bool = False

    async def __aenter__(self) -> ScriptedEvaluator:
        self.entered = True
        return self

    async def __aexit__(self, *_exc_info: object) -> None:
        self.exited = True

    async def new_game(self) -> None:
        self.new_games += 1

    async def set_line_count(self, count: int) -> None:
        self.line_counts.append(count)

    async def search(
        self,
        fen: str,
        budget: SearchBudget,
        *,
        restrict_to: str | None = None,
    ) -> AsyncGenerator[EvaluatorEvent, None]:
        self.calls.append(SearchCall(fen, budget, restrict_to))
        if not self.scripts:
            raise AssertionError("No more scripted searches")
        for event in self.scripts.pop(0):
            yield event


def ply_scripts(
    pre_scores: Sequence[int],
    post_score: int | None,
) -> list[list[EvaluatorEvent]]:
    """Scripts for one ply: ranked pre-move search, then the forced search."""
    forced = [SearchComplete(None)] if post_score is None else cp_lines(post_score)
    return [cp_lines(*pre_scores), forced]


@pytest.fixture
def scripted_evaluator() -> type[ScriptedEvaluator]:
    return ScriptedEvaluator


@pytest.fixture
def make_ply_scripts():
    return ply_scripts


@pytest.fixture
def make_cp_lines():
    return cp_lines
