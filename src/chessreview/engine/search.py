"""Shared evaluation models and the evaluator protocol."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

# Mate scores collapse onto the same bound as centipawn scores.
SCORE_CAP_CP = 1000


def clamp_cp(cp: int) -> int:
    """Clamp a centipawn value to ``±SCORE_CAP_CP``."""
    return max(-SCORE_CAP_CP, min(SCORE_CAP_CP, cp))


class ScoreKind(StrEnum):
    CENTIPAWN = "cp"
    MATE = "mate"


@dataclass(slots=True, frozen=True)
class SearchBudget:
    """Search constraints for a single evaluation request.

    A positive ``time_limit_ms`` takes precedence over ``max_depth``.
    """

    max_depth: int | None = 14
    time_limit_ms: int | None = None

    def __post_init__(self) -> None:
        if not self.max_depth and not self.time_limit_ms:
            raise ValueError("Search budget needs a depth or a time limit")


@dataclass(slots=True, frozen=True)
class EvaluationLine:
    """One ranked candidate line for a position, from the mover's point of view."""

    rank: int
    score_kind: ScoreKind
    score_value: int
    pv: tuple[str, ...] = ()

    @property
    def move(self) -> str | None:
        """First coordinate move of the principal variation."""
        return self.pv[0] if self.pv else None

    @property
    def clamped_cp(self) -> int:
        if self.score_kind == ScoreKind.MATE:
            return SCORE_CAP_CP if self.score_value > 0 else -SCORE_CAP_CP
        return clamp_cp(self.score_value)

    def format_score(self) -> str:
        if self.score_kind == ScoreKind.MATE:
            return f"mate {self.score_value}"
        return f"{self.score_value / 100:+.2f}"


@dataclass(slots=True, frozen=True)
class LineUpdate:
    """Intermediate ranked-line report emitted while a search runs."""

    rank: int
    score_kind: ScoreKind
    score_value: int
    pv: tuple[str, ...]
    depth: int = 0

    def to_line(self) -> EvaluationLine:
        return EvaluationLine(
            rank=self.rank,
            score_kind=self.score_kind,
            score_value=self.score_value,
            pv=self.pv,
        )


@dataclass(slots=True, frozen=True)
class SearchComplete:
    """Terminal event of a search, carrying the engine's chosen move."""

    best_move: str | None


EvaluatorEvent = LineUpdate | SearchComplete


class Evaluator(Protocol):
    """Single stateful evaluation session.

    ``search`` yields zero or more :class:`LineUpdate` events followed by one
    :class:`SearchComplete`. Only one search may run at a time; the ranked
    line count is session-wide configuration.
    """

    async def new_game(self) -> None: ...

    async def set_line_count(self, count: int) -> None: ...

    def search(
        self,
        fen: str,
        budget: SearchBudget,
        *,
        restrict_to: str | None = None,
    ) -> AsyncGenerator[EvaluatorEvent, None]: ...
