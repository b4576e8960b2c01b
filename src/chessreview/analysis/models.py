"""Data models produced by game analysis."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType

from chessreview.core.enums import Side
from chessreview.engine.search import EvaluationLine
from chessreview.errors import IllegalMoveError


class MoveTag(StrEnum):
    """Move quality buckets."""

    BOOK = "book"
    GREAT = "great"
    MISS = "miss"
    BEST = "best"
    EXCELLENT = "excellent"
    GOOD = "good"
    INACCURACY = "inaccuracy"
    MISTAKE = "mistake"
    BLUNDER = "blunder"

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @property
    def nag(self) -> str:
        """Chess NAG annotation symbol."""
        return _TAG_NAG[self]

    @property
    def color_hex(self) -> str:
        """Hex colour string for badges."""
        return _TAG_COLOR[self]


# Badge order used when listing a histogram.
TAG_DISPLAY_ORDER: tuple[MoveTag, ...] = (
    MoveTag.BEST,
    MoveTag.EXCELLENT,
    MoveTag.GREAT,
    MoveTag.GOOD,
    MoveTag.BOOK,
    MoveTag.MISS,
    MoveTag.INACCURACY,
    MoveTag.MISTAKE,
    MoveTag.BLUNDER,
)

_TAG_NAG: dict[MoveTag, str] = {
    MoveTag.BOOK: "",
    MoveTag.GREAT: "!",
    MoveTag.MISS: "?!",
    MoveTag.BEST: "",
    MoveTag.EXCELLENT: "",
    MoveTag.GOOD: "",
    MoveTag.INACCURACY: "?!",
    MoveTag.MISTAKE: "?",
    MoveTag.BLUNDER: "??",
}

_TAG_COLOR: dict[MoveTag, str] = {
    MoveTag.BOOK: "#a88865",
    MoveTag.GREAT: "#5c8bb0",
    MoveTag.MISS: "#ff7769",
    MoveTag.BEST: "#9bc700",
    MoveTag.EXCELLENT: "#96bc4b",
    MoveTag.GOOD: "#97af8b",
    MoveTag.INACCURACY: "#f7c631",
    MoveTag.MISTAKE: "#e68a2e",
    MoveTag.BLUNDER: "#ca3431",
}


@dataclass(slots=True, frozen=True)
class PlyRecord:
    """Engine-backed analysis for a single played move."""

    ply_index: int
    side: Side
    move_text: str
    move_uci: str
    pre_score: int
    post_score: int
    loss: int
    tag: MoveTag
    candidate_lines: Mapping[int, EvaluationLine] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @property
    def best_line(self) -> EvaluationLine | None:
        return self.candidate_lines.get(1)


@dataclass(slots=True, frozen=True)
class SideSummary:
    """Aggregate quality metrics for one side."""

    move_count: int
    average_loss: float
    accuracy_percent: int
    tag_histogram: Mapping[MoveTag, int]

    @property
    def rounded_average_loss(self) -> int:
        """Average loss rounded half up, as shown next to the accuracy."""
        return int(self.average_loss + 0.5)

    def count(self, tag: MoveTag) -> int:
        return self.tag_histogram.get(tag, 0)


@dataclass(slots=True, frozen=True)
class GameAnalysisReport:
    """Full move-by-move analysis with side summaries.

    ``error`` is set when the run halted on an illegal move; the records and
    summaries then cover the completed prefix only.
    """

    headers: Mapping[str, str]
    start_fen: str
    total_tokens: int
    records: tuple[PlyRecord, ...]
    white: SideSummary
    black: SideSummary
    error: IllegalMoveError | None = None

    @property
    def is_complete(self) -> bool:
        return self.error is None

    @property
    def total_plies(self) -> int:
        return len(self.records)

    @property
    def title(self) -> str:
        parts = [self.headers.get("Event") or "Game"]
        white = self.headers.get("White")
        black = self.headers.get("Black")
        if white and black:
            parts.append(f"{white} vs {black}")
        result = self.headers.get("Result")
        if result:
            parts.append(f"({result})")
        return " ".join(parts)

    def summary_for(self, side: Side) -> SideSummary:
        return self.white if side is Side.WHITE else self.black
