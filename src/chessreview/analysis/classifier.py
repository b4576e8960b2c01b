"""Move quality classification as an ordered rule table.

Rules are evaluated top to bottom and the first matching rule decides the
tag; ``good`` is the fallback when nothing matches. All scores are clamped
centipawns from the mover's point of view.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass

from chessreview.analysis.models import MoveTag
from chessreview.engine.search import EvaluationLine, clamp_cp

LOSS_CAP = 1000

BOOK_MAX_PLY = 10
BOOK_MAX_ABS_CP = 30

GREAT_MAX_LOSS = 20
GREAT_MIN_BEST_GAP = 120
GREAT_MAX_PLAYED_GAP = 20

MISS_MAX_LOSS = 35
MISS_MIN_MISSED_GAIN = 150

BLUNDER_MIN_LOSS = 300
MISTAKE_MIN_LOSS = 150
INACCURACY_MIN_LOSS = 75
BEST_MAX_LOSS = 10
EXCELLENT_MAX_LOSS = 30


@dataclass(slots=True, frozen=True)
class MoveContext:
    """Inputs shared by every classification rule."""

    ply_index: int
    pre_score: int
    post_score: int
    loss: int
    line_scores: tuple[int, ...]
    book_max_ply: int = BOOK_MAX_PLY

    @classmethod
    def build(
        cls,
        ply_index: int,
        pre_score: int,
        post_score: int,
        candidate_lines: Iterable[EvaluationLine] = (),
        *,
        book_max_ply: int = BOOK_MAX_PLY,
    ) -> MoveContext:
        pre = clamp_cp(pre_score)
        post = clamp_cp(post_score)
        ranked = sorted(candidate_lines, key=lambda line: line.rank)
        return cls(
            ply_index=ply_index,
            pre_score=pre,
            post_score=post,
            loss=loss_between(pre, post),
            line_scores=tuple(line.clamped_cp for line in ranked),
            book_max_ply=book_max_ply,
        )


def loss_between(pre_score: int, post_score: int) -> int:
    """Value lost by the played move, bounded to ``[0, LOSS_CAP]``."""
    return max(0, min(LOSS_CAP, pre_score - post_score))


def is_book(ctx: MoveContext) -> bool:
    return (
        ctx.ply_index <= ctx.book_max_ply
        and abs(ctx.pre_score) <= BOOK_MAX_ABS_CP
        and abs(ctx.post_score) <= BOOK_MAX_ABS_CP
    )


def is_great(ctx: MoveContext) -> bool:
    """Played the only good move in a sharp position."""
    if len(ctx.line_scores) < 2:
        return False
    best, second = ctx.line_scores[0], ctx.line_scores[1]
    return (
        ctx.loss <= GREAT_MAX_LOSS
        and best - second >= GREAT_MIN_BEST_GAP
        and abs(ctx.post_score - best) <= GREAT_MAX_PLAYED_GAP
    )


def is_miss(ctx: MoveContext) -> bool:
    """Low raw loss, but a much larger gain was available."""
    if len(ctx.line_scores) < 2:
        return False
    best_gain = ctx.line_scores[0] - ctx.pre_score
    played_gain = ctx.post_score - ctx.pre_score
    return ctx.loss <= MISS_MAX_LOSS and best_gain - played_gain >= MISS_MIN_MISSED_GAIN


def is_blunder(ctx: MoveContext) -> bool:
    return ctx.loss >= BLUNDER_MIN_LOSS


def is_mistake(ctx: MoveContext) -> bool:
    return ctx.loss >= MISTAKE_MIN_LOSS


def is_inaccuracy(ctx: MoveContext) -> bool:
    return ctx.loss >= INACCURACY_MIN_LOSS


def is_best(ctx: MoveContext) -> bool:
    return ctx.loss <= BEST_MAX_LOSS


def is_excellent(ctx: MoveContext) -> bool:
    return ctx.loss <= EXCELLENT_MAX_LOSS


ClassificationRule = tuple[MoveTag, Callable[[MoveContext], bool]]

CLASSIFICATION_RULES: tuple[ClassificationRule, ...] = (
    (MoveTag.BOOK, is_book),
    (MoveTag.GREAT, is_great),
    (MoveTag.MISS, is_miss),
    (MoveTag.BLUNDER, is_blunder),
    (MoveTag.MISTAKE, is_mistake),
    (MoveTag.INACCURACY, is_inaccuracy),
    (MoveTag.BEST, is_best),
    (MoveTag.EXCELLENT, is_excellent),
)
FALLBACK_TAG = MoveTag.GOOD


def classify_context(
    ctx: MoveContext,
    rules: Iterable[ClassificationRule] = CLASSIFICATION_RULES,
) -> MoveTag:
    for tag, predicate in rules:
        if predicate(ctx):
            return tag
    return FALLBACK_TAG


def classify(
    ply_index: int,
    pre_score: int,
    post_score: int,
    candidate_lines: Iterable[EvaluationLine] = (),
    *,
    book_max_ply: int = BOOK_MAX_PLY,
) -> MoveTag:
    """Assign exactly one quality tag to a played move.

    ``book_max_ply`` bounds the opening window of the book rule; 0 disables it.
    """
    ctx = MoveContext.build(
        ply_index,
        pre_score,
        post_score,
        candidate_lines,
        book_max_ply=book_max_ply,
    )
    return classify_context(ctx)
