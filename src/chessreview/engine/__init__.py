"""Engine package: evaluator protocol, UCI session and request adapter."""

from chessreview.engine.adapter import EvaluatorAdapter
from chessreview.engine.search import (
    SCORE_CAP_CP,
    EvaluationLine,
    Evaluator,
    EvaluatorEvent,
    LineUpdate,
    ScoreKind,
    SearchBudget,
    SearchComplete,
    clamp_cp,
)
from chessreview.engine.uci import UciEvaluator

__all__ = [
    "SCORE_CAP_CP",
    "EvaluationLine",
    "Evaluator",
    "EvaluatorAdapter",
    "EvaluatorEvent",
    "LineUpdate",
    "ScoreKind",
    "SearchBudget",
    "SearchComplete",
    "UciEvaluator",
    "clamp_cp",
]
