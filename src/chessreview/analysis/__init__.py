"""Game analysis APIs."""

from chessreview.analysis.aggregator import accuracy_from_average_loss, summarize
from chessreview.analysis.classifier import CLASSIFICATION_RULES, classify
from chessreview.analysis.models import (
    TAG_DISPLAY_ORDER,
    GameAnalysisReport,
    MoveTag,
    PlyRecord,
    SideSummary,
)
from chessreview.analysis.service import GameAnalyzer
from chessreview.analysis.settings import AnalysisSettings

__all__ = [
    "CLASSIFICATION_RULES",
    "TAG_DISPLAY_ORDER",
    "AnalysisSettings",
    "GameAnalysisReport",
    "GameAnalyzer",
    "MoveTag",
    "PlyRecord",
    "SideSummary",
    "accuracy_from_average_loss",
    "classify",
    "summarize",
]
