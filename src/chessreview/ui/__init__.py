"""Qt-facing layer: replay view model and background analysis session."""

from chessreview.ui.analysis_session import AnalysisSession
from chessreview.ui.replay_view import (
    CandidateDisplay,
    ReplayCursor,
    ReplayFrame,
    ReplayViewModel,
)

__all__ = [
    "AnalysisSession",
    "CandidateDisplay",
    "ReplayCursor",
    "ReplayFrame",
    "ReplayViewModel",
]
