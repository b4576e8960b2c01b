"""User-configurable analysis settings."""

from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from typing import Any

from chessreview.analysis.classifier import BOOK_MAX_PLY
from chessreview.engine.search import SearchBudget
from chessreview.engine.uci import UciEvaluator

MAX_MULTIPV = 5

# Builds an async context manager yielding a started evaluator.
EvaluatorFactory = Callable[["AnalysisSettings"], AbstractAsyncContextManager[Any]]


@dataclass
class AnalysisSettings:
    """All knobs of one analysis run."""

    # Engine
    engine_path: str = "stockfish"
    threads: int = 1
    hash_mb: int = 32

    # Search
    depth: int = 14
    movetime_ms: int = 0  # > 0 switches from depth- to time-limited search
    multipv: int = 3

    # Classification
    book_plies: int = BOOK_MAX_PLY

    def validate(self) -> None:
        """Raise ``ValueError`` when a setting is out of range."""
        if not self.engine_path:
            raise ValueError("Engine path must not be empty")
        if self.depth < 1 and self.movetime_ms <= 0:
            raise ValueError("Analysis depth must be >= 1 when no move time is set")
        if self.movetime_ms < 0:
            raise ValueError("Move time must be >= 0 ms")
        if not 1 <= self.multipv <= MAX_MULTIPV:
            raise ValueError(f"Candidate line count must be in 1..{MAX_MULTIPV}")
        if self.threads < 1:
            raise ValueError("Engine threads must be >= 1")
        if self.hash_mb < 1:
            raise ValueError("Engine hash must be >= 1 MB")
        if self.book_plies < 0:
            raise ValueError("Book plies must be >= 0")

    def budget(self) -> SearchBudget:
        if self.movetime_ms > 0:
            return SearchBudget(max_depth=None, time_limit_ms=self.movetime_ms)
        return SearchBudget(max_depth=self.depth, time_limit_ms=None)

    def create_evaluator(self) -> UciEvaluator:
        """Build (but do not start) the UCI evaluator these settings describe."""
        return UciEvaluator(
            self.engine_path,
            threads=self.threads,
            hash_mb=self.hash_mb,
        )
