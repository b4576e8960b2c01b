"""Exception hierarchy shared by the review pipeline."""

from __future__ import annotations


class ReviewError(Exception):
    """Base class for all review errors."""


class InvalidInputError(ReviewError, ValueError):
    """Raised when game text contains no usable moves."""


class IllegalMoveError(ReviewError, ValueError):
    """Raised when the rules engine rejects a move token."""

    def __init__(self, ply_index: int, token: str, reason: str = "") -> None:
        self.ply_index = ply_index
        self.token = token
        self.reason = reason
        message = f"Illegal move at ply {ply_index}: {token!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class EvaluatorUnavailableError(ReviewError, RuntimeError):
    """Raised when the evaluation engine cannot start, configure or search."""


class EvaluatorBusyError(ReviewError, RuntimeError):
    """Raised when a request is issued while another one is outstanding."""
