"""Shared notation-layer data models."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

STARTING_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"


@dataclass(slots=True, frozen=True)
class TokenizedGame:
    """Headers and mainline move tokens extracted from game text."""

    headers: Mapping[str, str]
    tokens: tuple[str, ...]
    result_token: str = "*"

    @property
    def start_fen(self) -> str | None:
        """Custom starting position declared by ``SetUp``/``FEN`` headers."""
        if self.headers.get("SetUp") == "1" and self.headers.get("FEN"):
            return self.headers["FEN"]
        return None

    def __len__(self) -> int:
        return len(self.tokens)
