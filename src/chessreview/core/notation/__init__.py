"""Notation package: game text tokenizing and PGN serialization."""

from chessreview.core.notation.models import STARTING_FEN, TokenizedGame
from chessreview.core.notation.pgn import (
    PGN_RESULT_TOKENS,
    build_pgn,
    normalize_game_text,
    pgn_movetext,
    tokenize,
)

__all__ = [
    "PGN_RESULT_TOKENS",
    "STARTING_FEN",
    "TokenizedGame",
    "build_pgn",
    "normalize_game_text",
    "pgn_movetext",
    "tokenize",
]
