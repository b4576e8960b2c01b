"""Core layer: game text tokenizing and position replay.

Chess rules (move legality, SAN, FEN) are delegated to python-chess.
"""

from chessreview.core.enums import Side
from chessreview.core.notation import (
    STARTING_FEN,
    TokenizedGame,
    build_pgn,
    tokenize,
)
from chessreview.core.replay import AppliedMove, PositionReplayer, parse_move_loose

__all__ = [
    "STARTING_FEN",
    "AppliedMove",
    "PositionReplayer",
    "Side",
    "TokenizedGame",
    "build_pgn",
    "parse_move_loose",
    "tokenize",
]
