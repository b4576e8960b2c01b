"""Small enumerations shared across layers."""

from __future__ import annotations

from enum import StrEnum

import chess


class Side(StrEnum):
    """The side that played (or is to play) a move."""

    WHITE = "white"
    BLACK = "black"

    @classmethod
    def from_turn(cls, turn: chess.Color) -> Side:
        return cls.WHITE if turn == chess.WHITE else cls.BLACK

    @property
    def opponent(self) -> Side:
        return Side.BLACK if self is Side.WHITE else Side.WHITE

    @property
    def label(self) -> str:
        return self.value.capitalize()
