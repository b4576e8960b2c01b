"""Position replay over move tokens, backed by python-chess rules."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass

import chess

from chessreview.core.enums import Side
from chessreview.core.notation.models import STARTING_FEN
from chessreview.errors import IllegalMoveError

_LOGGER = logging.getLogger(__name__)

_ANNOTATION_SUFFIX_RE = re.compile(r"[!?]+$")
_LONG_ALGEBRAIC_RE = re.compile(r"^[KQRBNP]?([a-h][1-8])[-x]?([a-h][1-8])=?([qrbnQRBN])?[+#]?$")
_LOOSE_SAN_RE = re.compile(r"^([KQRBN])?([a-h])?([1-8])?x?([a-h][1-8])=?([qrbnQRBN])?[+#]?$")
_PIECE_TYPES = {
    "K": chess.KING,
    "Q": chess.QUEEN,
    "R": chess.ROOK,
    "B": chess.BISHOP,
    "N": chess.KNIGHT,
}


@dataclass(slots=True, frozen=True)
class AppliedMove:
    """Metadata for one ply applied by the replayer."""

    ply_index: int
    token: str
    san: str
    uci: str
    from_square: str
    to_square: str
    promotion: str | None
    side: Side
    fen_before: str
    fen_after: str


def _loose_candidates(board: chess.Board, token: str) -> list[chess.Move]:
    match = _LOOSE_SAN_RE.match(token)
    if match is None:
        return []
    piece, from_file, from_rank, to_square, promotion = match.groups()
    piece_type = _PIECE_TYPES[piece] if piece else chess.PAWN
    target = chess.parse_square(to_square)
    promotion_type = (
        chess.Piece.from_symbol(promotion.lower()).piece_type if promotion else None
    )

    candidates: list[chess.Move] = []
    for move in board.legal_moves:
        if move.to_square != target or move.promotion != promotion_type:
            continue
        if board.piece_type_at(move.from_square) != piece_type:
            continue
        if from_file and chess.square_file(move.from_square) != ord(from_file) - 97:
            continue
        if from_rank and chess.square_rank(move.from_square) != int(from_rank) - 1:
            continue
        candidates.append(move)
    return candidates


def parse_move_loose(board: chess.Board, token: str) -> chess.Move:
    """Resolve *token* to a legal move, tolerating casual transcripts.

    Accepts strict SAN, SAN with annotation suffixes, zero-based castling,
    coordinate notation (``e2e4``, ``e2-e4``) and SAN with missing or
    superfluous disambiguators.

    Raises:
        ValueError: when no legal move matches the token.
    """
    cleaned = _ANNOTATION_SUFFIX_RE.sub("", token.strip()).replace("0", "O")
    try:
        return board.parse_san(cleaned)
    except chess.AmbiguousMoveError:
        candidates = _loose_candidates(board, cleaned)
        if not candidates:
            raise
        candidates.sort(key=lambda move: move.from_square)
        _LOGGER.warning(
            "Ambiguous move %r resolved to %s", token, candidates[0].uci()
        )
        return candidates[0]
    except ValueError:
        pass

    long_match = _LONG_ALGEBRAIC_RE.match(cleaned)
    if long_match is not None:
        from_sq, to_sq, promotion = long_match.groups()
        move = chess.Move.from_uci(f"{from_sq}{to_sq}{(promotion or '').lower()}")
        if board.is_legal(move):
            return move

    candidates = _loose_candidates(board, cleaned)
    if len(candidates) == 1:
        return candidates[0]
    raise ValueError(f"no legal move matches {token!r}")


class PositionReplayer:
    """Applies move tokens one at a time and keeps every intermediate position.

    ``fen_at(i)`` is the position before ply ``i + 1``; ``fen_at(ply_count)``
    is the current final position. Positions are stored as FEN strings so any
    prefix can be re-derived or forked without touching the main chain.
    """

    __slots__ = ("_board", "_fens", "_moves", "_start_fen")

    def __init__(self, start_fen: str | None = None) -> None:
        self._start_fen = start_fen or STARTING_FEN
        try:
            self._board = chess.Board(self._start_fen)
        except ValueError as exc:
            raise ValueError(f"Invalid start position: {self._start_fen!r}") from exc
        self._fens: list[str] = [self._board.fen()]
        self._moves: list[AppliedMove] = []

    @classmethod
    def from_tokens(
        cls,
        tokens: Iterable[str],
        start_fen: str | None = None,
    ) -> tuple[PositionReplayer, IllegalMoveError | None]:
        """Replay as many *tokens* as are legal; return the stopping error if any."""
        replayer = cls(start_fen)
        for token in tokens:
            try:
                replayer.apply_next(token)
            except IllegalMoveError as exc:
                return replayer, exc
        return replayer, None

    @property
    def start_fen(self) -> str:
        return self._start_fen

    @property
    def ply_count(self) -> int:
        return len(self._moves)

    @property
    def moves(self) -> tuple[AppliedMove, ...]:
        return tuple(self._moves)

    @property
    def side_to_move(self) -> Side:
        return Side.from_turn(self._board.turn)

    def fen_at(self, index: int) -> str:
        """Return the position after *index* plies (0 = start position)."""
        if not 0 <= index <= len(self._moves):
            raise IndexError(f"position index {index} out of range 0..{len(self._moves)}")
        return self._fens[index]

    def position_before(self, ply_index: int) -> str:
        """Return the position before 1-based ply *ply_index* is played."""
        return self.fen_at(ply_index - 1)

    def board_at(self, index: int) -> chess.Board:
        """Return an independent board for the position after *index* plies."""
        return chess.Board(self.fen_at(index))

    def preview(self, token: str) -> AppliedMove:
        """Resolve *token* against the current position without advancing."""
        ply_index = len(self._moves) + 1
        board = self._board.copy(stack=False)
        try:
            move = parse_move_loose(board, token)
        except ValueError as exc:
            raise IllegalMoveError(ply_index, token, str(exc)) from exc

        san = board.san(move)
        side = Side.from_turn(board.turn)
        fen_before = board.fen()
        board.push(move)
        return AppliedMove(
            ply_index=ply_index,
            token=token,
            san=san,
            uci=move.uci(),
            from_square=chess.square_name(move.from_square),
            to_square=chess.square_name(move.to_square),
            promotion=chess.piece_symbol(move.promotion) if move.promotion else None,
            side=side,
            fen_before=fen_before,
            fen_after=board.fen(),
        )

    def apply_next(self, token: str) -> AppliedMove:
        """Advance the main chain by one ply.

        Raises:
            IllegalMoveError: when the rules engine rejects *token*.
        """
        applied = self.preview(token)
        self._board.push(chess.Move.from_uci(applied.uci))
        self._fens.append(applied.fen_after)
        self._moves.append(applied)
        return applied

    def fork(self) -> PositionReplayer:
        """Return an independent replayer sharing the same history prefix."""
        clone = PositionReplayer.__new__(PositionReplayer)
        clone._start_fen = self._start_fen
        clone._board = self._board.copy()
        clone._fens = list(self._fens)
        clone._moves = list(self._moves)
        return clone
