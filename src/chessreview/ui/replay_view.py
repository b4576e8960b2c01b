"""Replay view model: a ply cursor over an analysed (or raw) game.

The view model never draws. Every navigation call recomputes a
:class:`ReplayFrame` and publishes it through :attr:`ReplayViewModel.frame_changed`
for whatever renderer is connected.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

import chess
from PyQt6.QtCore import QObject, pyqtSignal

from chessreview.analysis.models import GameAnalysisReport, PlyRecord, SideSummary
from chessreview.core.enums import Side
from chessreview.core.replay import PositionReplayer
from chessreview.engine.search import EvaluationLine

_LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ReplayCursor:
    """Mutable navigation state of one viewing session."""

    ply: int = 0
    flipped: bool = False
    selected_rank: int = 1

    def reset(self) -> None:
        self.ply = 0
        self.flipped = False
        self.selected_rank = 1


@dataclass(slots=True, frozen=True)
class CandidateDisplay:
    """A candidate line prepared for display."""

    rank: int
    move_uci: str | None
    move_san: str | None
    pv_san: tuple[str, ...]
    eval_text: str
    from_square: str | None
    to_square: str | None


@dataclass(slots=True, frozen=True)
class ReplayFrame:
    """Everything a renderer needs to draw the current ply."""

    ply: int
    total_plies: int
    fen: str
    side_to_move: Side
    flipped: bool
    selected_rank: int
    last_move_squares: tuple[str, str] | None
    record: PlyRecord | None
    candidate: CandidateDisplay | None

    @property
    def ply_indicator(self) -> str:
        return f"{self.ply}/{self.total_plies}"


def pv_to_san(fen: str, pv: Iterable[str]) -> tuple[str, ...]:
    """Convert coordinate moves to SAN, stopping at the first illegal one."""
    board = chess.Board(fen)
    sans: list[str] = []
    for uci in pv:
        try:
            move = chess.Move.from_uci(uci)
        except ValueError:
            break
        if not board.is_legal(move):
            break
        sans.append(board.san(move))
        board.push(move)
    return tuple(sans)


def candidate_display(fen: str, line: EvaluationLine) -> CandidateDisplay:
    """Prepare *line*, computed for position *fen*, for display."""
    pv_san = pv_to_san(fen, line.pv)
    move = line.move
    return CandidateDisplay(
        rank=line.rank,
        move_uci=move,
        move_san=pv_san[0] if pv_san else None,
        pv_san=pv_san,
        eval_text=line.format_score(),
        from_square=move[:2] if move else None,
        to_square=move[2:4] if move else None,
    )


class ReplayViewModel(QObject):
    """Stateful cursor over ply index ``0..N`` of one loaded game."""

    frame_changed = pyqtSignal(object)  # ReplayFrame

    def __init__(self, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._cursor = ReplayCursor()
        self._replayer = PositionReplayer()
        self._records: tuple[PlyRecord, ...] = ()
        self._report: GameAnalysisReport | None = None
        self._frame = self._build_frame()

    # ── Loading ──────────────────────────────────────────────────────────

    def load_report(self, report: GameAnalysisReport) -> None:
        """Show an analysis result; resets the cursor to the start."""
        replayer, error = PositionReplayer.from_tokens(
            (record.move_uci for record in report.records),
            report.start_fen,
        )
        if error is not None:
            # Records come from a replay of the same moves.
            raise ValueError(f"Analysis report does not replay: {error}")
        self._replayer = replayer
        self._records = report.records
        self._report = report
        self._cursor.reset()
        self._publish()

    def load_moves(self, tokens: Iterable[str], start_fen: str | None = None) -> None:
        """Show a raw move list without analysis; stops at the first illegal move."""
        replayer, error = PositionReplayer.from_tokens(tokens, start_fen)
        if error is not None:
            _LOGGER.warning("Move list truncated: %s", error)
        self._replayer = replayer
        self._records = ()
        self._report = None
        self._cursor.reset()
        self._publish()

    # ── State ────────────────────────────────────────────────────────────

    @property
    def cursor(self) -> ReplayCursor:
        return self._cursor

    @property
    def frame(self) -> ReplayFrame:
        return self._frame

    @property
    def total_plies(self) -> int:
        return self._replayer.ply_count

    @property
    def report(self) -> GameAnalysisReport | None:
        return self._report

    @property
    def records(self) -> tuple[PlyRecord, ...]:
        return self._records

    def summary_for(self, side: Side) -> SideSummary | None:
        if self._report is None:
            return None
        return self._report.summary_for(side)

    # ── Navigation ───────────────────────────────────────────────────────

    def first(self) -> None:
        self.seek(0)

    def last(self) -> None:
        self.seek(self.total_plies)

    def prev(self) -> None:
        self.seek(self._cursor.ply - 1)

    def next(self) -> None:
        self.seek(self._cursor.ply + 1)

    def seek(self, ply: int) -> None:
        self._cursor.ply = max(0, min(ply, self.total_plies))
        self._publish()

    def select_candidate_rank(self, rank: int) -> None:
        if rank < 1:
            raise ValueError("Candidate rank must be >= 1")
        self._cursor.selected_rank = rank
        self._publish()

    def toggle_orientation(self) -> None:
        self._cursor.flipped = not self._cursor.flipped
        self._publish()

    # ── Internals ────────────────────────────────────────────────────────

    def _publish(self) -> None:
        self._frame = self._build_frame()
        self.frame_changed.emit(self._frame)

    def _build_frame(self) -> ReplayFrame:
        cursor = self._cursor
        ply = cursor.ply
        fen = self._replayer.fen_at(ply)

        last_move_squares = None
        record = None
        candidate = None
        if ply > 0:
            move = self._replayer.moves[ply - 1]
            last_move_squares = (move.from_square, move.to_square)
            if ply <= len(self._records):
                record = self._records[ply - 1]
                line = record.candidate_lines.get(cursor.selected_rank)
                if line is not None:
                    # Candidate lines were searched on the position before this ply.
                    candidate = candidate_display(move.fen_before, line)

        return ReplayFrame(
            ply=ply,
            total_plies=self.total_plies,
            fen=fen,
            side_to_move=Side.from_turn(chess.Board(fen).turn),
            flipped=cursor.flipped,
            selected_rank=cursor.selected_rank,
            last_move_squares=last_move_squares,
            record=record,
            candidate=candidate,
        )
