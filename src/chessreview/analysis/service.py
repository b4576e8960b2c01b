"""Game analyzer service driving an evaluator ply by ply."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from types import MappingProxyType

from chessreview.analysis.aggregator import summarize
from chessreview.analysis.classifier import classify, loss_between
from chessreview.analysis.models import GameAnalysisReport, PlyRecord
from chessreview.analysis.settings import AnalysisSettings
from chessreview.core.enums import Side
from chessreview.core.notation import tokenize
from chessreview.core.replay import PositionReplayer
from chessreview.engine.adapter import EvaluatorAdapter
from chessreview.engine.search import EvaluationLine, Evaluator
from chessreview.errors import IllegalMoveError, InvalidInputError

_LOGGER = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


def _best_score(lines: tuple[EvaluationLine, ...], fen: str) -> int:
    """Clamped score of the rank-1 line, or 0 when the engine reported nothing."""
    if not lines:
        return 0
    for line in lines:
        if line.rank == 1:
            return line.clamped_cp
    fallback = min(lines, key=lambda line: line.rank)
    _LOGGER.warning(
        "No rank-1 line for %s; using rank %d as the best score", fen, fallback.rank
    )
    return fallback.clamped_cp


class GameAnalyzer:
    """Analyzes a move list with per-ply engine evaluations.

    Plies are processed strictly in order and every evaluation request is
    awaited before the next one is issued. Analyzers may share one evaluator
    session in turn; a request made while another analyzer's request is still
    running on that session raises :class:`EvaluatorBusyError`.
    """

    __slots__ = ("_adapter", "_settings")

    def __init__(
        self,
        evaluator: Evaluator,
        settings: AnalysisSettings | None = None,
    ) -> None:
        self._settings = settings or AnalysisSettings()
        self._settings.validate()
        self._adapter = EvaluatorAdapter(evaluator)

    @property
    def settings(self) -> AnalysisSettings:
        return self._settings

    async def analyze_text(
        self,
        raw_text: str,
        *,
        on_progress: ProgressCallback | None = None,
    ) -> GameAnalysisReport:
        """Tokenize *raw_text* and analyze its mainline.

        Raises:
            InvalidInputError: when the text holds no moves or a bad start FEN.
            EvaluatorUnavailableError: when the evaluator session fails.
        """
        game = tokenize(raw_text)
        return await self.analyze_moves(
            game.tokens,
            start_fen=game.start_fen,
            headers=game.headers,
            on_progress=on_progress,
        )

    async def analyze_moves(
        self,
        tokens: Iterable[str],
        *,
        start_fen: str | None = None,
        headers: Mapping[str, str] | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> GameAnalysisReport:
        """Analyze *tokens* played from *start_fen*.

        An illegal token halts the run; the returned report then carries the
        error and the records collected so far.
        """
        move_tokens = list(tokens)
        if not move_tokens:
            raise InvalidInputError("Move list is empty")
        try:
            replayer = PositionReplayer(start_fen)
        except ValueError as exc:
            raise InvalidInputError(str(exc)) from exc

        settings = self._settings
        budget = settings.budget()
        total = len(move_tokens)
        records: list[PlyRecord] = []
        error: IllegalMoveError | None = None

        _LOGGER.info("Analyzing %d plies from %s", total, replayer.start_fen)
        await self._adapter.new_game()

        for ply_index, token in enumerate(move_tokens, start=1):
            fen_before = replayer.fen_at(ply_index - 1)
            side = replayer.side_to_move

            pre_lines = await self._adapter.top_lines(fen_before, budget, settings.multipv)
            pre_score = _best_score(pre_lines, fen_before)

            try:
                applied = replayer.apply_next(token)
            except IllegalMoveError as exc:
                _LOGGER.warning("Analysis halted: %s", exc)
                error = exc
                break

            forced = await self._adapter.forced_line_for(fen_before, applied.uci, budget)
            if forced is None:
                _LOGGER.debug("No forced line for %s at ply %d", applied.uci, ply_index)
                post_score = pre_score
            else:
                post_score = forced.clamped_cp

            tag = classify(
                ply_index,
                pre_score,
                post_score,
                pre_lines,
                book_max_ply=settings.book_plies,
            )
            record = PlyRecord(
                ply_index=ply_index,
                side=side,
                move_text=applied.san,
                move_uci=applied.uci,
                pre_score=pre_score,
                post_score=post_score,
                loss=loss_between(pre_score, post_score),
                tag=tag,
                candidate_lines=MappingProxyType({line.rank: line for line in pre_lines}),
            )
            records.append(record)
            _LOGGER.debug(
                "Ply %d %s: pre=%d post=%d loss=%d tag=%s",
                ply_index,
                record.move_text,
                pre_score,
                post_score,
                record.loss,
                tag,
            )
            if on_progress is not None:
                on_progress(ply_index, total)

        report = GameAnalysisReport(
            headers=MappingProxyType(dict(headers or {})),
            start_fen=replayer.start_fen,
            total_tokens=total,
            records=tuple(records),
            white=summarize(r for r in records if r.side is Side.WHITE),
            black=summarize(r for r in records if r.side is Side.BLACK),
            error=error,
        )
        _LOGGER.info(
            "Analysis %s: %d/%d plies, accuracy white %d%% black %d%%",
            "complete" if report.is_complete else "halted",
            report.total_plies,
            total,
            report.white.accuracy_percent,
            report.black.accuracy_percent,
        )
        return report
