"""UCI engine session driven through python-chess' asyncio API."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from types import TracebackType
from typing import Any

import chess
import chess.engine

from chessreview.engine.search import (
    EvaluatorEvent,
    LineUpdate,
    ScoreKind,
    SearchBudget,
    SearchComplete,
)
from chessreview.errors import EvaluatorUnavailableError

_LOGGER = logging.getLogger(__name__)

_ENGINE_FAILURES = (chess.engine.EngineError, chess.engine.EngineTerminatedError)


def limit_from_budget(budget: SearchBudget) -> chess.engine.Limit:
    """Translate a :class:`SearchBudget` into a python-chess search limit."""
    if budget.time_limit_ms:
        return chess.engine.Limit(time=budget.time_limit_ms / 1000)
    return chess.engine.Limit(depth=budget.max_depth)


def line_update_from_info(info: chess.engine.InfoDict) -> LineUpdate | None:
    """Convert one engine ``info`` report into a :class:`LineUpdate`.

    Reports without a score or a principal variation are skipped. Scores are
    taken relative to the side to move at the searched root.
    """
    pov_score = info.get("score")
    pv = info.get("pv")
    if pov_score is None or not pv:
        return None

    score = pov_score.relative
    mate = score.mate()
    if mate is not None:
        kind, value = ScoreKind.MATE, mate
    else:
        kind, value = ScoreKind.CENTIPAWN, score.score() or 0
    return LineUpdate(
        rank=info.get("multipv", 1),
        score_kind=kind,
        score_value=value,
        pv=tuple(move.uci() for move in pv),
        depth=info.get("depth", 0),
    )


class UciEvaluator:
    """Owns one UCI engine process and serves ranked-line searches.

    Use as an async context manager::

        async with UciEvaluator("stockfish") as evaluator:
            ...
    """

    __slots__ = (
        "_engine_path",
        "_options",
        "_protocol",
        "_transport",
        "_line_count",
        "_game",
    )

    def __init__(
        self,
        engine_path: str,
        *,
        threads: int = 1,
        hash_mb: int = 32,
        options: dict[str, Any] | None = None,
    ) -> None:
        self._engine_path = engine_path
        self._options: dict[str, Any] = {"Threads": threads, "Hash": hash_mb}
        self._options.update(options or {})
        self._transport: Any = None
        self._protocol: chess.engine.UciProtocol | None = None
        self._line_count = 1
        self._game = object()

    @property
    def is_started(self) -> bool:
        return self._protocol is not None

    async def start(self) -> None:
        """Launch the engine process and apply session options."""
        if self._protocol is not None:
            return
        try:
            transport, protocol = await chess.engine.popen_uci(self._engine_path)
        except (OSError, *_ENGINE_FAILURES) as exc:
            raise EvaluatorUnavailableError(
                f"Cannot start engine {self._engine_path!r}: {exc}"
            ) from exc
        self._transport, self._protocol = transport, protocol

        supported = {
            name: value
            for name, value in self._options.items()
            if name in protocol.options
        }
        try:
            await protocol.configure(supported)
        except _ENGINE_FAILURES as exc:
            await self.close()
            raise EvaluatorUnavailableError(f"Cannot configure engine: {exc}") from exc
        _LOGGER.info(
            "Engine %s started (%s)",
            protocol.id.get("name", self._engine_path),
            ", ".join(f"{k}={v}" for k, v in supported.items()) or "defaults",
        )

    async def close(self) -> None:
        protocol = self._protocol
        self._protocol = None
        self._transport = None
        if protocol is None:
            return
        try:
            await protocol.quit()
        except _ENGINE_FAILURES:
            _LOGGER.debug("Engine already terminated on close", exc_info=True)

    async def __aenter__(self) -> UciEvaluator:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def new_game(self) -> None:
        # python-chess sends ``ucinewgame`` whenever the game key changes.
        self._game = object()

    async def set_line_count(self, count: int) -> None:
        if count < 1:
            raise EvaluatorUnavailableError(f"Invalid ranked line count: {count}")
        # MultiPV is managed per search by python-chess; it is applied with
        # the next ``go`` command.
        self._line_count = count

    async def search(
        self,
        fen: str,
        budget: SearchBudget,
        *,
        restrict_to: str | None = None,
    ) -> AsyncGenerator[EvaluatorEvent, None]:
        protocol = self._require_protocol()
        board = chess.Board(fen)
        root_moves = [chess.Move.from_uci(restrict_to)] if restrict_to else None
        try:
            with await protocol.analysis(
                board,
                limit_from_budget(budget),
                multipv=self._line_count,
                game=self._game,
                root_moves=root_moves,
            ) as analysis:
                async for info in analysis:
                    update = line_update_from_info(info)
                    if update is not None:
                        yield update
                best = await analysis.wait()
        except _ENGINE_FAILURES as exc:
            raise EvaluatorUnavailableError(f"Engine search failed: {exc}") from exc
        yield SearchComplete(best.move.uci() if best.move else None)

    def _require_protocol(self) -> chess.engine.UciProtocol:
        if self._protocol is None:
            raise EvaluatorUnavailableError("Engine session is not started")
        return self._protocol
