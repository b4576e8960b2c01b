"""Request/response adapter over a streaming evaluator session."""

from __future__ import annotations

import logging
import threading
import weakref
from contextlib import aclosing

from chessreview.engine.search import (
    EvaluationLine,
    Evaluator,
    LineUpdate,
    SearchBudget,
    SearchComplete,
)
from chessreview.errors import EvaluatorBusyError, EvaluatorUnavailableError

_LOGGER = logging.getLogger(__name__)


class _SessionState:
    """Request bookkeeping shared by every adapter over one evaluator."""

    __slots__ = ("__weakref__", "line_count", "pending")

    def __init__(self) -> None:
        self.line_count: int | None = None
        self.pending: str | None = None


# Keyed by id(evaluator). An entry lives only while some adapter holds it, and
# every such adapter keeps its evaluator alive, so the id cannot be reused.
_SESSIONS: weakref.WeakValueDictionary[int, _SessionState] = weakref.WeakValueDictionary()
_SESSIONS_LOCK = threading.Lock()


def _session_state(evaluator: Evaluator) -> _SessionState:
    with _SESSIONS_LOCK:
        state = _SESSIONS.get(id(evaluator))
        if state is None:
            state = _SessionState()
            _SESSIONS[id(evaluator)] = state
        return state


class EvaluatorAdapter:
    """Turns evaluator event streams into ranked line snapshots.

    The active ranked line count and the outstanding request belong to the
    evaluator session, not to the adapter: every adapter built over the same
    evaluator sees the same state. A request issued while another one is
    still running on the session raises :class:`EvaluatorBusyError` instead
    of being sent.
    """

    __slots__ = ("_evaluator", "_session")

    def __init__(self, evaluator: Evaluator) -> None:
        self._evaluator = evaluator
        self._session = _session_state(evaluator)

    @property
    def line_count(self) -> int | None:
        """Ranked line count the session is currently configured for."""
        return self._session.line_count

    @property
    def is_busy(self) -> bool:
        return self._session.pending is not None

    async def new_game(self) -> None:
        self._begin("new-game")
        try:
            await self._evaluator.new_game()
        except EvaluatorUnavailableError:
            raise
        except Exception as exc:
            raise EvaluatorUnavailableError(f"Evaluator rejected new game: {exc}") from exc
        finally:
            self._session.pending = None

    async def top_lines(
        self,
        fen: str,
        budget: SearchBudget,
        line_count: int,
    ) -> tuple[EvaluationLine, ...]:
        """Return up to *line_count* ranked lines for *fen*, best first."""
        if line_count < 1:
            raise ValueError("line_count must be >= 1")
        self._begin(f"top-lines {fen}")
        try:
            if line_count != self._session.line_count:
                await self._configure(line_count)
            lines = await self._collect(fen, budget, line_count, restrict_to=None)
        finally:
            self._session.pending = None
        _LOGGER.debug("Top lines for %s: %s", fen, lines)
        return lines

    async def forced_line_for(
        self,
        fen: str,
        move: str,
        budget: SearchBudget,
    ) -> EvaluationLine | None:
        """Evaluate *fen* with the search restricted to coordinate *move*.

        Returns ``None`` when the engine reports no line.
        """
        self._begin(f"forced-line {fen} {move}")
        try:
            lines = await self._collect(fen, budget, 1, restrict_to=move)
        finally:
            self._session.pending = None
        return lines[0] if lines else None

    def _begin(self, description: str) -> None:
        pending = self._session.pending
        if pending is not None:
            raise EvaluatorBusyError(
                f"Cannot start {description!r}: {pending!r} is still running"
            )
        self._session.pending = description

    async def _configure(self, line_count: int) -> None:
        # Unknown until the session confirms, so a failure forces a retry.
        self._session.line_count = None
        try:
            await self._evaluator.set_line_count(line_count)
        except EvaluatorUnavailableError:
            raise
        except Exception as exc:
            raise EvaluatorUnavailableError(
                f"Failed to set ranked line count to {line_count}: {exc}"
            ) from exc
        self._session.line_count = line_count

    async def _collect(
        self,
        fen: str,
        budget: SearchBudget,
        line_count: int,
        *,
        restrict_to: str | None,
    ) -> tuple[EvaluationLine, ...]:
        latest: dict[int, LineUpdate] = {}
        completed = False
        stream = self._evaluator.search(fen, budget, restrict_to=restrict_to)
        async with aclosing(stream):
            async for event in stream:
                if isinstance(event, SearchComplete):
                    completed = True
                    break
                if not 1 <= event.rank <= line_count:
                    continue
                # Updates may arrive out of rank order; keep the deepest per rank.
                previous = latest.get(event.rank)
                if previous is None or event.depth >= previous.depth:
                    latest[event.rank] = event
        if not completed:
            raise EvaluatorUnavailableError(
                f"Search of {fen!r} ended without a completion signal"
            )
        return tuple(latest[rank].to_line() for rank in sorted(latest))
