"""Background game analysis orchestration for the UI thread."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from typing import Any

from PyQt6.QtCore import QObject, QThread, pyqtSignal, pyqtSlot

from chessreview.analysis import AnalysisSettings, GameAnalysisReport, GameAnalyzer
from chessreview.analysis.settings import EvaluatorFactory
from chessreview.core.notation import tokenize


def default_evaluator_factory(settings: AnalysisSettings) -> AbstractAsyncContextManager[Any]:
    return settings.create_evaluator()


class _AnalysisCommandBus(QObject):
    analyze_requested = pyqtSignal(int, str, object)


class _AnalysisWorker(QObject):
    progress = pyqtSignal(int, int, int)  # request_id, done, total
    finished = pyqtSignal(int, object)  # request_id, report
    failed = pyqtSignal(int, str)  # request_id, message

    __slots__ = ("_evaluator_factory",)

    def __init__(self, evaluator_factory: EvaluatorFactory) -> None:
        super().__init__()
        self._evaluator_factory = evaluator_factory

    @pyqtSlot(int, str, object)
    def analyze(self, request_id: int, game_text: str, settings_obj: object) -> None:
        if not isinstance(settings_obj, AnalysisSettings):
            self.failed.emit(request_id, "Invalid analysis settings")
            return

        try:
            settings_obj.validate()
            report = asyncio.run(self._run(request_id, game_text, settings_obj))
        except Exception as exc:
            self.failed.emit(request_id, str(exc))
            return
        self.finished.emit(request_id, report)

    async def _run(
        self,
        request_id: int,
        game_text: str,
        settings: AnalysisSettings,
    ) -> GameAnalysisReport:
        # Reject unusable text before an engine process is launched.
        game = tokenize(game_text)
        async with self._evaluator_factory(settings) as evaluator:
            analyzer = GameAnalyzer(evaluator, settings)
            return await analyzer.analyze_moves(
                game.tokens,
                start_fen=game.start_fen,
                headers=game.headers,
                on_progress=lambda done, total: self.progress.emit(
                    request_id,
                    done,
                    total,
                ),
            )


class AnalysisSession:
    """Owns worker-thread lifecycle for game analysis requests.

    A running analysis is never interrupted; starting a new request or
    calling :meth:`discard_pending` only makes the session ignore results of
    the superseded request.
    """

    __slots__ = (
        "__weakref__",
        "_on_progress",
        "_on_finished",
        "_on_failed",
        "_command_bus",
        "_thread",
        "_worker",
        "_is_started",
        "_is_shutting_down",
        "_pending_request_id",
        "_next_request_id",
    )

    def __init__(
        self,
        *,
        on_progress: Callable[[int, int], None],
        on_finished: Callable[[GameAnalysisReport], None],
        on_failed: Callable[[str], None],
        evaluator_factory: EvaluatorFactory = default_evaluator_factory,
        parent: QObject | None = None,
    ) -> None:
        self._on_progress = on_progress
        self._on_finished = on_finished
        self._on_failed = on_failed

        self._command_bus = _AnalysisCommandBus(parent)
        self._thread = QThread(parent)
        self._worker = _AnalysisWorker(evaluator_factory)
        self._is_started = False
        self._is_shutting_down = False
        self._pending_request_id: int | None = None
        self._next_request_id = 0

    @property
    def is_running(self) -> bool:
        return self._pending_request_id is not None

    def setup(self) -> None:
        """Start worker thread and connect cross-thread signals."""
        if self._is_started:
            return
        self._is_shutting_down = False
        self._worker.moveToThread(self._thread)
        self._command_bus.analyze_requested.connect(self._worker.analyze)
        self._worker.progress.connect(self._on_worker_progress)
        self._worker.finished.connect(self._on_worker_finished)
        self._worker.failed.connect(self._on_worker_failed)
        self._thread.start()
        self._is_started = True

    def shutdown(self) -> None:
        """Drop pending results and stop the worker thread."""
        if not self._is_started:
            return
        self._is_shutting_down = True
        self.discard_pending()
        self._thread.quit()
        self._thread.wait(2000)
        self._is_started = False

    def start_analysis(self, game_text: str, settings: AnalysisSettings) -> bool:
        """Queue an analysis of *game_text*; supersedes any pending request."""
        if not game_text.strip():
            return False
        if not self._is_started:
            self.setup()
        if self._is_shutting_down:
            return False

        self._next_request_id += 1
        request_id = self._next_request_id
        self._pending_request_id = request_id
        self._command_bus.analyze_requested.emit(request_id, game_text, settings)
        return True

    def discard_pending(self) -> None:
        """Ignore the result of the request currently in flight."""
        self._pending_request_id = None

    def _on_worker_progress(self, request_id: int, done: int, total: int) -> None:
        if request_id != self._pending_request_id:
            return
        self._on_progress(done, total)

    def _on_worker_finished(self, request_id: int, report_obj: object) -> None:
        if self._is_shutting_down:
            return
        if request_id != self._pending_request_id:
            return
        self._pending_request_id = None
        if not isinstance(report_obj, GameAnalysisReport):
            self._on_failed("Analysis worker produced invalid report")
            return
        self._on_finished(report_obj)

    def _on_worker_failed(self, request_id: int, message: str) -> None:
        if self._is_shutting_down:
            return
        if request_id != self._pending_request_id:
            return
        self._pending_request_id = None
        self._on_failed(message)
