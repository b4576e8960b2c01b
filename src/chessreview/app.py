"""Command line entry point: analyse one game and print the review."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import TextIO

from chessreview.analysis import (
    TAG_DISPLAY_ORDER,
    AnalysisSettings,
    GameAnalysisReport,
    GameAnalyzer,
    PlyRecord,
    SideSummary,
)
from chessreview.analysis.settings import EvaluatorFactory
from chessreview.core.notation import tokenize
from chessreview.errors import EvaluatorUnavailableError, InvalidInputError

_LOGGER = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    defaults = AnalysisSettings()
    parser = argparse.ArgumentParser(
        prog="chessreview",
        description="Review a chess game move by move with a UCI engine.",
    )
    parser.add_argument("game", help="PGN file to analyse, or '-' for stdin")
    parser.add_argument("--engine", default=defaults.engine_path, help="UCI engine binary")
    parser.add_argument("--depth", type=int, default=defaults.depth)
    parser.add_argument(
        "--movetime",
        type=int,
        default=defaults.movetime_ms,
        help="milliseconds per search; overrides --depth when > 0",
    )
    parser.add_argument(
        "--multipv",
        type=int,
        default=defaults.multipv,
        help="number of ranked candidate lines",
    )
    parser.add_argument("--threads", type=int, default=defaults.threads)
    parser.add_argument("--hash", type=int, default=defaults.hash_mb, help="hash size in MB")
    parser.add_argument("--book-plies", type=int, default=defaults.book_plies)
    parser.add_argument("-v", "--verbose", action="count", default=0)
    return parser


def _settings_from_args(args: argparse.Namespace) -> AnalysisSettings:
    settings = AnalysisSettings(
        engine_path=args.engine,
        threads=args.threads,
        hash_mb=args.hash,
        depth=args.depth,
        movetime_ms=args.movetime,
        multipv=args.multipv,
        book_plies=args.book_plies,
    )
    settings.validate()
    return settings


def _read_game_text(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def format_side(name: str, summary: SideSummary) -> str:
    badges = "  ".join(f"{tag.label}: {summary.count(tag)}" for tag in TAG_DISPLAY_ORDER)
    return (
        f"{name}: accuracy {summary.accuracy_percent}%  "
        f"ACPL {summary.rounded_average_loss}\n  {badges}"
    )


def _format_cell(record: PlyRecord | None) -> str:
    if record is None:
        return ""
    return f"{record.move_text} {record.tag.label} {record.loss} cp"


def format_report(report: GameAnalysisReport) -> str:
    """Render a report as plain text: title, side summaries, move table."""
    lines = [
        report.title,
        format_side("White", report.white),
        format_side("Black", report.black),
        "",
    ]
    records = report.records
    for idx in range(0, len(records), 2):
        white = records[idx]
        black = records[idx + 1] if idx + 1 < len(records) else None
        number = f"{idx // 2 + 1}."
        lines.append(f"{number:<5}{_format_cell(white):<28}{_format_cell(black)}".rstrip())
    return "\n".join(lines)


async def _analyze(
    game_text: str,
    settings: AnalysisSettings,
    evaluator_factory: EvaluatorFactory,
    progress_stream: TextIO,
) -> GameAnalysisReport:
    def on_progress(done: int, total: int) -> None:
        progress_stream.write(f"\rAnalyzing... {done}/{total} moves")
        progress_stream.flush()

    game = tokenize(game_text)
    async with evaluator_factory(settings) as evaluator:
        analyzer = GameAnalyzer(evaluator, settings)
        report = await analyzer.analyze_moves(
            game.tokens,
            start_fen=game.start_fen,
            headers=game.headers,
            on_progress=on_progress,
        )
    progress_stream.write("\n")
    return report


def main(
    argv: Sequence[str] | None = None,
    *,
    evaluator_factory: EvaluatorFactory | None = None,
) -> int:
    """Run the command line tool and return the process exit status."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    level = logging.WARNING
    if args.verbose:
        level = logging.DEBUG if args.verbose > 1 else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = _settings_from_args(args)
    except ValueError as exc:
        parser.error(str(exc))
    _LOGGER.debug("Analysis settings: %s", settings)

    try:
        game_text = _read_game_text(args.game)
    except OSError as exc:
        print(f"error: cannot read {args.game}: {exc}", file=sys.stderr)
        return 1

    factory = evaluator_factory or AnalysisSettings.create_evaluator
    try:
        report = asyncio.run(_analyze(game_text, settings, factory, sys.stderr))
    except (InvalidInputError, EvaluatorUnavailableError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    print(format_report(report))
    if report.error is not None:
        print(
            f"warning: analysis stopped early: {report.error}",
            file=sys.stderr,
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
