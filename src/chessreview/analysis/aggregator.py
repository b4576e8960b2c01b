"""Per-side summary statistics derived from ply records."""

from __future__ import annotations

import math
from collections import Counter
from collections.abc import Iterable
from types import MappingProxyType

from chessreview.analysis.models import PlyRecord, SideSummary

ACCURACY_LOSS_COEFFICIENT = 0.22


def accuracy_from_average_loss(average_loss: float) -> int:
    """Map average loss to a 0..100 accuracy percentage.

    Linear in the loss, rounded half up and saturating at both ends.
    """
    raw = 100 - ACCURACY_LOSS_COEFFICIENT * average_loss
    return max(0, min(100, math.floor(raw + 0.5)))


def summarize(records: Iterable[PlyRecord]) -> SideSummary:
    """Fold one side's records into a :class:`SideSummary`."""
    move_count = 0
    loss_sum = 0
    histogram: Counter = Counter()
    for record in records:
        move_count += 1
        loss_sum += record.loss
        histogram[record.tag] += 1

    average = loss_sum / move_count if move_count else 0.0
    return SideSummary(
        move_count=move_count,
        average_loss=average,
        accuracy_percent=accuracy_from_average_loss(average),
        tag_histogram=MappingProxyType(dict(histogram)),
    )
