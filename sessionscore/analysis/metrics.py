"""Low-level arithmetic for session statistics.

Pure functions with no taxonomy lookups and no I/O.  Higher-level code
(classifier, summary roll-up, ranker) calls these.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

# Weight per outcome severity (0 = worst) for the performance score
PERFORMANCE_WEIGHTS = (0, 1, 3)


def percentage(part: int, whole: int) -> int:
    """Integer percentage of *part* in *whole*, rounded half up.

    Integer arithmetic, so 2/3 → 67 and 1/8 → 13 exactly, with no float
    representation error at the .5 boundary.  Returns 0 when *whole* is 0.
    """
    if whole <= 0:
        return 0
    return (200 * part + whole) // (2 * whole)


def mean_or_none(values: Iterable[float | None]) -> float | None:
    """Arithmetic mean of the non-null values.

    Nulls are excluded from the denominator (they mean "not recorded",
    not zero).  Returns None when nothing was recorded, so a real mean of
    0 stays distinguishable from "no data".
    """
    present = [v for v in values if v is not None]
    if not present:
        return None
    return sum(present) / len(present)


def performance_score(counts_by_severity: Sequence[int]) -> float:
    """Weighted performance in [0, 3]: best outcome ×3, middle ×1, worst ×0.

    *counts_by_severity* is indexed by outcome severity (0 = worst).
    Returns 0 for an empty tuple.
    """
    total = sum(counts_by_severity)
    if total == 0:
        return 0.0
    weighted = sum(
        PERFORMANCE_WEIGHTS[min(i, len(PERFORMANCE_WEIGHTS) - 1)] * n
        for i, n in enumerate(counts_by_severity)
    )
    return weighted / total
