"""Presentation orderings for per-stimulus results.

Every ranking returns a list of indices into *items*.  The items themselves
are never mutated, re-sorted in place or recomputed, so toggling between
modes is just another call over the same data.  All sorts are stable:
equal keys keep their original relative order.
"""

from __future__ import annotations

import logging
import unicodedata
from collections.abc import Sequence
from enum import Enum

from sessionscore.analysis.metrics import performance_score
from sessionscore.analysis.models import StimulusResult
from sessionscore.models import TrialRecord
from sessionscore.taxonomy import OutcomeTaxonomy

logger = logging.getLogger(__name__)


class SortMode(str, Enum):
    SEVERITY = "severity"
    ALPHABETICAL = "alphabetical"
    ORDER = "order"
    PERFORMANCE = "performance"


def _severity_key(status: str, taxonomy: OutcomeTaxonomy) -> tuple[int, int]:
    """(bucket, rank): ranked statuses first, worst first; unknown severity last."""
    severity = taxonomy.status(status).severity
    if severity is None:
        return (1, 0)
    return (0, severity)


def _collation_key(label: str) -> str:
    """Accent- and case-insensitive sort key ("Água" sorts with "agua")."""
    decomposed = unicodedata.normalize("NFKD", label)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.casefold()


def rank_by_severity(items: Sequence[StimulusResult], taxonomy: OutcomeTaxonomy) -> list[int]:
    """Worst status first, per the taxonomy's fixed severity order.

    Threshold: attention → moderate → positive → insufficient.
    Predominant: not_performed → with_help → performed.
    """
    return sorted(range(len(items)), key=lambda i: _severity_key(items[i].status, taxonomy))


def rank_alphabetically(items: Sequence[StimulusResult]) -> list[int]:
    """Alphabetical by label, ignoring accents and case.

    Uses a Unicode key (NFKD with combining marks stripped, then
    ``casefold``) rather than a locale collator, so results don't depend on
    the machine's locale.  For Portuguese labels this matches a locale
    compare except that accented and unaccented forms of the same word tie
    and keep their input order.
    """
    return sorted(range(len(items)), key=lambda i: _collation_key(items[i].label))


def rank_by_order(items: Sequence[StimulusResult]) -> list[int]:
    """Program order (the order stimuli were planned in)."""
    return sorted(range(len(items)), key=lambda i: items[i].order)


def rank_by_performance(items: Sequence[StimulusResult], taxonomy: OutcomeTaxonomy) -> list[int]:
    """Best weighted performance first (independent ×3, help ×1)."""
    by_severity = sorted(taxonomy.outcomes, key=lambda o: o.severity)

    def score(i: int) -> float:
        counts = items[i].counts
        return performance_score([counts.get(o.key, 0) for o in by_severity])

    return sorted(range(len(items)), key=score, reverse=True)


def rank(
    items: Sequence[StimulusResult],
    mode: SortMode | str,
    taxonomy: OutcomeTaxonomy,
) -> list[int]:
    """Dispatch to the ranking for *mode*."""
    mode = SortMode(mode)
    logger.debug("Ranking %d stimuli by %s", len(items), mode.value)
    if mode is SortMode.SEVERITY:
        return rank_by_severity(items, taxonomy)
    if mode is SortMode.ALPHABETICAL:
        return rank_alphabetically(items)
    if mode is SortMode.ORDER:
        return rank_by_order(items)
    return rank_by_performance(items, taxonomy)


def remove_last_of_kind(records: Sequence[TrialRecord], outcome: str) -> list[TrialRecord]:
    """Drop the most recently added record with *outcome*.

    Last-in-first-out within that outcome kind, not globally.  Returns a new
    list; when no record of that kind exists the result is an unchanged
    copy.  Counts are always re-derived from the list, so list and counts
    can't drift apart.
    """
    for index in range(len(records) - 1, -1, -1):
        if records[index].outcome == outcome:
            return [*records[:index], *records[index + 1:]]
    logger.debug("No '%s' trial to remove", outcome)
    return list(records)
