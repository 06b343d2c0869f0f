"""Fold trial records into per-stimulus outcome counts."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence

from sessionscore.analysis.classify import check_records
from sessionscore.analysis.models import OutcomeCounts
from sessionscore.models import UNKNOWN_STIMULUS, TrialRecord
from sessionscore.taxonomy import OutcomeTaxonomy

logger = logging.getLogger(__name__)


def aggregate_by_stimulus(
    records: Iterable[TrialRecord],
    taxonomy: OutcomeTaxonomy,
) -> dict[str, OutcomeCounts]:
    """Count outcomes per stimulus.

    Records with a blank stimulus id land in the ``"unknown"`` bucket rather
    than being dropped.  The result doesn't depend on record order and the
    input is never mutated.
    """
    records = list(records)
    check_records(records, taxonomy)

    raw: dict[str, dict[str, int]] = {}
    for record in records:
        bucket = raw.setdefault(record.bucket, dict.fromkeys(taxonomy.outcome_keys, 0))
        bucket[record.outcome] += 1

    if UNKNOWN_STIMULUS in raw:
        logger.debug(
            "%d trial(s) without a stimulus id aggregated under '%s'",
            sum(raw[UNKNOWN_STIMULUS].values()), UNKNOWN_STIMULUS,
        )
    logger.debug("Aggregated %d trials into %d stimuli", len(records), len(raw))
    return {stimulus_id: OutcomeCounts(c) for stimulus_id, c in raw.items()}


def sum_counts(a: Mapping[str, int], b: Mapping[str, int]) -> OutcomeCounts:
    """Point-wise sum over the union of keys (associative and commutative)."""
    keys = list(a) + [k for k in b if k not in a]
    return OutcomeCounts({k: a.get(k, 0) + b.get(k, 0) for k in keys})


def fold_counts(
    counts: Iterable[Mapping[str, int]],
    taxonomy: OutcomeTaxonomy,
) -> OutcomeCounts:
    """Sum any number of count tuples, starting from the taxonomy's zero."""
    total = OutcomeCounts.zero(taxonomy.outcome_keys)
    for c in counts:
        total = sum_counts(total, c)
    return total


def durations_by_stimulus(records: Sequence[TrialRecord]) -> dict[str, float]:
    """Block duration per stimulus: the most recently recorded value wins.

    Duration is captured once per activity block, so values are never
    summed.  "Most recent" means latest timestamp, then highest attempt
    number, then latest position in *records*.  Stimuli with no duration at
    all are absent from the result.
    """
    ordered = sorted(
        enumerate(records),
        key=lambda pair: (pair[1].timestamp, pair[1].attempt_number, pair[0]),
    )
    durations: dict[str, float] = {}
    for _, record in ordered:
        if record.duration_minutes is not None:
            durations[record.bucket] = record.duration_minutes
    return durations


def scores_by_stimulus(
    records: Iterable[TrialRecord],
    taxonomy: OutcomeTaxonomy,
) -> dict[str, dict[str, int]]:
    """First recorded value of each auxiliary scale, per stimulus.

    Scale values are stamped on every trial of a block when it is finished,
    so the first one seen is representative of the block.  Keys not
    declared by the taxonomy are ignored.
    """
    scale_keys = [s.key for s in taxonomy.scales]
    result: dict[str, dict[str, int]] = {}
    if not scale_keys:
        return result
    for record in records:
        values = result.setdefault(record.bucket, {})
        for key in scale_keys:
            value = record.scores.get(key)
            if value is not None and key not in values:
                values[key] = value
    return {stimulus_id: v for stimulus_id, v in result.items() if v}
