"""Session-level roll-up: totals, status, worked vs planned, score means."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence

from sessionscore.analysis.aggregate import (
    aggregate_by_stimulus,
    durations_by_stimulus,
    fold_counts,
    scores_by_stimulus,
)
from sessionscore.analysis.classify import check_records, classify, goal_reached, independence_rate
from sessionscore.analysis.metrics import mean_or_none
from sessionscore.analysis.models import OutcomeCounts, SessionSummary, StimulusResult
from sessionscore.models import TrialRecord
from sessionscore.taxonomy import OutcomeTaxonomy

logger = logging.getLogger(__name__)


def score_means(
    trials: Iterable[TrialRecord],
    taxonomy: OutcomeTaxonomy,
) -> dict[str, float | None]:
    """Mean of each auxiliary scale over the trials that carry a value for it.

    Trials without a value are left out of the denominator; a scale with no
    values at all maps to None (a recorded 0 is real data).
    """
    trials = list(trials)
    return {
        scale.key: mean_or_none(t.scores.get(scale.key) for t in trials)
        for scale in taxonomy.scales
    }


def _label_for(stimulus_id: str, trials: Sequence[TrialRecord], labels: Mapping[str, str]) -> str:
    if stimulus_id in labels:
        return labels[stimulus_id]
    for t in trials:
        if t.bucket == stimulus_id and t.stimulus_label:
            return t.stimulus_label
    return stimulus_id


def stimulus_results(
    per_stimulus: Mapping[str, OutcomeCounts],
    trials: Sequence[TrialRecord],
    taxonomy: OutcomeTaxonomy,
    *,
    labels: Mapping[str, str] | None = None,
    order: Mapping[str, int] | None = None,
) -> list[StimulusResult]:
    """Build one ``StimulusResult`` per worked stimulus, in *per_stimulus* order.

    Stimuli missing from *order* are placed after the ordered ones, in the
    order they were first worked.
    """
    labels = labels or {}
    order = order or {}
    durations = durations_by_stimulus(trials)
    scores = scores_by_stimulus(trials, taxonomy)
    fallback = max(order.values(), default=0) + 1

    results: list[StimulusResult] = []
    for position, (stimulus_id, counts) in enumerate(per_stimulus.items()):
        results.append(
            StimulusResult(
                stimulus_id=stimulus_id,
                label=_label_for(stimulus_id, trials, labels),
                counts=counts,
                status=classify(counts, taxonomy),
                independence_rate=independence_rate(counts, taxonomy),
                order=order.get(stimulus_id, fallback + position),
                duration_minutes=durations.get(stimulus_id),
                scores=dict(scores.get(stimulus_id, {})),
                goal_reached=goal_reached(counts, taxonomy),
            )
        )
    return results


def summarize(
    per_stimulus: Mapping[str, OutcomeCounts],
    planned_stimulus_ids: Iterable[str],
    trials: Sequence[TrialRecord],
    taxonomy: OutcomeTaxonomy,
    *,
    labels: Mapping[str, str] | None = None,
    order: Mapping[str, int] | None = None,
) -> SessionSummary:
    """Combine per-stimulus counts into the session's headline numbers.

    The session status uses exactly the same rule as a single stimulus.
    """
    check_records(trials, taxonomy)
    session_counts = fold_counts(per_stimulus.values(), taxonomy)
    durations = durations_by_stimulus(trials)
    planned = set(planned_stimulus_ids)

    summary = SessionSummary(
        taxonomy_id=taxonomy.id,
        counts=session_counts,
        status=classify(session_counts, taxonomy),
        independence_rate=independence_rate(session_counts, taxonomy),
        planned_count=len(planned),
        worked_count=len(per_stimulus),
        score_means=score_means(trials, taxonomy),
        total_duration_minutes=sum(durations.values()) if durations else None,
        stimuli=stimulus_results(
            per_stimulus, trials, taxonomy, labels=labels, order=order,
        ),
    )
    logger.debug(
        "Session summary (%s): %d trials, %d/%d stimuli, status=%s",
        taxonomy.id, summary.total, summary.worked_count,
        summary.planned_count, summary.status,
    )
    return summary


def summarize_session(
    trials: Sequence[TrialRecord],
    planned_stimulus_ids: Iterable[str],
    taxonomy: OutcomeTaxonomy,
    *,
    labels: Mapping[str, str] | None = None,
    order: Mapping[str, int] | None = None,
) -> SessionSummary:
    """Aggregate *trials* and summarise in one step."""
    trials = list(trials)
    per_stimulus = aggregate_by_stimulus(trials, taxonomy)
    return summarize(
        per_stimulus, planned_stimulus_ids, trials, taxonomy,
        labels=labels, order=order,
    )
