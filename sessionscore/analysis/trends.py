"""Program-level reports across several sessions."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sessionscore.analysis.aggregate import aggregate_by_stimulus, durations_by_stimulus, fold_counts
from sessionscore.analysis.classify import classify, independence_rate, is_worst_status
from sessionscore.analysis.metrics import mean_or_none
from sessionscore.analysis.models import AttentionItem, AttentionReport, ProgramKpis
from sessionscore.analysis.summary import score_means
from sessionscore.models import UNKNOWN_STIMULUS, SessionRecord
from sessionscore.taxonomy import OutcomeTaxonomy

logger = logging.getLogger(__name__)

ATTENTION_WINDOWS = (1, 3, 5)


def program_kpis(sessions: Sequence[SessionRecord], taxonomy: OutcomeTaxonomy) -> ProgramKpis:
    """Outcome totals, time and coverage across all sessions of a program.

    Each stimulus's block duration counts once per session (last value
    wins), matching how duration is captured per block rather than per
    trial.
    """
    per_session = [aggregate_by_stimulus(s.trials, taxonomy) for s in sessions]
    counts = fold_counts(
        (c for stimuli in per_session for c in stimuli.values()), taxonomy,
    )

    minutes = 0.0
    stimuli: set[str] = set()
    for session, stimuli_counts in zip(sessions, per_session):
        minutes += sum(durations_by_stimulus(session.trials).values())
        stimuli.update(k for k in stimuli_counts if k != UNKNOWN_STIMULUS)

    return ProgramKpis(
        counts=counts,
        total_minutes=int(minutes + 0.5),
        stimuli_count=len(stimuli),
        sessions_count=len(sessions),
        score_means=score_means((t for s in sessions for t in s.trials), taxonomy),
    )


def _needs_attention(counts, status: str, taxonomy: OutcomeTaxonomy) -> bool:
    if taxonomy.is_threshold:
        return is_worst_status(status, taxonomy)
    # Predominant taxonomies flag any "not performed" at all
    worst = min(taxonomy.outcomes, key=lambda o: o.severity).key
    return counts[worst] > 0


def attention_stimuli(
    sessions: Sequence[SessionRecord],
    taxonomy: OutcomeTaxonomy,
    *,
    last_sessions: int = 5,
) -> AttentionReport:
    """Stimuli needing attention over the most recent *last_sessions* sessions.

    Ordered by lowest independence rate first.  ``has_sufficient_data`` is
    False when no stimulus in the window reaches the taxonomy's minimum
    number of trials.
    """
    if last_sessions not in ATTENTION_WINDOWS:
        msg = f"last_sessions must be one of {ATTENTION_WINDOWS}, got {last_sessions}"
        raise ValueError(msg)

    recent = sorted(sessions, key=lambda s: s.date, reverse=True)[:last_sessions]
    trials = [t for s in recent for t in s.trials]
    per_stimulus = aggregate_by_stimulus(trials, taxonomy)

    labels: dict[str, str] = {}
    for t in trials:
        if t.stimulus_label and t.bucket not in labels:
            labels[t.bucket] = t.stimulus_label

    durations: dict[str, list[float]] = {}
    for session in recent:
        for stimulus_id, minutes in durations_by_stimulus(session.trials).items():
            durations.setdefault(stimulus_id, []).append(minutes)

    items: list[AttentionItem] = []
    sufficient = False
    for stimulus_id, counts in per_stimulus.items():
        if stimulus_id == UNKNOWN_STIMULUS:
            continue
        if counts.total >= taxonomy.min_trials:
            sufficient = True
        status = classify(counts, taxonomy)
        if not _needs_attention(counts, status, taxonomy):
            continue
        mean_minutes = mean_or_none(durations.get(stimulus_id, []))
        items.append(
            AttentionItem(
                stimulus_id=stimulus_id,
                label=labels.get(stimulus_id, stimulus_id),
                counts=counts,
                status=status,
                independence_rate=independence_rate(counts, taxonomy),
                mean_duration_minutes=None if mean_minutes is None else int(mean_minutes + 0.5),
            )
        )

    items.sort(key=lambda item: item.independence_rate)
    logger.debug(
        "%d of %d stimuli need attention over the last %d session(s)",
        len(items), len(per_stimulus), len(recent),
    )
    return AttentionReport(
        items=items,
        last_sessions=last_sessions,
        sessions_considered=len(recent),
        has_sufficient_data=sufficient,
    )
