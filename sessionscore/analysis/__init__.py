"""Session performance computation: aggregation, classification, ranking and roll-up."""

from sessionscore.analysis.aggregate import aggregate_by_stimulus, fold_counts, sum_counts
from sessionscore.analysis.classify import classify, describe, independence_rate
from sessionscore.analysis.draft import DraftBlock
from sessionscore.analysis.models import OutcomeCounts, SessionSummary, StimulusResult
from sessionscore.analysis.rank import (
    SortMode,
    rank,
    rank_alphabetically,
    rank_by_severity,
    remove_last_of_kind,
)
from sessionscore.analysis.summary import summarize, summarize_session
from sessionscore.analysis.trends import attention_stimuli, program_kpis
from sessionscore.taxonomy import ConfigurationMismatch

__all__ = [
    "ConfigurationMismatch",
    "DraftBlock",
    "OutcomeCounts",
    "SessionSummary",
    "SortMode",
    "StimulusResult",
    "aggregate_by_stimulus",
    "attention_stimuli",
    "classify",
    "describe",
    "fold_counts",
    "independence_rate",
    "program_kpis",
    "rank",
    "rank_alphabetically",
    "rank_by_severity",
    "remove_last_of_kind",
    "summarize",
    "summarize_session",
    "sum_counts",
]
