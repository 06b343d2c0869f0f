"""Map outcome counts to a qualitative status.

Two strategies, selected by the taxonomy:

- ``threshold-independence`` (ABA): independence rate against fixed cut
  points, with an insufficient-data floor that always wins.
- ``predominant-outcome`` (TO, physio, music therapy): the outcome kind with
  the largest count, ties going to the better outcome.

Both are pure functions of ``(counts, taxonomy)``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from sessionscore.analysis.metrics import percentage
from sessionscore.analysis.models import StatusDescription
from sessionscore.models import TrialRecord
from sessionscore.taxonomy import ConfigurationMismatch, OutcomeTaxonomy

logger = logging.getLogger(__name__)

INSUFFICIENT = "insufficient"
POSITIVE = "positive"
MODERATE = "moderate"
ATTENTION = "attention"


def check_records(records: Iterable[TrialRecord], taxonomy: OutcomeTaxonomy) -> None:
    """Validate records against *taxonomy* before they are counted.

    A foreign outcome raises ConfigurationMismatch.  A score outside its
    scale's declared range raises ValueError; scores for scales the taxonomy
    doesn't declare are left alone (they never reach a mean).
    """
    keys = taxonomy.outcome_keys
    for record in records:
        if record.outcome not in keys:
            msg = (
                f"trial {record.attempt_number} of stimulus '{record.bucket}' has"
                f" outcome '{record.outcome}', which is not part of taxonomy"
                f" '{taxonomy.id}' (expected one of {list(keys)})"
            )
            raise ConfigurationMismatch(msg)
        for scale in taxonomy.scales:
            value = record.scores.get(scale.key)
            if value is not None and not scale.contains(value):
                msg = (
                    f"trial {record.attempt_number} of stimulus '{record.bucket}' has"
                    f" {scale.label} {value}, outside {scale.minimum}..{scale.maximum}"
                )
                raise ValueError(msg)


def check_counts(counts: Mapping[str, int], taxonomy: OutcomeTaxonomy) -> None:
    """Raise ConfigurationMismatch unless *counts* covers exactly the taxonomy's outcomes."""
    if set(counts) != set(taxonomy.outcome_keys):
        msg = (
            f"counts {sorted(counts)} do not match taxonomy '{taxonomy.id}'"
            f" outcomes {sorted(taxonomy.outcome_keys)}"
        )
        raise ConfigurationMismatch(msg)


def independence_rate(counts: Mapping[str, int], taxonomy: OutcomeTaxonomy) -> int:
    """Integer percentage of independent outcomes (0 when there are no trials)."""
    check_counts(counts, taxonomy)
    total = sum(counts.values())
    return percentage(counts[taxonomy.independent_outcome], total)


def classify(counts: Mapping[str, int], taxonomy: OutcomeTaxonomy) -> str:
    """Return the status key for *counts* under *taxonomy*'s strategy."""
    check_counts(counts, taxonomy)
    if taxonomy.is_threshold:
        return _classify_threshold(counts, taxonomy)
    return _classify_predominant(counts, taxonomy)


def _classify_threshold(counts: Mapping[str, int], taxonomy: OutcomeTaxonomy) -> str:
    total = sum(counts.values())
    if total < taxonomy.min_trials:
        return INSUFFICIENT
    rate = percentage(counts[taxonomy.independent_outcome], total)
    # Strict ">" at both cut points: exactly 80 is moderate, exactly 60 is attention
    if rate > taxonomy.positive_above:
        return POSITIVE
    if rate > taxonomy.moderate_above:
        return MODERATE
    return ATTENTION


def _classify_predominant(counts: Mapping[str, int], taxonomy: OutcomeTaxonomy) -> str:
    if sum(counts.values()) == 0:
        return taxonomy.empty_status
    best = max(counts.values())
    for key in taxonomy.tie_break:
        if counts[key] == best:
            return taxonomy.status_for_outcome(key)
    # tie_break lists every outcome (validated at load time)
    raise AssertionError(f"no outcome reached max count {best}")


def describe(status: str, taxonomy: OutcomeTaxonomy) -> StatusDescription:
    """Label, severity rank and tone for a status key."""
    definition = taxonomy.status(status)
    return StatusDescription(
        key=definition.key,
        label=definition.label,
        severity=definition.severity,
        tone=definition.tone,
    )


def goal_reached(counts: Mapping[str, int], taxonomy: OutcomeTaxonomy) -> bool:
    """True when a threshold taxonomy's positive cut point has been passed.

    Predominant-outcome taxonomies have no goal line.
    """
    if not taxonomy.is_threshold:
        return False
    return classify(counts, taxonomy) == POSITIVE


def is_worst_status(status: str, taxonomy: OutcomeTaxonomy) -> bool:
    """True for the lowest-ranked status (``attention`` / ``not_performed``)."""
    ranked = [s.severity for s in taxonomy.statuses if s.severity is not None]
    severity = taxonomy.status(status).severity
    return severity is not None and severity == min(ranked)
