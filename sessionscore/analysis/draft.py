"""Draft trial buffer for an in-progress activity block.

While a block is open, trials are held in a per-block draft list.  "Finish
block" stamps the block's duration and scale values onto every draft trial
and hands them back for appending to the session's committed trials.  The
draft's counts are always derived from its list, never kept as a separate
counter, so remove-last-of-kind always has an authoritative list to scan.

A DraftBlock is owned by one caller and mutated as a strict sequence of
add/remove calls; it does no locking.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone

from sessionscore.analysis.classify import classify
from sessionscore.analysis.models import BlockSummary, OutcomeCounts
from sessionscore.analysis.rank import remove_last_of_kind
from sessionscore.models import UNKNOWN_STIMULUS, TrialRecord
from sessionscore.taxonomy import ConfigurationMismatch, OutcomeTaxonomy

logger = logging.getLogger(__name__)


class DraftBlock:
    """Uncommitted trials for one stimulus/activity block."""

    def __init__(
        self,
        stimulus_id: str,
        taxonomy: OutcomeTaxonomy,
        *,
        committed: Sequence[TrialRecord] = (),
        stimulus_label: str | None = None,
    ) -> None:
        self.stimulus_id = stimulus_id
        self.stimulus_label = stimulus_label
        self.taxonomy = taxonomy
        bucket = stimulus_id.strip() or UNKNOWN_STIMULUS
        self._committed_for_stimulus = sum(1 for t in committed if t.bucket == bucket)
        self._trials: list[TrialRecord] = []

    @property
    def trials(self) -> list[TrialRecord]:
        return list(self._trials)

    @property
    def counts(self) -> OutcomeCounts:
        values = dict.fromkeys(self.taxonomy.outcome_keys, 0)
        for t in self._trials:
            values[t.outcome] += 1
        return OutcomeCounts(values)

    def __len__(self) -> int:
        return len(self._trials)

    def add(
        self,
        outcome: str,
        *,
        timestamp: datetime | None = None,
        duration_minutes: float | None = None,
    ) -> TrialRecord:
        """Append one trial; attempt numbers continue from committed trials."""
        if not self.taxonomy.has_outcome(outcome):
            msg = f"outcome '{outcome}' is not part of taxonomy '{self.taxonomy.id}'"
            raise ConfigurationMismatch(msg)
        record = TrialRecord(
            attempt_number=self._committed_for_stimulus + len(self._trials) + 1,
            stimulus_id=self.stimulus_id,
            stimulus_label=self.stimulus_label,
            outcome=outcome,
            timestamp=timestamp or datetime.now(timezone.utc),
            duration_minutes=duration_minutes,
        )
        self._trials.append(record)
        return record

    def remove_last(self, outcome: str) -> bool:
        """Remove the most recent draft trial with *outcome*.

        Returns False (and changes nothing) if there is none.
        """
        before = len(self._trials)
        self._trials = remove_last_of_kind(self._trials, outcome)
        return len(self._trials) < before

    def finish(
        self,
        *,
        duration_minutes: float | None = None,
        scores: Mapping[str, int | None] | None = None,
    ) -> tuple[list[TrialRecord], BlockSummary]:
        """Close the block.

        Returns the trials to append to the committed list, each stamped
        with the block duration (when given) and the block's scale values,
        plus a summary of the block.  The draft is emptied.
        """
        if duration_minutes is not None and duration_minutes < 0:
            msg = f"duration must be non-negative, got {duration_minutes}"
            raise ValueError(msg)
        score_values = self._check_scores(scores or {})

        counts = self.counts
        finished: list[TrialRecord] = []
        for t in self._trials:
            update: dict[str, object] = {"scores": {**t.scores, **score_values}}
            if duration_minutes is not None:
                update["duration_minutes"] = duration_minutes
            finished.append(t.model_copy(update=update))

        summary = BlockSummary(
            stimulus_id=self.stimulus_id,
            counts=counts,
            status=classify(counts, self.taxonomy),
            finished_at=datetime.now(timezone.utc),
            duration_minutes=duration_minutes,
            score_values=score_values,
        )
        logger.debug(
            "Finished block '%s': %d trials, status=%s",
            self.stimulus_id, summary.total, summary.status,
        )
        self._committed_for_stimulus += len(finished)
        self._trials = []
        return finished, summary

    def discard(self) -> None:
        """Drop the draft without summarising it."""
        logger.debug("Discarded %d draft trials for '%s'", len(self._trials), self.stimulus_id)
        self._trials = []

    def _check_scores(self, scores: Mapping[str, int | None]) -> dict[str, int]:
        checked: dict[str, int] = {}
        for key, value in scores.items():
            if value is None:
                continue
            scale = self.taxonomy.scale(key)
            if scale is None:
                msg = f"taxonomy '{self.taxonomy.id}' has no scale '{key}'"
                raise ConfigurationMismatch(msg)
            if not scale.contains(value):
                msg = (
                    f"{scale.label} must be between {scale.minimum} and"
                    f" {scale.maximum}, got {value}"
                )
                raise ValueError(msg)
            checked[key] = value
        return checked
