"""Tests for sessionscore.analysis.draft: the in-progress block buffer."""

from __future__ import annotations

import pytest

from sessionscore.analysis.draft import DraftBlock
from sessionscore.analysis.summary import summarize_session
from sessionscore.models import TrialRecord
from sessionscore.taxonomy import ConfigurationMismatch, OutcomeTaxonomy


class TestAddAndRemove:
    def test_add_numbers_attempts(self, aba: OutcomeTaxonomy) -> None:
        draft = DraftBlock("S1", aba)
        first = draft.add("help")
        second = draft.add("independent")
        assert (first.attempt_number, second.attempt_number) == (1, 2)
        assert len(draft) == 2

    def test_numbering_continues_from_committed(self, aba: OutcomeTaxonomy, make_trials) -> None:
        committed = make_trials([("S1", "help"), ("S2", "help"), ("S1", "error")])
        draft = DraftBlock("S1", aba, committed=committed)
        assert draft.add("independent").attempt_number == 3

    def test_counts_derived_from_list(self, aba: OutcomeTaxonomy) -> None:
        draft = DraftBlock("S1", aba)
        for outcome in ("error", "help", "error", "independent"):
            draft.add(outcome)
        assert dict(draft.counts) == {"error": 2, "help": 1, "independent": 1}
        draft.remove_last("error")
        assert dict(draft.counts) == {"error": 1, "help": 1, "independent": 1}

    def test_remove_last_takes_most_recent_of_kind(self, aba: OutcomeTaxonomy) -> None:
        draft = DraftBlock("S1", aba)
        draft.add("error")
        draft.add("help")
        draft.add("error")
        assert draft.remove_last("error") is True
        assert [t.attempt_number for t in draft.trials] == [1, 2]

    def test_remove_absent_kind_is_noop(self, aba: OutcomeTaxonomy) -> None:
        draft = DraftBlock("S1", aba)
        draft.add("help")
        assert draft.remove_last("error") is False
        assert len(draft) == 1

    def test_remove_from_empty(self, aba: OutcomeTaxonomy) -> None:
        assert DraftBlock("S1", aba).remove_last("help") is False

    def test_foreign_outcome_rejected(self, aba: OutcomeTaxonomy) -> None:
        draft = DraftBlock("S1", aba)
        with pytest.raises(ConfigurationMismatch):
            draft.add("performed")
        assert len(draft) == 0

    def test_trials_is_a_copy(self, aba: OutcomeTaxonomy) -> None:
        draft = DraftBlock("S1", aba)
        draft.add("help")
        draft.trials.clear()
        assert len(draft) == 1


class TestFinish:
    def test_stamps_duration_and_scores(self, musi: OutcomeTaxonomy) -> None:
        draft = DraftBlock("A", musi, stimulus_label="Tocar tambor")
        draft.add("performed")
        draft.add("with_help")
        finished, summary = draft.finish(
            duration_minutes=12, scores={"participation": 4, "support": None},
        )
        assert [t.duration_minutes for t in finished] == [12, 12]
        assert all(t.scores == {"participation": 4} for t in finished)
        assert all(t.stimulus_label == "Tocar tambor" for t in finished)
        assert summary.score_values == {"participation": 4}
        assert summary.duration_minutes == 12

    def test_summary_classifies_block(self, aba: OutcomeTaxonomy) -> None:
        draft = DraftBlock("S1", aba)
        for outcome in ("independent",) * 4 + ("help",):
            draft.add(outcome)
        _, summary = draft.finish()
        assert summary.total == 5
        assert summary.status == "moderate"
        assert summary.stimulus_id == "S1"

    def test_draft_emptied(self, aba: OutcomeTaxonomy) -> None:
        draft = DraftBlock("S1", aba)
        draft.add("help")
        draft.finish()
        assert len(draft) == 0

    def test_numbering_continues_after_finish(self, aba: OutcomeTaxonomy) -> None:
        draft = DraftBlock("S1", aba)
        draft.add("help")
        draft.add("help")
        draft.finish()
        assert draft.add("error").attempt_number == 3

    def test_without_duration_keeps_trial_values(self, aba: OutcomeTaxonomy) -> None:
        draft = DraftBlock("S1", aba)
        draft.add("help", duration_minutes=3)
        finished, summary = draft.finish()
        assert finished[0].duration_minutes == 3
        assert summary.duration_minutes is None

    def test_score_out_of_range(self, musi: OutcomeTaxonomy) -> None:
        draft = DraftBlock("A", musi)
        draft.add("performed")
        with pytest.raises(ValueError, match="between 1 and 5"):
            draft.finish(scores={"support": 0})
        # Nothing was committed; the draft is still there
        assert len(draft) == 1

    def test_unknown_scale(self, aba: OutcomeTaxonomy) -> None:
        draft = DraftBlock("S1", aba)
        draft.add("help")
        with pytest.raises(ConfigurationMismatch, match="no scale 'participation'"):
            draft.finish(scores={"participation": 3})

    def test_negative_duration(self, aba: OutcomeTaxonomy) -> None:
        draft = DraftBlock("S1", aba)
        with pytest.raises(ValueError, match="non-negative"):
            draft.finish(duration_minutes=-1)

    def test_finished_trials_feed_session_summary(self, musi: OutcomeTaxonomy) -> None:
        committed = []
        for stimulus_id, outcomes, participation in (
            ("A", ("performed", "performed"), 4),
            ("B", ("with_help",), 2),
        ):
            draft = DraftBlock(stimulus_id, musi, committed=committed)
            for outcome in outcomes:
                draft.add(outcome)
            finished, _ = draft.finish(duration_minutes=10, scores={"participation": participation})
            committed.extend(finished)

        summary = summarize_session(committed, ["A", "B", "C"], musi)
        assert summary.worked_count == 2
        assert summary.total_duration_minutes == pytest.approx(20)
        # Per-trial mean: (4 + 4 + 2) / 3
        assert summary.score_means["participation"] == pytest.approx(10 / 3)

    def test_committed_trials_without_offset(self, aba: OutcomeTaxonomy) -> None:
        """Trials loaded from a file with no UTC offset mix with freshly added ones."""
        committed = [
            TrialRecord.model_validate({
                "attempt_number": 1,
                "stimulus_id": "S1",
                "outcome": "help",
                "timestamp": "2026-03-02T14:00:00",
                "duration_minutes": 5,
            })
        ]
        draft = DraftBlock("S1", aba, committed=committed)
        draft.add("independent")
        finished, _ = draft.finish(duration_minutes=7)

        summary = summarize_session(committed + finished, ["S1"], aba)
        assert summary.total == 2
        assert summary.stimuli[0].duration_minutes == 7


class TestDiscard:
    def test_discard_drops_everything(self, aba: OutcomeTaxonomy) -> None:
        draft = DraftBlock("S1", aba)
        draft.add("help")
        draft.discard()
        assert len(draft) == 0
        assert draft.counts.total == 0
