"""Shared test fixtures for sessionscore tests."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import pytest

from sessionscore.models import TrialRecord
from sessionscore.taxonomy import OutcomeTaxonomy, get_taxonomy

T0 = datetime(2026, 3, 2, 14, 0, 0, tzinfo=timezone.utc)


def _make_trials(
    pairs: list[tuple[str, str]],
    *,
    start: datetime = T0,
    **fields: object,
) -> list[TrialRecord]:
    """Build trial records from ``(stimulus_id, outcome)`` pairs.

    Attempt numbers count per stimulus; timestamps advance one minute per
    record so ordering by time matches list order.
    """
    attempts: dict[str, int] = {}
    trials: list[TrialRecord] = []
    for index, (stimulus_id, outcome) in enumerate(pairs):
        attempts[stimulus_id] = attempts.get(stimulus_id, 0) + 1
        trials.append(
            TrialRecord(
                attempt_number=attempts[stimulus_id],
                stimulus_id=stimulus_id,
                outcome=outcome,
                timestamp=start + timedelta(minutes=index),
                **fields,
            )
        )
    return trials


@pytest.fixture
def make_trials() -> Callable[..., list[TrialRecord]]:
    return _make_trials


@pytest.fixture
def aba() -> OutcomeTaxonomy:
    taxonomy = get_taxonomy("aba")
    assert taxonomy is not None
    return taxonomy


@pytest.fixture
def to() -> OutcomeTaxonomy:
    taxonomy = get_taxonomy("terapia_ocupacional")
    assert taxonomy is not None
    return taxonomy


@pytest.fixture
def musi() -> OutcomeTaxonomy:
    taxonomy = get_taxonomy("musicoterapia")
    assert taxonomy is not None
    return taxonomy


@pytest.fixture
def scenario_trials() -> list[TrialRecord]:
    """S1: 3 independent + 2 help.  S2: 1 independent.  (S3 planned, not worked.)"""
    return _make_trials(
        [("S1", "independent")] * 3
        + [("S1", "help")] * 2
        + [("S2", "independent")]
    )
