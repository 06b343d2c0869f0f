"""Boundary models for data handed over by the collection layer.

These are Pydantic models because they arrive from outside (API payloads,
exported JSON/YAML files) and need validating once at the edge.  Everything
computed from them lives in ``sessionscore.analysis.models`` as plain
dataclasses.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator

UNKNOWN_STIMULUS = "unknown"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (files written without an offset) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class TrialRecord(BaseModel):
    """One observation of a stimulus/activity attempt.

    Immutable once created: corrections are new records (or the removal of
    a specific record), never edits to an existing one.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    attempt_number: int = Field(ge=1)
    stimulus_id: str = ""
    stimulus_label: str | None = None
    outcome: str
    timestamp: datetime = Field(default_factory=_now)
    duration_minutes: float | None = Field(default=None, ge=0)
    scores: dict[str, int | None] = Field(default_factory=dict)

    @field_validator("timestamp")
    @classmethod
    def _timestamp_utc(cls, v: datetime) -> datetime:
        return _as_utc(v)

    @property
    def bucket(self) -> str:
        """Aggregation key: the stimulus id, or ``"unknown"`` when blank."""
        stimulus_id = self.stimulus_id.strip()
        return stimulus_id or UNKNOWN_STIMULUS


class SessionInput(BaseModel):
    """A single session's trials plus the program context needed to summarise it."""

    model_config = ConfigDict(extra="ignore")

    session_id: str = ""
    variant: str | None = None
    trials: list[TrialRecord] = Field(default_factory=list)
    planned_stimulus_ids: list[str] = Field(default_factory=list)
    stimulus_labels: dict[str, str] = Field(default_factory=dict)
    stimulus_order: dict[str, int] = Field(default_factory=dict)


class SessionRecord(BaseModel):
    """A committed session, as used by program-level reports."""

    model_config = ConfigDict(extra="ignore")

    session_id: str
    date: datetime
    trials: list[TrialRecord] = Field(default_factory=list)

    @field_validator("date")
    @classmethod
    def _date_utc(cls, v: datetime) -> datetime:
        return _as_utc(v)
