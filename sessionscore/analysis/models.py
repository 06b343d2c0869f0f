"""Data structures for session performance computation.

These are plain dataclasses (not Pydantic). They're derived on demand from
the trial records, never the source of truth and never persisted.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime

from sessionscore.taxonomy import ConfigurationMismatch, OutcomeTaxonomy


class OutcomeCounts(Mapping[str, int]):
    """Immutable outcome key → count mapping.

    Always fully populated for its key set; counts are never negative.
    Equality is by value, so two tuples built from the same records compare
    equal however they were folded together.
    """

    __slots__ = ("_values",)

    def __init__(self, values: Mapping[str, int] | None = None) -> None:
        checked: dict[str, int] = {}
        for key, count in (values or {}).items():
            count = int(count)
            if count < 0:
                msg = f"negative count for outcome '{key}': {count}"
                raise ValueError(msg)
            checked[key] = count
        self._values = checked

    @classmethod
    def zero(cls, keys: Iterable[str]) -> OutcomeCounts:
        return cls({key: 0 for key in keys})

    @classmethod
    def of(cls, taxonomy: OutcomeTaxonomy, **counts: int) -> OutcomeCounts:
        """Counts for *taxonomy*, missing outcome keys defaulting to 0."""
        unknown = sorted(set(counts) - set(taxonomy.outcome_keys))
        if unknown:
            msg = f"outcomes {unknown} are not part of taxonomy '{taxonomy.id}'"
            raise ConfigurationMismatch(msg)
        return cls({key: counts.get(key, 0) for key in taxonomy.outcome_keys})

    def __getitem__(self, key: str) -> int:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        inner = ", ".join(f"{k}={v}" for k, v in self._values.items())
        return f"OutcomeCounts({inner})"

    @property
    def total(self) -> int:
        return sum(self._values.values())

    def increment(self, key: str, by: int = 1) -> OutcomeCounts:
        """Return a copy with *key* incremented; the original is untouched."""
        values = dict(self._values)
        values[key] = values.get(key, 0) + by
        return OutcomeCounts(values)


@dataclass(frozen=True)
class StatusDescription:
    """Display metadata for a status, owned by the taxonomy."""

    key: str
    label: str
    severity: int | None
    tone: str


@dataclass
class StimulusResult:
    """Per-stimulus counts and derived classification."""

    stimulus_id: str
    label: str
    counts: OutcomeCounts
    status: str
    independence_rate: int  # integer percentage
    order: int = 0  # position in the program (for "order" sorting)
    duration_minutes: float | None = None  # last-write-wins
    scores: dict[str, int] = field(default_factory=dict)  # first value per scale
    goal_reached: bool = False

    @property
    def total(self) -> int:
        return self.counts.total


@dataclass
class SessionSummary:
    """Headline numbers for one session."""

    taxonomy_id: str
    counts: OutcomeCounts
    status: str
    independence_rate: int
    planned_count: int
    worked_count: int
    score_means: dict[str, float | None] = field(default_factory=dict)
    total_duration_minutes: float | None = None
    stimuli: list[StimulusResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.counts.total


@dataclass
class BlockSummary:
    """Summary of one finished activity block (draft merged into the session)."""

    stimulus_id: str
    counts: OutcomeCounts
    status: str
    finished_at: datetime
    duration_minutes: float | None = None
    score_values: dict[str, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return self.counts.total


@dataclass
class ProgramKpis:
    """Totals across every session of a program."""

    counts: OutcomeCounts
    total_minutes: int
    stimuli_count: int
    sessions_count: int
    score_means: dict[str, float | None] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return self.counts.total


@dataclass
class AttentionItem:
    """A stimulus flagged as needing attention over recent sessions."""

    stimulus_id: str
    label: str
    counts: OutcomeCounts
    status: str
    independence_rate: int
    mean_duration_minutes: int | None = None

    @property
    def total(self) -> int:
        return self.counts.total


@dataclass
class AttentionReport:
    items: list[AttentionItem]
    last_sessions: int
    sessions_considered: int
    has_sufficient_data: bool
