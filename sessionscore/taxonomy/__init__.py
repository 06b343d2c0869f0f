"""Outcome taxonomy loader: reads YAML files from this directory.

Each clinical discipline (ABA, occupational therapy, physiotherapy, music
therapy) is a separate YAML file declaring its three outcome kinds, its
classification strategy, the statuses that strategy produces and any
auxiliary score scales.  Files are auto-discovered: drop a new ``.yaml``
file here (or in a directory listed in ``SESSIONSCORE_TAXONOMY_DIRS``) and
the new discipline is available without touching the engine.

Public API::

    from sessionscore.taxonomy import (
        get_taxonomy,
        load_all_taxonomies,
        resolve_taxonomy,
        OutcomeTaxonomy,
    )
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from functools import cache
from pathlib import Path
from typing import Any

import yaml

_TAXONOMY_DIR = Path(__file__).resolve().parent

STRATEGY_THRESHOLD = "threshold-independence"
STRATEGY_PREDOMINANT = "predominant-outcome"

_VALID_STRATEGIES = frozenset({STRATEGY_THRESHOLD, STRATEGY_PREDOMINANT})
_VALID_TONES = frozenset({"positive", "moderate", "attention", "negative", "muted"})

# Status keys every threshold-independence taxonomy must declare
THRESHOLD_STATUSES = ("insufficient", "positive", "moderate", "attention")


class ConfigurationMismatch(ValueError):
    """Records, counts or a variant name don't belong to the active taxonomy.

    This is a configuration error, not a data error: silently coercing to
    another taxonomy would corrupt every downstream statistic.
    """


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OutcomeKind:
    key: str
    label: str
    severity: int  # 0 = worst


@dataclass(frozen=True)
class StatusDef:
    key: str
    label: str
    severity: int | None  # None = unknown severity, ranked last
    tone: str  # "positive", "moderate", "attention", "negative", "muted"
    outcome: str | None = None  # predominant-outcome only


@dataclass(frozen=True)
class ScaleDef:
    """An auxiliary ordinal scale (e.g. participation 0–5)."""

    key: str
    label: str
    minimum: int
    maximum: int
    levels: tuple[tuple[int, str], ...] = ()

    def contains(self, value: int) -> bool:
        return self.minimum <= value <= self.maximum

    def level_label(self, value: float | None) -> str:
        """Label for a (possibly averaged) value, rounded to the nearest level."""
        if value is None:
            return "—"
        nearest = int(value + 0.5)
        for level, label in self.levels:
            if level == nearest:
                return label
        return f"{value:g}"


@dataclass(frozen=True)
class OutcomeTaxonomy:
    id: str
    title: str
    strategy: str
    outcomes: tuple[OutcomeKind, ...]
    statuses: tuple[StatusDef, ...]
    independent_outcome: str
    description: str = ""
    min_trials: int = 5
    positive_above: int = 80
    moderate_above: int = 60
    tie_break: tuple[str, ...] = ()
    empty_status: str = ""
    scales: tuple[ScaleDef, ...] = ()
    aliases: tuple[str, ...] = ()
    sort_order: int = 50
    _status_index: dict[str, StatusDef] = field(
        default_factory=dict, init=False, repr=False, compare=False,
    )

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "_status_index", {s.key: s for s in self.statuses},
        )

    @property
    def outcome_keys(self) -> tuple[str, ...]:
        return tuple(o.key for o in self.outcomes)

    @property
    def is_threshold(self) -> bool:
        return self.strategy == STRATEGY_THRESHOLD

    def has_outcome(self, key: str) -> bool:
        return key in self.outcome_keys

    def outcome(self, key: str) -> OutcomeKind:
        for kind in self.outcomes:
            if kind.key == key:
                return kind
        msg = f"outcome '{key}' is not part of taxonomy '{self.id}'"
        raise ConfigurationMismatch(msg)

    def status(self, key: str) -> StatusDef:
        try:
            return self._status_index[key]
        except KeyError:
            msg = f"status '{key}' is not part of taxonomy '{self.id}'"
            raise ConfigurationMismatch(msg) from None

    def status_for_outcome(self, outcome_key: str) -> str:
        """Status bound to an outcome kind (predominant-outcome taxonomies)."""
        for s in self.statuses:
            if s.outcome == outcome_key:
                return s.key
        msg = f"taxonomy '{self.id}' binds no status to outcome '{outcome_key}'"
        raise ConfigurationMismatch(msg)

    def scale(self, key: str) -> ScaleDef | None:
        for s in self.scales:
            if s.key == key:
                return s
        return None


# ---------------------------------------------------------------------------
# YAML → dataclass parsing
# ---------------------------------------------------------------------------


def _str(value: Any) -> str:
    """Convert a YAML value to a stripped string.

    YAML ``>`` (folded) scalars include a trailing newline.  Strip it so
    callers always get clean text.
    """
    if value is None:
        return ""
    return str(value).strip()


def _require(raw: dict[str, Any], key: str, filename: str) -> Any:
    """Return raw[key] or raise ValueError with a clear message."""
    if key not in raw:
        msg = f"{filename}: missing required key '{key}'"
        raise ValueError(msg)
    return raw[key]


def _normalise_variant(name: str) -> str:
    """``"Terapia-Ocupacional "`` → ``"terapia_ocupacional"``."""
    return name.strip().lower().replace("-", "_")


def _parse_outcome(raw: dict[str, Any], filename: str) -> OutcomeKind:
    return OutcomeKind(
        key=_str(_require(raw, "key", filename)),
        label=_str(_require(raw, "label", filename)),
        severity=int(_require(raw, "severity", filename)),
    )


def _parse_status(raw: dict[str, Any], filename: str) -> StatusDef:
    key = _str(_require(raw, "key", filename))
    tone = _str(_require(raw, "tone", filename))
    if tone not in _VALID_TONES:
        msg = (
            f"{filename}: status '{key}' has invalid tone"
            f" '{tone}' (expected one of {sorted(_VALID_TONES)})"
        )
        raise ValueError(msg)
    severity = raw.get("severity")
    outcome = _str(raw.get("outcome")) or None
    return StatusDef(
        key=key,
        label=_str(_require(raw, "label", filename)),
        severity=None if severity is None else int(severity),
        tone=tone,
        outcome=outcome,
    )


def _parse_scale(raw: dict[str, Any], filename: str) -> ScaleDef:
    key = _str(_require(raw, "key", filename))
    minimum = int(_require(raw, "min", filename))
    maximum = int(_require(raw, "max", filename))
    if minimum > maximum:
        msg = f"{filename}: scale '{key}' has min {minimum} > max {maximum}"
        raise ValueError(msg)
    raw_levels = raw.get("levels", {}) or {}
    levels: list[tuple[int, str]] = []
    for level, label in sorted(raw_levels.items()):
        level = int(level)
        if not minimum <= level <= maximum:
            msg = f"{filename}: scale '{key}' level {level} is outside {minimum}–{maximum}"
            raise ValueError(msg)
        levels.append((level, _str(label)))
    return ScaleDef(
        key=key,
        label=_str(raw.get("label")) or key,
        minimum=minimum,
        maximum=maximum,
        levels=tuple(levels),
    )


def _check_outcomes(outcomes: list[OutcomeKind], filename: str) -> None:
    keys = [o.key for o in outcomes]
    if len(keys) != 3:
        msg = f"{filename}: expected exactly 3 outcomes, got {len(keys)}"
        raise ValueError(msg)
    if len(set(keys)) != len(keys):
        msg = f"{filename}: duplicate outcome keys {keys}"
        raise ValueError(msg)


def _check_statuses(
    statuses: list[StatusDef], outcome_keys: list[str], strategy: str, filename: str,
) -> None:
    keys = [s.key for s in statuses]
    if len(set(keys)) != len(keys):
        msg = f"{filename}: duplicate status keys {keys}"
        raise ValueError(msg)
    if strategy == STRATEGY_THRESHOLD:
        missing = [k for k in THRESHOLD_STATUSES if k not in keys]
        if missing:
            msg = f"{filename}: threshold taxonomy is missing statuses {missing}"
            raise ValueError(msg)
        return
    bound = [s.outcome for s in statuses if s.outcome is not None]
    if sorted(bound) != sorted(outcome_keys):
        msg = (
            f"{filename}: predominant taxonomy must bind exactly one status to"
            f" each outcome {outcome_keys} (got {bound})"
        )
        raise ValueError(msg)


def _parse_taxonomy(raw: dict[str, Any], filename: str) -> OutcomeTaxonomy:
    """Validate and convert a raw YAML dict to an OutcomeTaxonomy."""
    taxonomy_id = _str(_require(raw, "id", filename))
    strategy = _str(_require(raw, "strategy", filename))
    if strategy not in _VALID_STRATEGIES:
        msg = (
            f"{filename}: invalid strategy '{strategy}'"
            f" (expected one of {sorted(_VALID_STRATEGIES)})"
        )
        raise ValueError(msg)

    outcomes = [_parse_outcome(o, filename) for o in _require(raw, "outcomes", filename)]
    _check_outcomes(outcomes, filename)
    outcome_keys = [o.key for o in outcomes]

    statuses = [_parse_status(s, filename) for s in _require(raw, "statuses", filename)]
    _check_statuses(statuses, outcome_keys, strategy, filename)
    status_keys = {s.key for s in statuses}

    independent = _str(_require(raw, "independent_outcome", filename))
    if independent not in outcome_keys:
        msg = f"{filename}: independent_outcome '{independent}' is not an outcome key"
        raise ValueError(msg)

    thresholds = raw.get("thresholds", {}) or {}
    min_trials = int(thresholds.get("min_trials", 5))
    positive_above = int(thresholds.get("positive_above", 80))
    moderate_above = int(thresholds.get("moderate_above", 60))
    if min_trials < 1 or moderate_above > positive_above:
        msg = f"{filename}: inconsistent thresholds {thresholds}"
        raise ValueError(msg)

    tie_break: tuple[str, ...] = ()
    empty_status = ""
    if strategy == STRATEGY_PREDOMINANT:
        # Default: best outcome first
        default_order = [o.key for o in sorted(outcomes, key=lambda o: -o.severity)]
        tie_break = tuple(_str(k) for k in raw.get("tie_break", default_order))
        if sorted(tie_break) != sorted(outcome_keys):
            msg = f"{filename}: tie_break {list(tie_break)} must list every outcome once"
            raise ValueError(msg)
        worst = min(outcomes, key=lambda o: o.severity).key
        default_empty = next(s.key for s in statuses if s.outcome == worst)
        empty_status = _str(raw.get("empty_status")) or default_empty
        if empty_status not in status_keys:
            msg = f"{filename}: empty_status '{empty_status}' is not a status key"
            raise ValueError(msg)

    scales = [_parse_scale(s, filename) for s in raw.get("scales", []) or []]
    aliases = tuple(_normalise_variant(_str(a)) for a in raw.get("aliases", []) or [])

    return OutcomeTaxonomy(
        id=taxonomy_id,
        title=_str(_require(raw, "title", filename)),
        description=_str(raw.get("description")),
        strategy=strategy,
        outcomes=tuple(outcomes),
        statuses=tuple(statuses),
        independent_outcome=independent,
        min_trials=min_trials,
        positive_above=positive_above,
        moderate_above=moderate_above,
        tie_break=tie_break,
        empty_status=empty_status,
        scales=tuple(scales),
        aliases=aliases,
        sort_order=int(raw.get("sort_order", 50)),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_taxonomy_file(path: Path) -> OutcomeTaxonomy:
    """Parse a single taxonomy YAML file (built-in or user supplied)."""
    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        msg = f"{path.name}: expected a mapping at the top level"
        raise ValueError(msg)
    return _parse_taxonomy(raw, path.name)


@cache
def _load_taxonomy(taxonomy_id: str) -> OutcomeTaxonomy:
    return load_taxonomy_file(_TAXONOMY_DIR / f"{taxonomy_id}.yaml")


def get_taxonomy(taxonomy_id: str) -> OutcomeTaxonomy | None:
    """Return a built-in taxonomy by ID, or None if not found."""
    path = _TAXONOMY_DIR / f"{taxonomy_id}.yaml"
    if not path.exists():
        return None
    return _load_taxonomy(taxonomy_id)


def load_all_taxonomies(extra_dirs: Iterable[Path] = ()) -> list[OutcomeTaxonomy]:
    """Load all taxonomies from YAML files.

    Auto-discovers ``*.yaml`` files in the package directory and in any
    *extra_dirs*.  A taxonomy in an extra directory replaces a built-in one
    with the same ``id``.  Sorted by ``sort_order`` (lower first, default
    50), then alphabetically by ``id``.
    """
    by_id: dict[str, OutcomeTaxonomy] = {}
    for path in sorted(_TAXONOMY_DIR.glob("*.yaml")):
        taxonomy = _load_taxonomy(path.stem)
        by_id[taxonomy.id] = taxonomy
    for directory in extra_dirs:
        for path in sorted(Path(directory).glob("*.yaml")):
            taxonomy = load_taxonomy_file(path)
            by_id[taxonomy.id] = taxonomy
    taxonomies = list(by_id.values())
    taxonomies.sort(key=lambda t: (t.sort_order, t.id))
    return taxonomies


def resolve_taxonomy(variant: str, extra_dirs: Iterable[Path] = ()) -> OutcomeTaxonomy:
    """Resolve a variant identifier (id or alias, case-insensitive).

    Resolve once per session and keep the result for the session's lifetime.
    Raises ConfigurationMismatch for unknown variants.
    """
    wanted = _normalise_variant(variant)
    taxonomies = load_all_taxonomies(extra_dirs)
    for taxonomy in taxonomies:
        if taxonomy.id == wanted or wanted in taxonomy.aliases:
            return taxonomy
    known = sorted(t.id for t in taxonomies)
    msg = f"unknown variant '{variant}' (expected one of {known})"
    raise ConfigurationMismatch(msg)
