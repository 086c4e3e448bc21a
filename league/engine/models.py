"""
league.engine.models — Engine Input & Output Types
===================================================

Immutable value types that flow through the scoring engine.  The engine
only ever sees a :class:`LeaderSnapshot` whose numeric fields are fully
resolved; partial rows from the store are turned into snapshots by
:func:`normalize_leader` at the boundary.
"""

from __future__ import annotations

import enum
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from league.constants import (
    DEFAULT_WEIGHT_ASSISTS,
    DEFAULT_WEIGHT_CONSISTENCY,
    DEFAULT_WEIGHT_FAN_SCORE,
    DEFAULT_WEIGHT_RITUALS,
    DEFAULT_WEIGHT_TASKS,
    WEIGHT_SUM_TOLERANCE,
)

__all__ = [
    "InsightType",
    "Trend",
    "ScoreHistory",
    "ScoreWeights",
    "DEFAULT_WEIGHTS",
    "InvalidWeightsError",
    "validate_weights",
    "LeaderSnapshot",
    "Insight",
    "PerformanceCategory",
    "TeamBenchmark",
    "Prediction",
    "normalize_leader",
    "normalize_history_entry",
]


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class Trend(enum.StrEnum):
    RISING = "rising"
    FALLING = "falling"
    STABLE = "stable"


class InsightType(enum.StrEnum):
    POSITIVE = "positive"
    WARNING = "warning"
    NEUTRAL = "neutral"


# ---------------------------------------------------------------------------
# Weights
# ---------------------------------------------------------------------------
class InvalidWeightsError(ValueError):
    """Raised when a weights record is negative or does not sum to 1.0."""


@dataclass(frozen=True, slots=True)
class ScoreWeights:
    """Fractional weight per counter.  Conventionally sums to 1.0."""

    tasks: float = DEFAULT_WEIGHT_TASKS
    fan_score: float = DEFAULT_WEIGHT_FAN_SCORE
    assists: float = DEFAULT_WEIGHT_ASSISTS
    rituals: float = DEFAULT_WEIGHT_RITUALS
    consistency: float = DEFAULT_WEIGHT_CONSISTENCY

    @property
    def total(self) -> float:
        return self.tasks + self.fan_score + self.assists + self.rituals + self.consistency

    def validated(self) -> ScoreWeights:
        """Return *self* after checking the weights invariant.

        Raises
        ------
        InvalidWeightsError
            If any weight is negative or non-finite, or the weights do not
            sum to 1.0 (within :data:`WEIGHT_SUM_TOLERANCE`).
        """
        for name in ("tasks", "fan_score", "assists", "rituals", "consistency"):
            value = getattr(self, name)
            if not math.isfinite(value) or value < 0:
                raise InvalidWeightsError(f"Weight '{name}' must be a non-negative number, got {value!r}")
        if abs(self.total - 1.0) > WEIGHT_SUM_TOLERANCE:
            raise InvalidWeightsError(f"Score weights must sum to 1.0, got {self.total:.6f}")
        return self

    def to_dict(self) -> dict[str, float]:
        return {
            "tasks": self.tasks,
            "fan_score": self.fan_score,
            "assists": self.assists,
            "rituals": self.rituals,
            "consistency": self.consistency,
        }

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> ScoreWeights:
        """Build weights from a dict, accepting ``fanScore`` or ``fan_score``."""
        defaults = cls()
        return cls(
            tasks=_as_number(raw.get("tasks", defaults.tasks)),
            fan_score=_as_number(_pick(raw, "fan_score", "fanScore", default=defaults.fan_score)),
            assists=_as_number(raw.get("assists", defaults.assists)),
            rituals=_as_number(raw.get("rituals", defaults.rituals)),
            consistency=_as_number(raw.get("consistency", defaults.consistency)),
        )


DEFAULT_WEIGHTS = ScoreWeights()


def validate_weights(weights: ScoreWeights | Mapping[str, Any]) -> ScoreWeights:
    """Coerce *weights* to :class:`ScoreWeights` and check the invariant."""
    if not isinstance(weights, ScoreWeights):
        weights = ScoreWeights.from_mapping(weights)
    return weights.validated()


# ---------------------------------------------------------------------------
# History + leader snapshots
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class ScoreHistory:
    """One weekly snapshot of a leader's score."""

    week: str = ""
    overall: float = 0
    task_points: float = 0
    fan_score: float = 0
    assist_points: float = 0
    ritual_points: float = 0
    timestamp: str = ""


@dataclass(frozen=True, slots=True)
class LeaderSnapshot:
    """A fully-resolved, read-only view of one leader.

    ``history`` is chronologically ordered, oldest first.
    """

    id: str
    name: str = ""
    email: str = ""
    team: str = ""
    position: str = ""

    # Raw counters
    task_points: float = 0
    fan_score: float = 0  # 0–10
    assist_points: float = 0
    ritual_points: float = 0

    # Derived
    overall: float = 0
    consistency_score: float = 0  # 0–1
    momentum: float = 0
    trend: Trend = Trend.STABLE
    rank_change: int = 0

    history: tuple[ScoreHistory, ...] = ()
    strengths: tuple[str, ...] = ()
    improvements: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Engine outputs
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class Insight:
    """Generated observation about a leader.  Never persisted."""

    type: InsightType
    category: str
    message: str
    actionable: str | None = None


@dataclass(frozen=True, slots=True)
class PerformanceCategory:
    label: str
    color: str
    description: str


@dataclass(frozen=True, slots=True)
class TeamBenchmark:
    avg_overall: float
    avg_fan_score: float
    avg_task_points: float
    top_performer: LeaderSnapshot


@dataclass(frozen=True, slots=True)
class Prediction:
    predicted: int
    confidence: float


# ---------------------------------------------------------------------------
# Boundary normalization
# ---------------------------------------------------------------------------
def _as_number(value: Any) -> float:
    """Coerce *value* to a finite number; anything else becomes 0."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    return number if math.isfinite(number) else 0


def _pick(raw: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """First non-``None`` value among *keys* (snake_case or camelCase)."""
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return default


def normalize_history_entry(raw: ScoreHistory | Mapping[str, Any]) -> ScoreHistory:
    if isinstance(raw, ScoreHistory):
        return raw
    return ScoreHistory(
        week=str(_pick(raw, "week", default="")),
        overall=_as_number(_pick(raw, "overall")),
        task_points=_as_number(_pick(raw, "task_points", "taskPoints")),
        fan_score=_as_number(_pick(raw, "fan_score", "fanScore")),
        assist_points=_as_number(_pick(raw, "assist_points", "assistPoints")),
        ritual_points=_as_number(_pick(raw, "ritual_points", "ritualPoints")),
        timestamp=str(_pick(raw, "timestamp", default="")),
    )


def _as_trend(value: Any) -> Trend:
    try:
        return Trend(value)
    except ValueError:
        return Trend.STABLE


def _as_strings(value: Iterable[Any] | None) -> tuple[str, ...]:
    if not value:
        return ()
    return tuple(str(v) for v in value)


def normalize_leader(raw: LeaderSnapshot | Mapping[str, Any]) -> LeaderSnapshot:
    """Turn a partial leader record into a :class:`LeaderSnapshot`.

    Accepts snake_case or camelCase keys.  Missing, ``None`` or non-numeric
    counters become 0, an unknown trend becomes ``stable`` and history
    entries are normalized one by one.  Snapshots pass through unchanged.
    """
    if isinstance(raw, LeaderSnapshot):
        return raw

    history = tuple(normalize_history_entry(h) for h in (raw.get("history") or ()))
    return LeaderSnapshot(
        id=str(_pick(raw, "id", default="")),
        name=str(_pick(raw, "name", default="")),
        email=str(_pick(raw, "email", default="")),
        team=str(_pick(raw, "team", default="")),
        position=str(_pick(raw, "position", default="")),
        task_points=_as_number(_pick(raw, "task_points", "taskPoints")),
        fan_score=_as_number(_pick(raw, "fan_score", "fanScore")),
        assist_points=_as_number(_pick(raw, "assist_points", "assistPoints")),
        ritual_points=_as_number(_pick(raw, "ritual_points", "ritualPoints")),
        overall=_as_number(_pick(raw, "overall")),
        consistency_score=_as_number(_pick(raw, "consistency_score", "consistencyScore")),
        momentum=_as_number(_pick(raw, "momentum")),
        trend=_as_trend(_pick(raw, "trend", default=Trend.STABLE)),
        rank_change=int(_as_number(_pick(raw, "rank_change", "rankChange"))),
        history=history,
        strengths=_as_strings(raw.get("strengths")),
        improvements=_as_strings(raw.get("improvements")),
    )
