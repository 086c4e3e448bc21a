"""
league.engine.scoring — Score Derivation Pipeline
==================================================

Pure functions that turn a leader's raw counters and weekly history into
the derived fields shown in the league: overall score, consistency,
momentum, trend, rank change, performance category, team benchmarks and a
one-week prediction.

No database I/O, no logging, no shared state.  Every function is total
over a normalized :class:`~league.engine.models.LeaderSnapshot`; short
histories degrade to documented fallback values instead of raising.

Pipeline used by the write-back layer (:func:`recalculate_leader`)::

    history → consistency ─┐
    history → momentum → trend
    counters + consistency → overall
    cohort (previous week vs. now) → rank change
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Sequence
from dataclasses import replace

from league.constants import (
    CONSISTENCY_SCALE,
    CONSISTENCY_WINDOW,
    FAN_SCORE_SCALE,
    MIN_HISTORY_FOR_PREDICTION,
    MIN_HISTORY_FOR_TREND,
    MOMENTUM_WINDOW,
    PERFORMANCE_LADDER,
    PREDICTION_CONFIDENCE_FLOOR,
    PREDICTION_CONSISTENCY_FACTOR,
    PREDICTION_FALLBACK_CONFIDENCE,
    PREDICTION_MAX_CONFIDENCE,
    TREND_FALLING_THRESHOLD,
    TREND_RISING_THRESHOLD,
)
from league.engine.models import (
    DEFAULT_WEIGHTS,
    LeaderSnapshot,
    PerformanceCategory,
    Prediction,
    ScoreHistory,
    ScoreWeights,
    TeamBenchmark,
    Trend,
)

__all__ = [
    "DEFAULT_WEIGHTS",
    "round_half_up",
    "cohort_average",
    "calculate_overall_score",
    "calculate_consistency_score",
    "calculate_momentum",
    "calculate_trend",
    "rank_leaders",
    "calculate_rank_change",
    "calculate_attribute_impact",
    "get_performance_category",
    "get_team_benchmarks",
    "predict_next_week_score",
    "recalculate_leader",
]


# ---------------------------------------------------------------------------
# Numeric helpers
# ---------------------------------------------------------------------------
def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves towards +infinity.

    The built-in :func:`round` uses banker's rounding (``round(4.5) == 4``);
    scores are rounded the way the dashboard displays them (4.5 → 5).
    """
    return math.floor(value + 0.5)


def cohort_average(values: Iterable[float]) -> float:
    """Arithmetic mean, 0.0 for an empty cohort."""
    items = list(values)
    if not items:
        return 0.0
    return sum(items) / len(items)


# ---------------------------------------------------------------------------
# Overall score
# ---------------------------------------------------------------------------
def calculate_overall_score(
    leader: LeaderSnapshot,
    weights: ScoreWeights = DEFAULT_WEIGHTS,
) -> int:
    """Weighted overall score::

        base  = tasks·w.tasks + (fan·10)·w.fan_score
              + assists·w.assists + rituals·w.rituals
        bonus = consistency · w.consistency · 100
        overall = round(base + bonus)

    Every caller that changes a raw counter recomputes ``overall`` through
    this function rather than adjusting it directly.
    """
    normalized_fan_score = leader.fan_score * FAN_SCORE_SCALE
    normalized_ritual = leader.ritual_points

    base = (
        leader.task_points * weights.tasks
        + normalized_fan_score * weights.fan_score
        + leader.assist_points * weights.assists
        + normalized_ritual * weights.rituals
    )
    consistency_bonus = leader.consistency_score * weights.consistency * CONSISTENCY_SCALE
    return round_half_up(base + consistency_bonus)


# ---------------------------------------------------------------------------
# History-derived fields
# ---------------------------------------------------------------------------
def calculate_consistency_score(history: Sequence[ScoreHistory]) -> float:
    """``max(0, 1 - stdDev/mean)`` over the last four ``overall`` values.

    Needs at least two entries, otherwise 0.  A flat history scores 1.0;
    a non-positive mean counts as zero variation.
    """
    if len(history) < MIN_HISTORY_FOR_TREND:
        return 0.0

    scores = [h.overall for h in history[-CONSISTENCY_WINDOW:]]
    mean = sum(scores) / len(scores)
    variance = sum((score - mean) ** 2 for score in scores) / len(scores)
    std_dev = math.sqrt(variance)

    coefficient_of_variation = std_dev / mean if mean > 0 else 0.0
    return max(0.0, 1 - coefficient_of_variation)


def calculate_momentum(history: Sequence[ScoreHistory]) -> float:
    """Average week-over-week change of ``overall`` over the last three weeks."""
    if len(history) < MIN_HISTORY_FOR_TREND:
        return 0.0

    recent = history[-MOMENTUM_WINDOW:]
    total_change = sum(
        recent[i].overall - recent[i - 1].overall for i in range(1, len(recent))
    )
    return total_change / (len(recent) - 1)


def calculate_trend(momentum: float) -> Trend:
    """Step function with breakpoints at ±10 (exclusive)."""
    if momentum > TREND_RISING_THRESHOLD:
        return Trend.RISING
    if momentum < TREND_FALLING_THRESHOLD:
        return Trend.FALLING
    return Trend.STABLE


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------
def _ranking_key(score_of: Callable[[LeaderSnapshot], float]):
    # Higher score first; ties broken by ascending id.
    return lambda leader: (-score_of(leader), leader.id)


def _previous_week_score(leader: LeaderSnapshot) -> float:
    if len(leader.history) >= 2:
        return leader.history[-2].overall
    return leader.overall


def rank_leaders(leaders: Iterable[LeaderSnapshot]) -> list[LeaderSnapshot]:
    """Leaders ordered by descending ``overall``, ties by ascending id."""
    return sorted(leaders, key=_ranking_key(lambda leader: leader.overall))


def _position(ordered: Sequence[LeaderSnapshot], leader_id: str) -> int | None:
    for index, leader in enumerate(ordered):
        if leader.id == leader_id:
            return index
    return None


def calculate_rank_change(
    leaders: Sequence[LeaderSnapshot],
    current_leader: LeaderSnapshot,
) -> int:
    """``previous_rank - current_rank``; positive means the leader moved up.

    The previous-week ordering substitutes each leader's second-to-last
    history ``overall`` (current ``overall`` when history is shorter).
    Returns 0 when the leader has fewer than two history entries or is not
    part of *leaders*.
    """
    if len(current_leader.history) < MIN_HISTORY_FOR_TREND:
        return 0

    current_order = rank_leaders(leaders)
    previous_order = sorted(leaders, key=_ranking_key(_previous_week_score))

    current_rank = _position(current_order, current_leader.id)
    previous_rank = _position(previous_order, current_leader.id)
    if current_rank is None or previous_rank is None:
        return 0
    return previous_rank - current_rank


def calculate_attribute_impact(current_value: float, change: float, weight: float = 1) -> int:
    """Weighted value of an attribute after applying *change*, rounded half up."""
    return round_half_up((current_value + change) * weight)


# ---------------------------------------------------------------------------
# Presentation-level derivations
# ---------------------------------------------------------------------------
def get_performance_category(score: float) -> PerformanceCategory:
    """Map an overall score onto the category ladder (≥90, ≥80, ≥70, ≥60, rest)."""
    for minimum, label, color, description in PERFORMANCE_LADDER[:-1]:
        if score >= minimum:
            return PerformanceCategory(label=label, color=color, description=description)
    _, label, color, description = PERFORMANCE_LADDER[-1]
    return PerformanceCategory(label=label, color=color, description=description)


def get_team_benchmarks(
    leaders: Sequence[LeaderSnapshot],
    team: str,
) -> TeamBenchmark | None:
    """Averages and top performer for *team*, or ``None`` if nobody matches.

    On equal ``overall`` the first leader in input order stays on top.
    """
    team_leaders = [member for member in leaders if member.team == team]
    if not team_leaders:
        return None

    top = team_leaders[0]
    for leader in team_leaders[1:]:
        if leader.overall > top.overall:
            top = leader

    return TeamBenchmark(
        avg_overall=cohort_average(member.overall for member in team_leaders),
        avg_fan_score=cohort_average(member.fan_score for member in team_leaders),
        avg_task_points=cohort_average(member.task_points for member in team_leaders),
        top_performer=top,
    )


def predict_next_week_score(leader: LeaderSnapshot) -> Prediction:
    """Linear one-step extrapolation of ``overall`` by ``momentum``.

    With fewer than three history entries there is nothing to extrapolate
    from: the prediction is the current ``overall`` unchanged (rounded half
    up only when a mapping supplied a fractional one) at confidence 0.3.
    Otherwise confidence is ``min(0.9, consistency·0.8 + 0.2)``.
    """
    if len(leader.history) < MIN_HISTORY_FOR_PREDICTION:
        return Prediction(
            predicted=(
                leader.overall if isinstance(leader.overall, int) else round_half_up(leader.overall)
            ),
            confidence=PREDICTION_FALLBACK_CONFIDENCE,
        )

    predicted = round_half_up(leader.overall + leader.momentum)
    confidence = min(
        PREDICTION_MAX_CONFIDENCE,
        leader.consistency_score * PREDICTION_CONSISTENCY_FACTOR + PREDICTION_CONFIDENCE_FLOOR,
    )
    return Prediction(predicted=predicted, confidence=confidence)


# ---------------------------------------------------------------------------
# Full derivation pass
# ---------------------------------------------------------------------------
def recalculate_leader(
    leader: LeaderSnapshot,
    leaders: Sequence[LeaderSnapshot],
    weights: ScoreWeights = DEFAULT_WEIGHTS,
) -> LeaderSnapshot:
    """Return a copy of *leader* with every derived field recomputed.

    Rank change is measured against *leaders* as given (the cohort snapshot
    the caller read), not against the freshly recomputed scores.
    """
    consistency = calculate_consistency_score(leader.history)
    momentum = calculate_momentum(leader.history)
    with_consistency = replace(leader, consistency_score=consistency)
    return replace(
        with_consistency,
        overall=calculate_overall_score(with_consistency, weights),
        momentum=momentum,
        trend=calculate_trend(momentum),
        rank_change=calculate_rank_change(leaders, leader),
    )
