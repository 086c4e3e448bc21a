"""
tests/test_models.py — Engine Data Types & Boundary Normalization
==================================================================
"""

from __future__ import annotations

import math

import pytest

from league.engine.models import (
    DEFAULT_WEIGHTS,
    InvalidWeightsError,
    LeaderSnapshot,
    ScoreHistory,
    ScoreWeights,
    Trend,
    normalize_history_entry,
    normalize_leader,
    validate_weights,
)


class TestScoreWeights:
    def test_defaults(self):
        assert DEFAULT_WEIGHTS.to_dict() == {
            "tasks": 0.40,
            "fan_score": 0.25,
            "assists": 0.15,
            "rituals": 0.15,
            "consistency": 0.05,
        }
        assert DEFAULT_WEIGHTS.validated() is DEFAULT_WEIGHTS

    def test_sum_must_be_one(self):
        with pytest.raises(InvalidWeightsError, match="sum to 1.0"):
            ScoreWeights(tasks=0.5).validated()

    def test_negative_rejected(self):
        weights = ScoreWeights(tasks=0.9, fan_score=-0.25, assists=0.15, rituals=0.15, consistency=0.05)
        with pytest.raises(InvalidWeightsError, match="fan_score"):
            weights.validated()

    def test_non_finite_rejected(self):
        with pytest.raises(InvalidWeightsError):
            ScoreWeights(tasks=math.nan).validated()

    def test_is_a_value_error(self):
        assert issubclass(InvalidWeightsError, ValueError)

    def test_small_float_drift_accepted(self):
        weights = ScoreWeights(tasks=0.1, fan_score=0.2, assists=0.3, rituals=0.3, consistency=0.1)
        assert weights.validated() is weights

    def test_from_mapping_accepts_camel_case(self):
        weights = ScoreWeights.from_mapping({"fanScore": 0.3, "tasks": 0.35})
        assert weights.fan_score == 0.3
        assert weights.tasks == 0.35
        assert weights.assists == DEFAULT_WEIGHTS.assists


class TestNormalizeHistoryEntry:
    def test_camel_case(self):
        entry = normalize_history_entry({"week": "2026-W01", "overall": 50, "taskPoints": 20})
        assert entry == ScoreHistory(week="2026-W01", overall=50, task_points=20)

    def test_passthrough(self):
        entry = ScoreHistory(week="w", overall=1)
        assert normalize_history_entry(entry) is entry


class TestNormalizeLeader:
    def test_missing_fields_default_to_zero(self):
        leader = normalize_leader({"id": "x"})
        assert leader.task_points == 0
        assert leader.fan_score == 0
        assert leader.overall == 0
        assert leader.trend is Trend.STABLE
        assert leader.history == ()

    def test_none_and_garbage_become_zero(self):
        leader = normalize_leader({
            "id": "x",
            "taskPoints": None,
            "fanScore": "not a number",
            "assistPoints": float("inf"),
            "overall": "42",
        })
        assert leader.task_points == 0
        assert leader.fan_score == 0
        assert leader.assist_points == 0
        assert leader.overall == 42

    def test_camel_and_snake_case(self):
        camel = normalize_leader({"id": "x", "ritualPoints": 7, "consistencyScore": 0.5, "rankChange": 2})
        snake = normalize_leader({"id": "x", "ritual_points": 7, "consistency_score": 0.5, "rank_change": 2})
        assert camel == snake

    def test_unknown_trend_is_stable(self):
        assert normalize_leader({"id": "x", "trend": "sideways"}).trend is Trend.STABLE
        assert normalize_leader({"id": "x", "trend": "rising"}).trend is Trend.RISING

    def test_history_and_lists_become_tuples(self):
        leader = normalize_leader({
            "id": "x",
            "history": [{"week": "a", "overall": 1}, {"week": "b", "overall": None}],
            "strengths": ["Execução"],
            "improvements": None,
        })
        assert [h.overall for h in leader.history] == [1, 0]
        assert leader.strengths == ("Execução",)
        assert leader.improvements == ()

    def test_snapshot_passthrough(self):
        snapshot = LeaderSnapshot(id="x", overall=10)
        assert normalize_leader(snapshot) is snapshot

    def test_snapshot_is_frozen(self):
        snapshot = LeaderSnapshot(id="x")
        with pytest.raises(AttributeError):
            snapshot.overall = 99


class TestValidateWeights:
    def test_accepts_mapping(self):
        assert validate_weights({"tasks": 0.4}) == DEFAULT_WEIGHTS

    def test_rejects_bad_mapping(self):
        with pytest.raises(InvalidWeightsError):
            validate_weights({"tasks": 1.0})
