"""
tests/test_insights.py — Unit Tests for the Insight Rules
==========================================================
"""

from __future__ import annotations

import pytest

from league.engine.insights import (
    CATEGORY_COLLABORATION,
    CATEGORY_CONSISTENCY,
    CATEGORY_FAN_SCORE,
    CATEGORY_MOMENTUM,
    CATEGORY_TASKS,
    generate_insights,
)
from league.engine.models import InsightType, LeaderSnapshot


def _leader(leader_id: str = "a", **kwargs) -> LeaderSnapshot:
    # Enough assists that the collaboration rule stays quiet unless asked
    kwargs.setdefault("assist_points", 50)
    return LeaderSnapshot(id=leader_id, **kwargs)


@pytest.fixture
def cohort():
    """Three peers averaging 100 task points and fan score 5."""
    return [
        _leader("p1", task_points=100, fan_score=5),
        _leader("p2", task_points=100, fan_score=5),
        _leader("p3", task_points=100, fan_score=5),
    ]


def _categories(insights) -> list[str]:
    return [insight.category for insight in insights]


class TestTaskRule:
    def test_above_average_is_positive(self, cohort):
        leader = _leader(task_points=130, fan_score=5)
        insights = generate_insights(leader, cohort)
        assert insights[0].category == CATEGORY_TASKS
        assert insights[0].type is InsightType.POSITIVE
        assert "30%" in insights[0].message

    def test_below_average_is_warning(self, cohort):
        leader = _leader(task_points=50, fan_score=5)
        insights = generate_insights(leader, cohort)
        assert insights[0].type is InsightType.WARNING
        assert "50%" in insights[0].message

    def test_threshold_is_exclusive(self, cohort):
        leader = _leader(task_points=120, fan_score=5)
        assert CATEGORY_TASKS not in _categories(generate_insights(leader, cohort))


class TestFanScoreRule:
    def test_above_average_is_positive(self, cohort):
        leader = _leader(task_points=100, fan_score=6)
        insights = generate_insights(leader, cohort)
        assert _categories(insights) == [CATEGORY_FAN_SCORE]
        assert insights[0].type is InsightType.POSITIVE

    def test_below_average_is_warning(self, cohort):
        leader = _leader(task_points=100, fan_score=4)
        insights = generate_insights(leader, cohort)
        assert insights[0].type is InsightType.WARNING


class TestAssistRule:
    def test_low_assists_always_fire(self):
        leader = _leader(assist_points=9)
        insights = generate_insights(leader, [])
        assert _categories(insights) == [CATEGORY_COLLABORATION]
        assert insights[0].type is InsightType.NEUTRAL

    def test_ten_assists_is_enough(self):
        assert generate_insights(_leader(assist_points=10), []) == []


class TestMomentumAndConsistency:
    def test_rising_leader_gets_tasks_then_momentum(self, cohort):
        leader = _leader(task_points=130, fan_score=5, momentum=25)
        categories = _categories(generate_insights(leader, cohort))
        assert categories.index(CATEGORY_TASKS) < categories.index(CATEGORY_MOMENTUM)

    def test_falling_momentum_is_warning(self):
        insights = generate_insights(_leader(momentum=-21), [])
        assert insights[0].category == CATEGORY_MOMENTUM
        assert insights[0].type is InsightType.WARNING
        assert "-21" in insights[0].message

    def test_high_consistency(self):
        insights = generate_insights(_leader(consistency_score=0.81), [])
        assert _categories(insights) == [CATEGORY_CONSISTENCY]

    def test_full_order(self, cohort):
        leader = _leader(
            task_points=200, fan_score=9, assist_points=0,
            momentum=30, consistency_score=0.95,
        )
        assert _categories(generate_insights(leader, cohort)) == [
            CATEGORY_TASKS,
            CATEGORY_FAN_SCORE,
            CATEGORY_COLLABORATION,
            CATEGORY_MOMENTUM,
            CATEGORY_CONSISTENCY,
        ]


class TestEdgeCases:
    def test_empty_cohort_skips_relative_rules(self):
        leader = _leader(task_points=500, fan_score=10)
        assert generate_insights(leader, []) == []

    def test_zero_average_cohort(self):
        peers = [_leader("p", task_points=0, fan_score=0)]
        assert generate_insights(_leader(task_points=10, fan_score=3), peers) == []

    def test_fresh_list_every_call(self, cohort):
        leader = _leader(task_points=130)
        first = generate_insights(leader, cohort)
        first.clear()
        assert generate_insights(leader, cohort)
