"""
league.engine.insights — Rule-Based Insight Pipeline
=====================================================

Compares one leader against the cohort and emits short, human-readable
observations.  Rules run in a fixed order and each contributes at most one
insight:

  1. Task points vs. cohort average
  2. Fan score vs. cohort average
  3. Low assists (absolute, cohort-independent)
  4. Momentum
  5. Consistency

Thresholds live in :mod:`league.constants`.  Messages are addressed to the
leader in Portuguese; wording is presentation, thresholds and order are the
contract.
"""

from __future__ import annotations

from collections.abc import Sequence

from league.constants import (
    INSIGHT_FAN_SCORE_ABOVE,
    INSIGHT_FAN_SCORE_BELOW,
    INSIGHT_HIGH_CONSISTENCY,
    INSIGHT_LOW_ASSISTS,
    INSIGHT_MOMENTUM_HIGH,
    INSIGHT_MOMENTUM_LOW,
    INSIGHT_TASKS_ABOVE,
    INSIGHT_TASKS_BELOW,
)
from league.engine.models import Insight, InsightType, LeaderSnapshot
from league.engine.scoring import cohort_average, round_half_up

__all__ = ["generate_insights"]

CATEGORY_TASKS = "Tarefas"
CATEGORY_FAN_SCORE = "Fan Score"
CATEGORY_COLLABORATION = "Colaboração"
CATEGORY_MOMENTUM = "Momentum"
CATEGORY_CONSISTENCY = "Consistência"


def _percent_above(value: float, average: float) -> int:
    return round_half_up((value / average - 1) * 100)


def _percent_below(value: float, average: float) -> int:
    return round_half_up((1 - value / average) * 100)


# ---------------------------------------------------------------------------
# Individual rules
# ---------------------------------------------------------------------------
def _task_insight(leader: LeaderSnapshot, average: float) -> Insight | None:
    # A zero average gives nothing to compare against
    if average <= 0:
        return None
    if leader.task_points > average * INSIGHT_TASKS_ABOVE:
        return Insight(
            type=InsightType.POSITIVE,
            category=CATEGORY_TASKS,
            message=(
                f"Você está {_percent_above(leader.task_points, average)}% "
                "acima da média em tarefas completadas!"
            ),
            actionable="Continue mantendo esse ritmo de execução",
        )
    if leader.task_points < average * INSIGHT_TASKS_BELOW:
        return Insight(
            type=InsightType.WARNING,
            category=CATEGORY_TASKS,
            message=f"Suas tarefas estão {_percent_below(leader.task_points, average)}% abaixo da média",
            actionable="Priorize completar as tarefas pendentes desta semana",
        )
    return None


def _fan_score_insight(leader: LeaderSnapshot, average: float) -> Insight | None:
    if average <= 0:
        return None
    if leader.fan_score > average * INSIGHT_FAN_SCORE_ABOVE:
        return Insight(
            type=InsightType.POSITIVE,
            category=CATEGORY_FAN_SCORE,
            message=(
                f"Seu time te avalia {_percent_above(leader.fan_score, average)}% "
                "acima da média da liga!"
            ),
            actionable="Compartilhe com os colegas o que está funcionando com seu time",
        )
    if leader.fan_score < average * INSIGHT_FAN_SCORE_BELOW:
        return Insight(
            type=InsightType.WARNING,
            category=CATEGORY_FAN_SCORE,
            message=f"Seu fan score está {_percent_below(leader.fan_score, average)}% abaixo da média",
            actionable="Converse com seu time sobre suporte e expectativas",
        )
    return None


def _assist_insight(leader: LeaderSnapshot) -> Insight | None:
    if leader.assist_points < INSIGHT_LOW_ASSISTS:
        return Insight(
            type=InsightType.NEUTRAL,
            category=CATEGORY_COLLABORATION,
            message="Oportunidade de aumentar suas assistências",
            actionable="Avalie colegas que fizeram um bom trabalho esta semana",
        )
    return None


def _momentum_insight(leader: LeaderSnapshot) -> Insight | None:
    if leader.momentum > INSIGHT_MOMENTUM_HIGH:
        return Insight(
            type=InsightType.POSITIVE,
            category=CATEGORY_MOMENTUM,
            message=f"Em alta! Você está ganhando +{round_half_up(leader.momentum)} pontos por semana",
            actionable="Mantenha o ritmo para subir no ranking",
        )
    if leader.momentum < INSIGHT_MOMENTUM_LOW:
        return Insight(
            type=InsightType.WARNING,
            category=CATEGORY_MOMENTUM,
            message=(
                f"Cuidado: você está perdendo -{abs(round_half_up(leader.momentum))} "
                "pontos por semana"
            ),
            actionable="Revise suas prioridades e foque nas áreas principais",
        )
    return None


def _consistency_insight(leader: LeaderSnapshot) -> Insight | None:
    if leader.consistency_score > INSIGHT_HIGH_CONSISTENCY:
        return Insight(
            type=InsightType.POSITIVE,
            category=CATEGORY_CONSISTENCY,
            message="Performance muito consistente! Isso conta no overall",
            actionable="Continue mantendo esse padrão estável",
        )
    return None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def generate_insights(
    leader: LeaderSnapshot,
    leaders: Sequence[LeaderSnapshot],
) -> list[Insight]:
    """Run every rule in order and collect the insights that fire.

    Returns a fresh list on every call.  With an empty cohort the
    cohort-relative rules (tasks, fan score) stay silent.
    """
    avg_task_points = cohort_average(member.task_points for member in leaders)
    avg_fan_score = cohort_average(member.fan_score for member in leaders)

    candidates = (
        _task_insight(leader, avg_task_points),
        _fan_score_insight(leader, avg_fan_score),
        _assist_insight(leader),
        _momentum_insight(leader),
        _consistency_insight(leader),
    )
    return [insight for insight in candidates if insight is not None]
