"""
league.api.routes.public — Read-only league endpoints
========================================================

Rankings, per-leader insights and predictions, and team benchmarks.  All
derivations are computed on read from the stored snapshot; nothing here
writes.
"""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import Engine

from league.api.deps import get_engine
from league.engine.insights import generate_insights
from league.engine.models import LeaderSnapshot
from league.engine.scoring import (
    get_performance_category,
    get_team_benchmarks,
    predict_next_week_score,
    rank_leaders,
)
from league.services.leader_service import get_leader, list_leaders

router = APIRouter(tags=["public"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _leader_dict(leader: LeaderSnapshot) -> dict:
    return {
        "id": leader.id,
        "name": leader.name,
        "team": leader.team,
        "position": leader.position,
        "task_points": leader.task_points,
        "fan_score": leader.fan_score,
        "assist_points": leader.assist_points,
        "ritual_points": leader.ritual_points,
        "overall": leader.overall,
        "consistency_score": leader.consistency_score,
        "momentum": leader.momentum,
        "trend": leader.trend.value,
        "rank_change": leader.rank_change,
        "strengths": list(leader.strengths),
        "improvements": list(leader.improvements),
        "category": asdict(get_performance_category(leader.overall)),
    }


def _require_leader(engine: Engine, leader_id: str) -> LeaderSnapshot:
    leader = get_leader(engine, leader_id)
    if leader is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Leader not found")
    return leader


# ---------------------------------------------------------------------------
# GET /leaders
# ---------------------------------------------------------------------------
@router.get("/leaders")
def get_leaders(engine: Engine = Depends(get_engine)):
    """Competing leaders in ranking order."""
    ranked = rank_leaders(list_leaders(engine))
    return {
        "total": len(ranked),
        "leaders": [
            {**_leader_dict(leader), "rank": i + 1}
            for i, leader in enumerate(ranked)
        ],
    }


# ---------------------------------------------------------------------------
# GET /leaders/{leader_id}
# ---------------------------------------------------------------------------
@router.get("/leaders/{leader_id}")
def get_leader_detail(leader_id: str, engine: Engine = Depends(get_engine)):
    leader = _require_leader(engine, leader_id)
    return {
        **_leader_dict(leader),
        "history": [asdict(entry) for entry in leader.history],
    }


@router.get("/leaders/{leader_id}/insights")
def get_leader_insights(leader_id: str, engine: Engine = Depends(get_engine)):
    leader = _require_leader(engine, leader_id)
    insights = generate_insights(leader, list_leaders(engine))
    return {
        "leader_id": leader.id,
        "insights": [
            {
                "type": insight.type.value,
                "category": insight.category,
                "message": insight.message,
                "actionable": insight.actionable,
            }
            for insight in insights
        ],
    }


@router.get("/leaders/{leader_id}/prediction")
def get_leader_prediction(leader_id: str, engine: Engine = Depends(get_engine)):
    leader = _require_leader(engine, leader_id)
    prediction = predict_next_week_score(leader)
    return {
        "leader_id": leader.id,
        "predicted": prediction.predicted,
        "confidence": prediction.confidence,
    }


# ---------------------------------------------------------------------------
# GET /teams/{team}/benchmarks
# ---------------------------------------------------------------------------
@router.get("/teams/{team}/benchmarks")
def get_benchmarks(team: str, engine: Engine = Depends(get_engine)):
    """Team averages and top performer; 404 when nobody is on the team."""
    benchmark = get_team_benchmarks(list_leaders(engine), team)
    if benchmark is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Team has no leaders")
    return {
        "team": team,
        "avg_overall": benchmark.avg_overall,
        "avg_fan_score": benchmark.avg_fan_score,
        "avg_task_points": benchmark.avg_task_points,
        "top_performer": _leader_dict(benchmark.top_performer),
    }
