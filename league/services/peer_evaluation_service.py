"""
league.services.peer_evaluation_service — Peer Evaluations (Assists)
=====================================================================

A leader praises a colleague; the receiver earns the configured number of
assist points.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from league.database.models import PeerEvaluation
from league.services.leader_service import adjust_counter, get_leader_row
from league.services.settings_service import load_scoring_config

logger = logging.getLogger(__name__)


def create_evaluation(
    engine: Engine,
    *,
    from_leader_id: str,
    to_leader_id: str,
    description: str,
    qualities: list[str] | None = None,
) -> PeerEvaluation:
    """Record an evaluation and award assist points to the receiver.

    Raises
    ------
    ValueError
        If a leader tries to evaluate themselves.
    LookupError
        If either leader doesn't exist.
    """
    if from_leader_id == to_leader_id:
        raise ValueError("Leaders cannot evaluate themselves")

    with Session(engine, expire_on_commit=False) as session:
        get_leader_row(session, from_leader_id)
        receiver = get_leader_row(session, to_leader_id)
        config = load_scoring_config(session)

        evaluation = PeerEvaluation(
            from_leader_id=from_leader_id,
            to_leader_id=to_leader_id,
            description=description,
            qualities=list(qualities or []),
            points_awarded=config.assist_points,
        )
        session.add(evaluation)
        adjust_counter(session, receiver, "assist_points", config.assist_points, config.weights)
        session.commit()

    logger.info(
        "Peer evaluation %s → %s (+%d assists)",
        from_leader_id, to_leader_id, evaluation.points_awarded,
    )
    return evaluation


def get_received(engine: Engine, leader_id: str) -> list[PeerEvaluation]:
    with Session(engine, expire_on_commit=False) as session:
        return list(session.scalars(
            select(PeerEvaluation)
            .where(PeerEvaluation.to_leader_id == leader_id)
            .order_by(PeerEvaluation.created_at.desc(), PeerEvaluation.id.desc())
        ).all())


def get_sent(engine: Engine, leader_id: str) -> list[PeerEvaluation]:
    with Session(engine, expire_on_commit=False) as session:
        return list(session.scalars(
            select(PeerEvaluation)
            .where(PeerEvaluation.from_leader_id == leader_id)
            .order_by(PeerEvaluation.created_at.desc(), PeerEvaluation.id.desc())
        ).all())
