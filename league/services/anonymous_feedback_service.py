"""
league.services.anonymous_feedback_service — Anonymous Feedback
================================================================

A leader sends unsigned feedback to a colleague.  The receiver sees the
text but never the sender; the sender earns the configured assist points
for giving it.

The sender is reduced to a SHA-256 digest of (sender, receiver, day), so
one sender can reach a given receiver at most once per day without the
row revealing who wrote it.
"""

from __future__ import annotations

import hashlib
import logging
from datetime import UTC, date, datetime

from sqlalchemy import Engine, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from league.database.models import AnonymousFeedback, FeedbackType
from league.services.leader_service import adjust_counter, get_leader_row
from league.services.settings_service import load_scoring_config

logger = logging.getLogger(__name__)


def feedback_hash(from_leader_id: str, to_leader_id: str, day: date) -> str:
    raw = f"{from_leader_id}-{to_leader_id}-{day.isoformat()}"
    return hashlib.sha256(raw.encode()).hexdigest()


def create_feedback(
    engine: Engine,
    *,
    from_leader_id: str,
    to_leader_id: str,
    feedback_text: str,
    feedback_type: str = FeedbackType.POSITIVE,
    today: date | None = None,
) -> AnonymousFeedback:
    """Store the feedback and add the sender's assist points.

    Raises
    ------
    ValueError
        If *feedback_type* is unknown, a leader addresses themselves, or
        the sender already wrote to this receiver today.
    LookupError
        If either leader doesn't exist.
    """
    try:
        kind = FeedbackType(feedback_type)
    except ValueError:
        raise ValueError(f"Unknown feedback type: {feedback_type}") from None
    if from_leader_id == to_leader_id:
        raise ValueError("Leaders cannot send feedback to themselves")
    today = today or datetime.now(UTC).date()
    digest = feedback_hash(from_leader_id, to_leader_id, today)

    with Session(engine, expire_on_commit=False) as session:
        sender = get_leader_row(session, from_leader_id)
        get_leader_row(session, to_leader_id)

        duplicate = session.scalar(
            select(AnonymousFeedback.id).where(
                AnonymousFeedback.feedback_hash == digest,
                AnonymousFeedback.feedback_date == today,
            )
        )
        if duplicate is not None:
            raise ValueError("Feedback to this leader was already sent today")

        config = load_scoring_config(session)
        feedback = AnonymousFeedback(
            to_leader_id=to_leader_id,
            feedback_text=feedback_text,
            feedback_type=kind.value,
            feedback_hash=digest,
            feedback_date=today,
            points_to_sender=config.anonymous_feedback_points,
            is_approved=True,
        )
        try:
            with session.begin_nested():   # SAVEPOINT
                session.add(feedback)
                session.flush()
        except IntegrityError:
            raise ValueError("Feedback to this leader was already sent today") from None

        adjust_counter(
            session, sender, "assist_points", config.anonymous_feedback_points, config.weights,
        )
        session.commit()

    logger.info(
        "Anonymous %s feedback to %s (+%d assists to sender)",
        kind.value, to_leader_id, feedback.points_to_sender,
    )
    return feedback


def get_received(engine: Engine, leader_id: str) -> list[AnonymousFeedback]:
    """Approved feedback addressed to *leader_id*, newest first."""
    with Session(engine, expire_on_commit=False) as session:
        return list(session.scalars(
            select(AnonymousFeedback)
            .where(
                AnonymousFeedback.to_leader_id == leader_id,
                AnonymousFeedback.is_approved.is_(True),
            )
            .order_by(AnonymousFeedback.created_at.desc(), AnonymousFeedback.id.desc())
        ).all())


def get_recent(engine: Engine, limit: int = 20) -> list[AnonymousFeedback]:
    with Session(engine, expire_on_commit=False) as session:
        return list(session.scalars(
            select(AnonymousFeedback)
            .order_by(AnonymousFeedback.created_at.desc(), AnonymousFeedback.id.desc())
            .limit(limit)
        ).all())
