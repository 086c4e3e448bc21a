"""
league.services.leader_service — Leader Reads & Score Write-Back
=================================================================

Bridges the ``leaders`` table and the pure scoring engine:

1. Read rows and normalize them into :class:`LeaderSnapshot` values.
2. Run the engine over the snapshot (and the cohort, for rank change).
3. Write the derived fields back.  Last write wins.

Counters are only ever changed through :func:`adjust_counter`, which
recomputes ``overall`` with :func:`calculate_overall_score` in the same
transaction.  A change of weights rescores every leader (see
:func:`league.services.settings_service.update_scoring_config`), so
``overall`` never drifts from its counters or the current weights.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy import Engine, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from league.database.models import Leader, ScoreHistoryEntry
from league.engine.models import LeaderSnapshot, ScoreWeights, normalize_leader
from league.engine.scoring import calculate_overall_score, recalculate_leader
from league.services.settings_service import load_scoring_config

logger = logging.getLogger(__name__)

COUNTER_FIELDS = frozenset({"task_points", "assist_points", "ritual_points"})
FAN_SCORE_MAX = 10


# ---------------------------------------------------------------------------
# Row → snapshot
# ---------------------------------------------------------------------------
def to_snapshot(row: Leader) -> LeaderSnapshot:
    """Normalize an ORM row (nullable columns included) into a snapshot."""
    return normalize_leader({
        "id": row.id,
        "name": row.name,
        "email": row.email,
        "team": row.team,
        "position": row.position,
        "task_points": row.task_points,
        "fan_score": row.fan_score,
        "assist_points": row.assist_points,
        "ritual_points": row.ritual_points,
        "overall": row.overall,
        "consistency_score": row.consistency_score,
        "momentum": row.momentum,
        "trend": row.trend,
        "rank_change": row.rank_change,
        "strengths": row.strengths,
        "improvements": row.improvements,
        "history": [
            {
                "week": h.week,
                "overall": h.overall,
                "task_points": h.task_points,
                "fan_score": h.fan_score,
                "assist_points": h.assist_points,
                "ritual_points": h.ritual_points,
                "timestamp": h.recorded_at.isoformat() if h.recorded_at else "",
            }
            for h in row.history
        ],
    })


def _competitors(session: Session) -> list[Leader]:
    """Every non-admin leader with history eagerly loaded."""
    return list(session.scalars(
        select(Leader)
        .where(Leader.is_admin.is_(False))
        .options(selectinload(Leader.history))
        .order_by(Leader.overall.desc(), Leader.id)
    ).all())


def get_leader_row(session: Session, leader_id: str) -> Leader:
    """Fetch a leader row or raise :class:`LookupError`."""
    row = session.get(Leader, leader_id)
    if row is None:
        raise LookupError(f"Leader not found: {leader_id}")
    return row


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def get_leader(engine: Engine, leader_id: str) -> LeaderSnapshot | None:
    with Session(engine) as session:
        row = session.get(Leader, leader_id)
        return to_snapshot(row) if row is not None else None


def list_leaders(engine: Engine, *, include_admins: bool = False) -> list[LeaderSnapshot]:
    """All leaders ordered by ``overall`` (descending).  Admins are excluded
    unless *include_admins* is set."""
    with Session(engine) as session:
        stmt = select(Leader).options(selectinload(Leader.history))
        if not include_admins:
            stmt = stmt.where(Leader.is_admin.is_(False))
        rows = session.scalars(stmt.order_by(Leader.overall.desc(), Leader.id)).all()
        return [to_snapshot(r) for r in rows]


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------
def create_leader(
    engine: Engine,
    *,
    name: str,
    email: str,
    team: str = "",
    position: str = "",
    is_admin: bool = False,
) -> LeaderSnapshot:
    """Insert a new leader with zeroed counters.

    Raises
    ------
    ValueError
        If a leader with *email* already exists.
    """
    with Session(engine) as session:
        row = Leader(
            name=name,
            email=email,
            team=team,
            position=position,
            is_admin=is_admin,
            strengths=[],
            improvements=[],
        )
        session.add(row)
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise ValueError(f"A leader with email {email!r} already exists") from exc
        logger.info("Leader created: %s (%s)", row.name, row.id)
        return to_snapshot(row)


def write_overall(row: Leader, weights: ScoreWeights) -> None:
    row.overall = calculate_overall_score(to_snapshot(row), weights)


def adjust_counter(
    session: Session,
    row: Leader,
    field: str,
    delta: int,
    weights: ScoreWeights,
) -> int:
    """Add *delta* to a raw counter (floored at 0) and recompute ``overall``.

    Returns the new counter value.  The caller owns the transaction.
    """
    if field not in COUNTER_FIELDS:
        raise ValueError(f"Unknown counter: {field}")
    new_value = max(0, (getattr(row, field) or 0) + delta)
    setattr(row, field, new_value)
    write_overall(row, weights)
    return new_value


def set_fan_score(engine: Engine, leader_id: str, fan_score: float) -> LeaderSnapshot:
    """Set the team's 0–10 fan score for a leader and recompute ``overall``."""
    if not 0 <= fan_score <= FAN_SCORE_MAX:
        raise ValueError(f"fan_score must be between 0 and {FAN_SCORE_MAX}, got {fan_score}")
    with Session(engine) as session:
        row = get_leader_row(session, leader_id)
        config = load_scoring_config(session)
        row.fan_score = fan_score
        write_overall(row, config.weights)
        session.commit()
        return to_snapshot(row)


def _apply_derived(row: Leader, derived: LeaderSnapshot) -> None:
    row.overall = derived.overall
    row.consistency_score = derived.consistency_score
    row.momentum = derived.momentum
    row.trend = derived.trend.value
    row.rank_change = derived.rank_change


def recompute_leader(engine: Engine, leader_id: str) -> LeaderSnapshot:
    """Run the full derivation pass for one leader and persist it.

    Raises
    ------
    LookupError
        If the leader doesn't exist.
    """
    with Session(engine) as session:
        row = get_leader_row(session, leader_id)
        config = load_scoring_config(session)
        cohort = [to_snapshot(r) for r in _competitors(session)]
        derived = recalculate_leader(to_snapshot(row), cohort, config.weights)
        _apply_derived(row, derived)
        session.commit()
        return derived


def recompute_all(engine: Engine) -> list[LeaderSnapshot]:
    """Recompute every competing leader against the same cohort snapshot."""
    with Session(engine) as session:
        config = load_scoring_config(session)
        rows = _competitors(session)
        cohort = [to_snapshot(r) for r in rows]
        results: list[LeaderSnapshot] = []
        for row, snapshot in zip(rows, cohort):
            derived = recalculate_leader(snapshot, cohort, config.weights)
            _apply_derived(row, derived)
            results.append(derived)
        session.commit()

    logger.info("Recomputed %d leaders", len(results))
    return results


def current_week(now: datetime | None = None) -> str:
    """ISO week label, e.g. ``2026-W42``."""
    now = now or datetime.now(UTC)
    year, week, _ = now.isocalendar()
    return f"{year}-W{week:02d}"


def record_weekly_snapshot(engine: Engine, week: str | None = None) -> int:
    """Append one history entry per competing leader, then recompute.

    Leaders that already have an entry for *week* are skipped, so running
    the weekly job twice is harmless.  Returns the number of entries added.
    """
    week = week or current_week()
    added = 0
    with Session(engine) as session:
        for row in _competitors(session):
            if any(h.week == week for h in row.history):
                continue
            row.history.append(ScoreHistoryEntry(
                week=week,
                overall=row.overall or 0,
                task_points=row.task_points or 0,
                fan_score=row.fan_score or 0.0,
                assist_points=row.assist_points or 0,
                ritual_points=row.ritual_points or 0,
            ))
            added += 1
        session.commit()

    logger.info("Weekly snapshot %s: %d history entries added", week, added)
    recompute_all(engine)
    return added
