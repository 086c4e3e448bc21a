"""
league.services.ritual_service — Rituals & Attendance
======================================================

Ritual points are not accumulated per ritual.  They are derived from the
leader's attendance rate over the last 30 days, scaled onto
``ritual_max_points``, plus whatever the leader earned from energy
check-ins (see :mod:`league.services.energy_service`).  Marking attendance
refreshes that value and recomputes ``overall`` in the same transaction.
"""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime, timedelta

from sqlalchemy import Engine, func, select
from sqlalchemy.orm import Session

from league.constants import RITUAL_ATTENDANCE_WINDOW_DAYS
from league.database.models import (
    EnergyCheckIn,
    Leader,
    Ritual,
    RitualAttendance,
    RitualType,
)
from league.engine.points import attendance_rate, ritual_points_from_rate
from league.services.leader_service import get_leader_row, write_overall
from league.services.settings_service import load_scoring_config

logger = logging.getLogger(__name__)


def _today() -> date:
    return datetime.now(UTC).date()


# ---------------------------------------------------------------------------
# Rituals
# ---------------------------------------------------------------------------
def create_ritual(
    engine: Engine,
    *,
    name: str,
    ritual_type: str,
    ritual_date: date | None = None,
) -> Ritual:
    """Schedule a ritual.  *ritual_type* must be a :class:`RitualType` value."""
    try:
        kind = RitualType(ritual_type)
    except ValueError:
        raise ValueError(f"Unknown ritual type: {ritual_type!r}") from None

    with Session(engine, expire_on_commit=False) as session:
        ritual = Ritual(name=name, type=kind.value, ritual_date=ritual_date or _today())
        session.add(ritual)
        session.commit()
        logger.info("Ritual created: %r (%s) on %s", name, kind.value, ritual.ritual_date)
        return ritual


def get_rituals_on(engine: Engine, day: date) -> list[Ritual]:
    with Session(engine, expire_on_commit=False) as session:
        return list(session.scalars(
            select(Ritual).where(Ritual.ritual_date == day).order_by(Ritual.id)
        ).all())


# ---------------------------------------------------------------------------
# Attendance
# ---------------------------------------------------------------------------
def _attendance_rate(session: Session, leader_id: str, days: int, today: date) -> int:
    since = today - timedelta(days=days)
    ritual_ids = select(Ritual.id).where(Ritual.ritual_date >= since)

    total = session.scalar(select(func.count()).select_from(ritual_ids.subquery())) or 0
    if total == 0:
        return 0
    present = session.scalar(
        select(func.count(RitualAttendance.id)).where(
            RitualAttendance.leader_id == leader_id,
            RitualAttendance.present.is_(True),
            RitualAttendance.ritual_id.in_(ritual_ids),
        )
    ) or 0
    return attendance_rate(present, total)


def recalculate_ritual_points(session: Session, row: Leader, today: date) -> int:
    """Recompute ``ritual_points`` for *row* from attendance and check-ins.

    The caller owns the transaction.
    """
    config = load_scoring_config(session)
    rate = _attendance_rate(session, row.id, RITUAL_ATTENDANCE_WINDOW_DAYS, today)
    checkin_total = session.scalar(
        select(func.coalesce(func.sum(EnergyCheckIn.points_awarded), 0))
        .where(EnergyCheckIn.leader_id == row.id)
    ) or 0

    row.ritual_points = ritual_points_from_rate(rate, config.ritual_max_points) + checkin_total
    write_overall(row, config.weights)
    return row.ritual_points


def calculate_attendance_rate(
    engine: Engine,
    leader_id: str,
    days: int = RITUAL_ATTENDANCE_WINDOW_DAYS,
    today: date | None = None,
) -> int:
    """Percent of the rituals held in the last *days* days that the leader
    attended.  0 when no rituals were held."""
    with Session(engine) as session:
        return _attendance_rate(session, leader_id, days, today or _today())


def mark_attendance(
    engine: Engine,
    ritual_id: int,
    leader_id: str,
    present: bool = True,
    today: date | None = None,
) -> int:
    """Record (or correct) a leader's presence at a ritual.

    Returns the leader's refreshed ``ritual_points``.

    Raises
    ------
    LookupError
        If the ritual or the leader doesn't exist.
    """
    with Session(engine) as session:
        if session.get(Ritual, ritual_id) is None:
            raise LookupError(f"Ritual not found: {ritual_id}")
        row = get_leader_row(session, leader_id)
        upsert_attendance(session, ritual_id, leader_id, present)
        session.flush()
        points = recalculate_ritual_points(session, row, today or _today())
        session.commit()

    logger.info(
        "Attendance %s for ritual %s: %s (ritual points → %d)",
        leader_id, ritual_id, "present" if present else "absent", points,
    )
    return points


def upsert_attendance(session: Session, ritual_id: int, leader_id: str, present: bool) -> None:
    attendance = session.scalar(
        select(RitualAttendance).where(
            RitualAttendance.ritual_id == ritual_id,
            RitualAttendance.leader_id == leader_id,
        )
    )
    if attendance is None:
        session.add(RitualAttendance(ritual_id=ritual_id, leader_id=leader_id, present=present))
    else:
        attendance.present = present


def refresh_ritual_points(
    engine: Engine, leader_id: str, today: date | None = None
) -> int:
    """Recompute a leader's ``ritual_points`` and ``overall`` and persist them.

    Run it as rituals age out of the attendance window.  Changing
    ``ritual_max_points`` already refreshes every leader.
    """
    with Session(engine) as session:
        row = get_leader_row(session, leader_id)
        points = recalculate_ritual_points(session, row, today or _today())
        session.commit()
    return points
