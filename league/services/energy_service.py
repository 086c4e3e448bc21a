"""
league.services.energy_service — Daily Energy Check-ins
========================================================

One check-in per leader per day, energy level 1–5.  Each check-in is worth
a ritual point, and every fifth consecutive day earns a streak bonus.
The points are stored on the check-in row so ritual points can always be
rebuilt from attendance plus check-ins.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta

from sqlalchemy import Engine, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from league.constants import CHECKIN_STREAK_LOOKBACK, ENERGY_LEVEL_MAX, ENERGY_LEVEL_MIN
from league.database.models import EnergyCheckIn
from league.engine.points import checkin_points, checkin_streak
from league.services.leader_service import adjust_counter, get_leader_row
from league.services.settings_service import load_scoring_config

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CheckInResult:
    check_in_id: int
    energy_level: int
    streak: int
    points_earned: int
    bonus_awarded: bool


def _today() -> date:
    return datetime.now(UTC).date()


def _recent_dates(session: Session, leader_id: str) -> list[date]:
    return list(session.scalars(
        select(EnergyCheckIn.checkin_date)
        .where(EnergyCheckIn.leader_id == leader_id)
        .order_by(EnergyCheckIn.checkin_date.desc())
        .limit(CHECKIN_STREAK_LOOKBACK)
    ).all())


def check_in(
    engine: Engine,
    leader_id: str,
    energy_level: int,
    note: str | None = None,
    today: date | None = None,
) -> CheckInResult:
    """Record today's check-in and add its points to ``ritual_points``.

    Raises
    ------
    ValueError
        If *energy_level* is outside 1–5 or the leader already checked in today.
    LookupError
        If the leader doesn't exist.
    """
    if not ENERGY_LEVEL_MIN <= energy_level <= ENERGY_LEVEL_MAX:
        raise ValueError(
            f"energy_level must be between {ENERGY_LEVEL_MIN} and {ENERGY_LEVEL_MAX}, "
            f"got {energy_level}"
        )
    today = today or _today()

    with Session(engine) as session:
        leader = get_leader_row(session, leader_id)
        already = session.scalar(
            select(EnergyCheckIn.id).where(
                EnergyCheckIn.leader_id == leader_id,
                EnergyCheckIn.checkin_date == today,
            )
        )
        if already is not None:
            raise ValueError(f"Leader {leader_id} already checked in on {today}")

        check = EnergyCheckIn(
            leader_id=leader_id,
            energy_level=energy_level,
            note=note,
            checkin_date=today,
            points_awarded=0,
        )
        try:
            with session.begin_nested():   # SAVEPOINT
                session.add(check)
                session.flush()
        except IntegrityError:
            raise ValueError(f"Leader {leader_id} already checked in on {today}") from None

        streak = checkin_streak(_recent_dates(session, leader_id), today)
        points, bonus = checkin_points(streak)
        check.points_awarded = points

        config = load_scoring_config(session)
        adjust_counter(session, leader, "ritual_points", points, config.weights)
        session.commit()
        result = CheckInResult(
            check_in_id=check.id,
            energy_level=energy_level,
            streak=streak,
            points_earned=points,
            bonus_awarded=bonus,
        )

    logger.info(
        "Energy check-in %s: level %d, streak %d (+%d%s)",
        leader_id, energy_level, streak, points, ", bonus" if bonus else "",
    )
    return result


def get_today_check_in(
    engine: Engine, leader_id: str, today: date | None = None
) -> EnergyCheckIn | None:
    with Session(engine, expire_on_commit=False) as session:
        return session.scalar(
            select(EnergyCheckIn).where(
                EnergyCheckIn.leader_id == leader_id,
                EnergyCheckIn.checkin_date == (today or _today()),
            )
        )


def get_history(
    engine: Engine, leader_id: str, days: int = 7, today: date | None = None
) -> list[EnergyCheckIn]:
    """Check-ins from the last *days* days, oldest first."""
    since = (today or _today()) - timedelta(days=days)
    with Session(engine, expire_on_commit=False) as session:
        return list(session.scalars(
            select(EnergyCheckIn)
            .where(EnergyCheckIn.leader_id == leader_id, EnergyCheckIn.checkin_date >= since)
            .order_by(EnergyCheckIn.checkin_date)
        ).all())


def get_streak(engine: Engine, leader_id: str, today: date | None = None) -> int:
    with Session(engine) as session:
        return checkin_streak(_recent_dates(session, leader_id), today or _today())


def average_energy(
    engine: Engine, leader_id: str, days: int = 7, today: date | None = None
) -> float:
    """Mean energy level over the last *days* days, one decimal; 0 with no data."""
    history = get_history(engine, leader_id, days, today)
    if not history:
        return 0.0
    return round(sum(c.energy_level for c in history) / len(history), 1)
