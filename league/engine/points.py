"""
league.engine.points — Counter Point Rules
===========================================

How the raw counters grow: ritual attendance becomes ritual points,
daily energy check-ins add a point (plus a streak bonus), and approved VAR
disputes restore the points that were at risk.  Pure functions; the
services in :mod:`league.services` persist the results.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, timedelta

from league.constants import (
    CHECKIN_BASE_POINTS,
    CHECKIN_STREAK_BONUS,
    CHECKIN_STREAK_INTERVAL,
)
from league.engine.scoring import round_half_up


def attendance_rate(present: int, total: int) -> int:
    """Percentage of rituals attended, 0 when there were none."""
    if total <= 0:
        return 0
    return round_half_up(present / total * 100)


def ritual_points_from_rate(rate: float, max_points: int) -> int:
    """Scale an attendance percentage onto ``[0, max_points]``."""
    return round_half_up(rate / 100 * max_points)


def checkin_streak(dates: Iterable[date], today: date) -> int:
    """Consecutive check-in days ending at *today*.

    *dates* may arrive in any order and contain duplicates.  A streak that
    doesn't include today counts as 0.
    """
    seen = set(dates)
    streak = 0
    day = today
    while day in seen:
        streak += 1
        day -= timedelta(days=1)
    return streak


def checkin_points(streak: int) -> tuple[int, bool]:
    """Points for one check-in given the streak it completes.

    Returns ``(points, bonus_awarded)``; every fifth consecutive day earns
    a bonus on top of the base point.
    """
    bonus_awarded = streak > 0 and streak % CHECKIN_STREAK_INTERVAL == 0
    points = CHECKIN_BASE_POINTS + (CHECKIN_STREAK_BONUS if bonus_awarded else 0)
    return points, bonus_awarded


def var_approval_rate(approved: int, rejected: int) -> float:
    """Share of decided VAR requests that were approved, as a percentage."""
    decided = approved + rejected
    if decided <= 0:
        return 0.0
    return approved / decided * 100
