"""
tests/test_ritual_energy.py — Ritual Attendance & Energy Check-ins
===================================================================
Both feed ``ritual_points``: attendance over the last 30 days scaled onto
``ritual_max_points``, plus the points stored on each energy check-in.

Uses an in-memory SQLite database via the shared conftest fixtures.
"""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from league.services import energy_service, leader_service, ritual_service

TODAY = date(2026, 10, 19)


@pytest.fixture
def engine(db_engine):
    return db_engine


@pytest.fixture
def leader(engine):
    return leader_service.create_leader(engine, name="Ana", email="ana@example.com")


def _ritual(engine, days_ago: int = 0, name="Daily"):
    return ritual_service.create_ritual(
        engine, name=name, ritual_type="daily", ritual_date=TODAY - timedelta(days=days_ago),
    )


# ---------------------------------------------------------------------------
# Rituals
# ---------------------------------------------------------------------------
class TestRituals:
    def test_unknown_type_rejected(self, engine):
        with pytest.raises(ValueError):
            ritual_service.create_ritual(engine, name="?", ritual_type="monthly")

    def test_rituals_on_day(self, engine):
        today = _ritual(engine)
        _ritual(engine, days_ago=1)
        assert [r.id for r in ritual_service.get_rituals_on(engine, TODAY)] == [today.id]


class TestAttendance:
    def test_rate_without_rituals(self, engine, leader):
        assert ritual_service.calculate_attendance_rate(engine, leader.id, today=TODAY) == 0

    def test_marking_attendance_refreshes_points(self, engine, leader):
        first = _ritual(engine)
        _ritual(engine, days_ago=2)

        points = ritual_service.mark_attendance(engine, first.id, leader.id, today=TODAY)
        assert points == 25
        assert ritual_service.calculate_attendance_rate(engine, leader.id, today=TODAY) == 50

        snapshot = leader_service.get_leader(engine, leader.id)
        assert snapshot.ritual_points == 25
        assert snapshot.overall == 4

    def test_upsert_corrects_previous_mark(self, engine, leader):
        ritual = _ritual(engine)
        ritual_service.mark_attendance(engine, ritual.id, leader.id, today=TODAY)
        assert ritual_service.mark_attendance(engine, ritual.id, leader.id, present=False, today=TODAY) == 0

    def test_old_rituals_fall_out_of_window(self, engine, leader):
        old = _ritual(engine, days_ago=40)
        _ritual(engine)
        ritual_service.mark_attendance(engine, old.id, leader.id, today=TODAY)
        assert ritual_service.calculate_attendance_rate(engine, leader.id, today=TODAY) == 0

    def test_unknown_ritual(self, engine, leader):
        with pytest.raises(LookupError):
            ritual_service.mark_attendance(engine, 9999, leader.id, today=TODAY)

    def test_refresh_keeps_checkin_points(self, engine, leader):
        energy_service.check_in(engine, leader.id, 4, today=TODAY)
        ritual = _ritual(engine)
        assert ritual_service.mark_attendance(engine, ritual.id, leader.id, today=TODAY) == 51
        assert ritual_service.refresh_ritual_points(engine, leader.id, today=TODAY) == 51


# ---------------------------------------------------------------------------
# Energy check-ins
# ---------------------------------------------------------------------------
class TestCheckIn:
    def test_first_check_in(self, engine, leader):
        result = energy_service.check_in(engine, leader.id, 4, note="Bem", today=TODAY)
        assert result.points_earned == 1
        assert result.streak == 1
        assert result.bonus_awarded is False
        assert leader_service.get_leader(engine, leader.id).ritual_points == 1

    def test_one_per_day(self, engine, leader):
        energy_service.check_in(engine, leader.id, 4, today=TODAY)
        with pytest.raises(ValueError, match="already checked in"):
            energy_service.check_in(engine, leader.id, 5, today=TODAY)

    @pytest.mark.parametrize("level", [0, 6])
    def test_level_range(self, engine, leader, level):
        with pytest.raises(ValueError):
            energy_service.check_in(engine, leader.id, level, today=TODAY)

    def test_missing_leader(self, engine):
        with pytest.raises(LookupError):
            energy_service.check_in(engine, "nope", 3, today=TODAY)

    def test_fifth_day_earns_bonus(self, engine, leader):
        results = [
            energy_service.check_in(engine, leader.id, 3, today=TODAY - timedelta(days=offset))
            for offset in range(4, -1, -1)
        ]
        assert [r.points_earned for r in results] == [1, 1, 1, 1, 3]
        assert results[-1].bonus_awarded is True
        assert leader_service.get_leader(engine, leader.id).ritual_points == 7
        assert energy_service.get_streak(engine, leader.id, today=TODAY) == 5

    def test_streak_broken_by_gap(self, engine, leader):
        energy_service.check_in(engine, leader.id, 3, today=TODAY - timedelta(days=2))
        energy_service.check_in(engine, leader.id, 3, today=TODAY)
        assert energy_service.get_streak(engine, leader.id, today=TODAY) == 1


class TestEnergyReads:
    def test_average_energy(self, engine, leader):
        for offset, level in [(0, 5), (1, 4), (2, 4)]:
            energy_service.check_in(engine, leader.id, level, today=TODAY - timedelta(days=offset))
        assert energy_service.average_energy(engine, leader.id, today=TODAY) == 4.3

    def test_average_without_data(self, engine, leader):
        assert energy_service.average_energy(engine, leader.id, today=TODAY) == 0.0

    def test_today_check_in(self, engine, leader):
        assert energy_service.get_today_check_in(engine, leader.id, today=TODAY) is None
        energy_service.check_in(engine, leader.id, 2, today=TODAY)
        assert energy_service.get_today_check_in(engine, leader.id, today=TODAY).energy_level == 2

    def test_history_window(self, engine, leader):
        energy_service.check_in(engine, leader.id, 2, today=TODAY - timedelta(days=10))
        energy_service.check_in(engine, leader.id, 3, today=TODAY)
        assert [c.energy_level for c in energy_service.get_history(engine, leader.id, today=TODAY)] == [3]
