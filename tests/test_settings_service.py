"""
tests/test_settings_service.py — Scoring Configuration & Database Plumbing
===========================================================================

Uses an in-memory SQLite database via the shared conftest fixtures.
"""

from __future__ import annotations

import asyncio
import json

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from league.database.engine import create_db_engine, get_session, init_db, run_db
from league.database.models import AdminLog, Setting
from league.database.seed import DEFAULT_SETTINGS, seed_default_settings
from league.engine.models import DEFAULT_WEIGHTS, InvalidWeightsError, ScoreWeights
from league.engine.scoring import calculate_overall_score
from league.services import leader_service, ritual_service, settings_service
from league.services.settings_service import (
    ASSIST_POINTS_KEY,
    get_all_settings,
    get_scoring_config,
    get_setting_value,
    update_scoring_config,
)


@pytest.fixture
def engine(db_engine):
    return db_engine


# ---------------------------------------------------------------------------
# Seeding
# ---------------------------------------------------------------------------
class TestSeed:
    def test_catalogue_is_seeded(self, engine):
        keys = {s.key for s in get_all_settings(engine)}
        assert keys == set(DEFAULT_SETTINGS)

    def test_seeding_never_overwrites(self, engine):
        update_scoring_config(engine, assist_points=25)
        seed_default_settings(engine, {ASSIST_POINTS_KEY: 99})
        assert get_scoring_config(engine).assist_points == 25

    def test_overrides_apply_to_fresh_keys(self, engine):
        with Session(engine) as session:
            session.delete(session.get(Setting, ASSIST_POINTS_KEY))
            session.commit()
        init_db(engine, {ASSIST_POINTS_KEY: 7})
        assert get_scoring_config(engine).assist_points == 7


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
class TestReads:
    def test_defaults(self, engine):
        config = get_scoring_config(engine)
        assert config.weights == DEFAULT_WEIGHTS
        assert config.assist_points == 10
        assert config.ritual_max_points == 50
        assert config.anonymous_feedback_points == 5

    def test_get_setting_value(self, engine):
        with Session(engine) as session:
            assert get_setting_value(session, ASSIST_POINTS_KEY) == 10
            assert get_setting_value(session, "missing.key", "fallback") == "fallback"

    def test_invalid_stored_weights_fall_back(self, engine):
        with Session(engine) as session:
            session.get(Setting, "scoring.weights.tasks").value_json = json.dumps(5)
            session.commit()
        assert get_scoring_config(engine).weights == DEFAULT_WEIGHTS


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------
class TestUpdate:
    def test_update_weights(self, engine):
        weights = ScoreWeights(tasks=0.5, fan_score=0.2, assists=0.1, rituals=0.1, consistency=0.1)
        config = update_scoring_config(engine, weights=weights, actor_id="admin-1")
        assert config.weights == weights
        assert get_scoring_config(engine).weights == weights

    def test_update_from_dict(self, engine):
        config = update_scoring_config(
            engine,
            weights={"tasks": 0.3, "fanScore": 0.35, "assists": 0.15, "rituals": 0.15, "consistency": 0.05},
        )
        assert config.weights.fan_score == 0.35

    def test_invalid_weights_write_nothing(self, engine):
        with pytest.raises(InvalidWeightsError):
            update_scoring_config(engine, weights=ScoreWeights(tasks=0.9), actor_id="admin-1")
        assert get_scoring_config(engine).weights == DEFAULT_WEIGHTS

    def test_negative_points_rejected(self, engine):
        with pytest.raises(ValueError):
            update_scoring_config(engine, ritual_max_points=-1)

    def test_changes_are_audited(self, engine):
        update_scoring_config(engine, assist_points=20, actor_id="admin-1")
        update_scoring_config(engine, assist_points=20, actor_id="admin-1")

        with Session(engine) as session:
            logs = session.scalars(select(AdminLog)).all()
        assert len(logs) == 1
        assert logs[0].action_type == "UPDATE"
        assert logs[0].before_snapshot == {"key": ASSIST_POINTS_KEY, "value": 10}
        assert logs[0].after_snapshot == {"key": ASSIST_POINTS_KEY, "value": 20}

    def test_system_changes_are_not_audited(self, engine):
        update_scoring_config(engine, assist_points=20)
        with Session(engine) as session:
            assert session.scalar(select(func.count()).select_from(AdminLog)) == 0

    def test_new_assist_points_used_by_evaluations(self, engine):
        from league.services import peer_evaluation_service

        update_scoring_config(engine, assist_points=25)
        ana = leader_service.create_leader(engine, name="Ana", email="ana@example.com")
        bia = leader_service.create_leader(engine, name="Bia", email="bia@example.com")
        peer_evaluation_service.create_evaluation(
            engine, from_leader_id=ana.id, to_leader_id=bia.id, description="Valeu",
        )
        assert leader_service.get_leader(engine, bia.id).assist_points == 25


# ---------------------------------------------------------------------------
# Stored overall follows the config
# ---------------------------------------------------------------------------
class TestRescoreOnUpdate:
    NEW_WEIGHTS = ScoreWeights(tasks=0.2, fan_score=0.45, assists=0.15, rituals=0.15, consistency=0.05)

    @pytest.fixture
    def leader(self, engine):
        leader = leader_service.create_leader(engine, name="Ana", email="ana@example.com")
        return leader_service.set_fan_score(engine, leader.id, 8)

    def _assert_overall_matches_formula(self, engine, leader_id):
        stored = leader_service.get_leader(engine, leader_id)
        weights = get_scoring_config(engine).weights
        assert stored.overall == calculate_overall_score(stored, weights)

    def test_weight_change_rescores_leaders(self, engine, leader):
        assert leader.overall == 20
        update_scoring_config(engine, weights=self.NEW_WEIGHTS, actor_id="admin-1")
        assert leader_service.get_leader(engine, leader.id).overall == 36
        self._assert_overall_matches_formula(engine, leader.id)

    def test_admins_are_rescored_too(self, engine):
        admin = leader_service.create_leader(
            engine, name="Root", email="root@example.com", is_admin=True,
        )
        leader_service.set_fan_score(engine, admin.id, 8)
        update_scoring_config(engine, weights=self.NEW_WEIGHTS)
        self._assert_overall_matches_formula(engine, admin.id)

    def test_ritual_max_change_refreshes_ritual_points(self, engine, leader):
        ritual = ritual_service.create_ritual(engine, name="Daily", ritual_type="daily")
        ritual_service.mark_attendance(engine, ritual.id, leader.id)
        assert leader_service.get_leader(engine, leader.id).ritual_points == 50

        update_scoring_config(engine, ritual_max_points=80)
        stored = leader_service.get_leader(engine, leader.id)
        assert stored.ritual_points == 80
        assert stored.overall == 32
        self._assert_overall_matches_formula(engine, leader.id)

    def test_point_only_change_leaves_overall_alone(self, engine, leader):
        update_scoring_config(engine, assist_points=25)
        assert leader_service.get_leader(engine, leader.id).overall == 20

    def test_invalid_weights_rescore_nothing(self, engine, leader):
        with pytest.raises(InvalidWeightsError):
            update_scoring_config(engine, weights=ScoreWeights(tasks=0.9))
        assert leader_service.get_leader(engine, leader.id).overall == 20


# ---------------------------------------------------------------------------
# Engine / session helpers
# ---------------------------------------------------------------------------
class TestDatabaseHelpers:
    def test_missing_database_url(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        with pytest.raises(RuntimeError, match="DATABASE_URL"):
            create_db_engine()

    def test_sqlite_url_skips_pool_sizing(self):
        engine = create_db_engine("sqlite://")
        assert engine.url.get_backend_name() == "sqlite"

    def test_get_session_rolls_back_on_error(self, engine):
        with pytest.raises(RuntimeError):
            with get_session(engine) as session:
                session.add(Setting(key="temp.key", value_json="1"))
                session.flush()
                raise RuntimeError("boom")
        with Session(engine) as session:
            assert session.get(Setting, "temp.key") is None

    def test_run_db_bridges_to_thread(self, engine):
        config = asyncio.run(run_db(settings_service.get_scoring_config, engine))
        assert config.assist_points == 10
