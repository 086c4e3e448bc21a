"""
league.database.seed — Default Settings Seeder
===============================================

Baseline scoring settings seeded on first startup so the league scores
leaders immediately.

Idempotent — only inserts keys that don't already exist.  Values edited
later by an admin are never overwritten.
"""

from __future__ import annotations

import json
import logging

from sqlalchemy import Engine

from league.constants import (
    DEFAULT_ANONYMOUS_FEEDBACK_POINTS,
    DEFAULT_ASSIST_POINTS,
    DEFAULT_RITUAL_MAX_POINTS,
    DEFAULT_WEIGHT_ASSISTS,
    DEFAULT_WEIGHT_CONSISTENCY,
    DEFAULT_WEIGHT_FAN_SCORE,
    DEFAULT_WEIGHT_RITUALS,
    DEFAULT_WEIGHT_TASKS,
)
from league.database.engine import get_session
from league.database.models import Setting

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Default settings catalogue
# ---------------------------------------------------------------------------
DEFAULT_SETTINGS: dict[str, tuple[object, str, str]] = {
    "scoring.weights.tasks": (DEFAULT_WEIGHT_TASKS, "scoring", "Weight of task points in the overall"),
    "scoring.weights.fan_score": (
        DEFAULT_WEIGHT_FAN_SCORE, "scoring", "Weight of the team's fan score (0–10, scaled ×10)",
    ),
    "scoring.weights.assists": (DEFAULT_WEIGHT_ASSISTS, "scoring", "Weight of assist points"),
    "scoring.weights.rituals": (DEFAULT_WEIGHT_RITUALS, "scoring", "Weight of ritual points"),
    "scoring.weights.consistency": (
        DEFAULT_WEIGHT_CONSISTENCY, "scoring", "Weight of the consistency bonus",
    ),
    "points.assist_points": (
        DEFAULT_ASSIST_POINTS, "points", "Assist points per peer evaluation received",
    ),
    "points.ritual_max_points": (
        DEFAULT_RITUAL_MAX_POINTS, "points", "Ritual points at 100% attendance",
    ),
    "points.anonymous_feedback_sender": (
        DEFAULT_ANONYMOUS_FEEDBACK_POINTS, "points", "Assist points for sending anonymous feedback",
    ),
}
"""Each entry maps ``key`` → ``(default_value, category, description)``."""


# ---------------------------------------------------------------------------
# Seeder
# ---------------------------------------------------------------------------
def seed_default_settings(engine: Engine, overrides: dict | None = None) -> None:
    """Insert default settings that don't yet exist.

    *overrides* maps setting keys to values that replace the catalogue
    default for keys being inserted for the first time.
    """
    overrides = overrides or {}
    inserted = 0
    with get_session(engine) as session:
        for key, (value, category, desc) in DEFAULT_SETTINGS.items():
            if session.get(Setting, key) is None:
                session.add(Setting(
                    key=key,
                    value_json=json.dumps(overrides.get(key, value)),
                    category=category,
                    description=desc,
                ))
                inserted += 1

    if inserted:
        logger.info("Seeded %d default settings.", inserted)
