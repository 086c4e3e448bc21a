"""
league.services.settings_service — Scoring Configuration CRUD
==============================================================

Typed read/write access to the ``settings`` table.  The scoring weights
are validated before they are written, so every reader can hand them
straight to the engine.  Admin changes are recorded in ``admin_log``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from league.constants import (
    DEFAULT_ANONYMOUS_FEEDBACK_POINTS,
    DEFAULT_ASSIST_POINTS,
    DEFAULT_RITUAL_MAX_POINTS,
)
from league.database.models import AdminActionType, AdminLog, Leader, Setting
from league.engine.models import ScoreWeights, validate_weights

logger = logging.getLogger(__name__)

WEIGHT_KEY_PREFIX = "scoring.weights."
ASSIST_POINTS_KEY = "points.assist_points"
RITUAL_MAX_POINTS_KEY = "points.ritual_max_points"
ANONYMOUS_FEEDBACK_POINTS_KEY = "points.anonymous_feedback_sender"


@dataclass(frozen=True, slots=True)
class ScoringConfig:
    """Everything the collaborators need to score a counter change."""

    weights: ScoreWeights = field(default_factory=ScoreWeights)
    assist_points: int = DEFAULT_ASSIST_POINTS
    ritual_max_points: int = DEFAULT_RITUAL_MAX_POINTS
    anonymous_feedback_points: int = DEFAULT_ANONYMOUS_FEEDBACK_POINTS

    def to_dict(self) -> dict[str, Any]:
        return {
            "weights": self.weights.to_dict(),
            "assist_points": self.assist_points,
            "ritual_max_points": self.ritual_max_points,
            "anonymous_feedback_points": self.anonymous_feedback_points,
        }


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def get_setting_value(session: Session, key: str, default=None):
    """Read a single setting's parsed value from an existing session.

    Returns *default* when the key does not exist; a value that isn't
    valid JSON is returned as the raw string.
    """
    row = session.get(Setting, key)
    if row is None:
        return default
    try:
        return json.loads(row.value_json)
    except (json.JSONDecodeError, TypeError):
        return row.value_json


def load_scoring_config(session: Session) -> ScoringConfig:
    """Build a :class:`ScoringConfig` from the settings rows in *session*.

    Missing keys fall back to the defaults.  Stored weights that no longer
    satisfy the weights invariant are ignored in favour of the defaults.
    """
    rows = session.scalars(
        select(Setting).where(Setting.key.startswith(WEIGHT_KEY_PREFIX))
    ).all()
    stored: dict[str, Any] = {}
    for row in rows:
        try:
            stored[row.key.removeprefix(WEIGHT_KEY_PREFIX)] = json.loads(row.value_json)
        except (json.JSONDecodeError, TypeError):
            logger.warning("Ignoring unreadable setting %s", row.key)

    weights = ScoreWeights.from_mapping(stored)
    try:
        weights.validated()
    except ValueError as exc:
        logger.warning("Stored score weights are invalid (%s); using defaults", exc)
        weights = ScoreWeights()

    return ScoringConfig(
        weights=weights,
        assist_points=int(get_setting_value(session, ASSIST_POINTS_KEY, DEFAULT_ASSIST_POINTS)),
        ritual_max_points=int(
            get_setting_value(session, RITUAL_MAX_POINTS_KEY, DEFAULT_RITUAL_MAX_POINTS)
        ),
        anonymous_feedback_points=int(
            get_setting_value(
                session, ANONYMOUS_FEEDBACK_POINTS_KEY, DEFAULT_ANONYMOUS_FEEDBACK_POINTS
            )
        ),
    )


def get_scoring_config(engine: Engine) -> ScoringConfig:
    with Session(engine) as session:
        return load_scoring_config(session)


def get_all_settings(engine: Engine) -> list[Setting]:
    """Fetch every setting row, ordered by category then key."""
    with Session(engine) as session:
        rows = session.scalars(
            select(Setting).order_by(Setting.category, Setting.key)
        ).all()
        for r in rows:
            session.expunge(r)
        return list(rows)


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------
def _upsert(
    session: Session,
    key: str,
    value: Any,
    category: str,
    actor_id: str | None,
) -> None:
    existing = session.get(Setting, key)
    before = json.loads(existing.value_json) if existing else None
    if existing:
        existing.value_json = json.dumps(value)
    else:
        session.add(Setting(key=key, value_json=json.dumps(value), category=category))

    if actor_id is not None and before != value:
        session.add(AdminLog(
            actor_id=actor_id,
            action_type=(AdminActionType.UPDATE if existing else AdminActionType.CREATE).value,
            target_table="settings",
            target_id=key,
            before_snapshot={"key": key, "value": before} if existing else None,
            after_snapshot={"key": key, "value": value},
        ))


def _rescore_leaders(session: Session, config: ScoringConfig, *, refresh_rituals: bool) -> int:
    """Bring every stored ``overall`` back in line with *config*.

    With *refresh_rituals*, ``ritual_points`` is rebuilt first so a new
    ``ritual_max_points`` reaches the counter too.  Caller commits.
    """
    from league.services.leader_service import write_overall
    from league.services.ritual_service import recalculate_ritual_points

    today = datetime.now(UTC).date()
    rows = session.scalars(select(Leader)).all()
    for row in rows:
        if refresh_rituals:
            recalculate_ritual_points(session, row, today)
        else:
            write_overall(row, config.weights)
    return len(rows)


def update_scoring_config(
    engine: Engine,
    *,
    weights: ScoreWeights | dict | None = None,
    assist_points: int | None = None,
    ritual_max_points: int | None = None,
    anonymous_feedback_points: int | None = None,
    actor_id: str | None = None,
) -> ScoringConfig:
    """Write any of the given scoring values and return the new config.

    New weights or a new ``ritual_max_points`` rescore every leader in the
    same transaction, so stored ``overall`` values never lag the settings.

    Raises
    ------
    InvalidWeightsError
        If *weights* is negative or doesn't sum to 1.0.  Nothing is written.
    ValueError
        If a point value is negative.
    """
    if weights is not None:
        weights = validate_weights(weights)
    for name, points in (
        ("assist_points", assist_points),
        ("ritual_max_points", ritual_max_points),
        ("anonymous_feedback_points", anonymous_feedback_points),
    ):
        if points is not None and points < 0:
            raise ValueError(f"{name} must be >= 0")

    with Session(engine) as session:
        if weights is not None:
            for name, value in weights.to_dict().items():
                _upsert(session, f"{WEIGHT_KEY_PREFIX}{name}", value, "scoring", actor_id)
        if assist_points is not None:
            _upsert(session, ASSIST_POINTS_KEY, assist_points, "points", actor_id)
        if ritual_max_points is not None:
            _upsert(session, RITUAL_MAX_POINTS_KEY, ritual_max_points, "points", actor_id)
        if anonymous_feedback_points is not None:
            _upsert(
                session, ANONYMOUS_FEEDBACK_POINTS_KEY, anonymous_feedback_points,
                "points", actor_id,
            )
        session.flush()
        config = load_scoring_config(session)

        rescored = 0
        if weights is not None or ritual_max_points is not None:
            rescored = _rescore_leaders(
                session, config, refresh_rituals=ritual_max_points is not None
            )
        session.commit()

    logger.info("Scoring config updated by %s: %s", actor_id or "system", config.to_dict())
    if rescored:
        logger.info("Rescored %d leaders under the new config", rescored)
    return config
