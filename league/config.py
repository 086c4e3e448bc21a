"""
league.config — YAML Configuration Loader
==========================================

Reads ``config.yaml`` for league identity and the default scoring
configuration.  Runtime changes made by admins live in the ``settings``
database table (see :mod:`league.services.settings_service`); the YAML
values are what a fresh database is seeded with.

Score weights are validated here, at load time, so the scoring engine
never has to second-guess them.

Usage::

    from league.config import load_config

    cfg = load_config()          # reads ./config.yaml by default
    print(cfg.league_name)       # "Leadership League"
    print(cfg.weights.tasks)     # 0.4
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from league.constants import (
    DEFAULT_ANONYMOUS_FEEDBACK_POINTS,
    DEFAULT_ASSIST_POINTS,
    DEFAULT_RITUAL_MAX_POINTS,
)
from league.engine.models import ScoreWeights, validate_weights


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class LeagueConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    league_name: str
    season_name: str

    # Dashboard
    dashboard_port: int

    # Scoring
    weights: ScoreWeights = field(default_factory=ScoreWeights)
    assist_points: int = DEFAULT_ASSIST_POINTS
    ritual_max_points: int = DEFAULT_RITUAL_MAX_POINTS
    anonymous_feedback_points: int = DEFAULT_ANONYMOUS_FEEDBACK_POINTS

    def setting_defaults(self) -> dict[str, object]:
        """Seed values for the ``settings`` table, keyed like the catalogue."""
        defaults: dict[str, object] = {
            f"scoring.weights.{name}": value for name, value in self.weights.to_dict().items()
        }
        defaults["points.assist_points"] = self.assist_points
        defaults["points.ritual_max_points"] = self.ritual_max_points
        defaults["points.anonymous_feedback_sender"] = self.anonymous_feedback_points
        return defaults


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> LeagueConfig:
    """Read *path* and return a :class:`LeagueConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.
        Defaults to ``config.yaml`` in the current working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    InvalidWeightsError
        If the ``scoring.weights`` block is negative or doesn't sum to 1.0.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    scoring: dict = raw.get("scoring") or {}
    weights = validate_weights(scoring.get("weights") or {})

    return LeagueConfig(
        league_name=raw["league_name"],
        season_name=raw["season_name"],
        dashboard_port=int(raw["dashboard_port"]),
        weights=weights,
        assist_points=int(scoring.get("assist_points", DEFAULT_ASSIST_POINTS)),
        ritual_max_points=int(scoring.get("ritual_max_points", DEFAULT_RITUAL_MAX_POINTS)),
        anonymous_feedback_points=int(
            scoring.get("anonymous_feedback_points", DEFAULT_ANONYMOUS_FEEDBACK_POINTS)
        ),
    )
