"""
tests/test_config.py — YAML Configuration Loader
=================================================
"""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from league.config import load_config
from league.engine.models import DEFAULT_WEIGHTS, InvalidWeightsError

_MINIMAL = """
league_name: Leadership League
season_name: Season 1
dashboard_port: 8000
"""


def _write(tmp_path: Path, body: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(textwrap.dedent(body), encoding="utf-8")
    return path


class TestLoadConfig:
    def test_minimal_file_uses_defaults(self, tmp_path):
        cfg = load_config(_write(tmp_path, _MINIMAL))
        assert cfg.league_name == "Leadership League"
        assert cfg.dashboard_port == 8000
        assert cfg.weights == DEFAULT_WEIGHTS
        assert cfg.assist_points == 10
        assert cfg.ritual_max_points == 50

    def test_scoring_block(self, tmp_path):
        cfg = load_config(_write(tmp_path, _MINIMAL + """
scoring:
  weights:
    tasks: 0.5
    fanScore: 0.2
    assists: 0.1
    rituals: 0.1
    consistency: 0.1
  assist_points: 15
  ritual_max_points: 40
"""))
        assert cfg.weights.tasks == 0.5
        assert cfg.weights.fan_score == 0.2
        assert cfg.assist_points == 15
        assert cfg.ritual_max_points == 40

    def test_invalid_weights_rejected_at_load(self, tmp_path):
        path = _write(tmp_path, _MINIMAL + """
scoring:
  weights:
    tasks: 0.9
""")
        with pytest.raises(InvalidWeightsError):
            load_config(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_missing_required_key(self, tmp_path):
        with pytest.raises(KeyError):
            load_config(_write(tmp_path, "league_name: X\n"))

    def test_setting_defaults(self, tmp_path):
        cfg = load_config(_write(tmp_path, _MINIMAL))
        defaults = cfg.setting_defaults()
        assert defaults["scoring.weights.tasks"] == 0.40
        assert defaults["points.assist_points"] == 10
        assert defaults["points.ritual_max_points"] == 50
        assert defaults["points.anonymous_feedback_sender"] == 5
