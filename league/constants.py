"""
league.constants — Shared Constants & Thresholds
=================================================

Single source of truth for scoring thresholds and the performance-category
ladder.  Import from here instead of duplicating in services or the API.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Default score weights (tasks, fan score, assists, rituals, consistency)
# ---------------------------------------------------------------------------
DEFAULT_WEIGHT_TASKS = 0.40
DEFAULT_WEIGHT_FAN_SCORE = 0.25
DEFAULT_WEIGHT_ASSISTS = 0.15
DEFAULT_WEIGHT_RITUALS = 0.15
DEFAULT_WEIGHT_CONSISTENCY = 0.05

WEIGHT_SUM_TOLERANCE = 1e-6

# Fan score is stored 0–10 but combined with point-scaled counters
FAN_SCORE_SCALE = 10
CONSISTENCY_SCALE = 100

# ---------------------------------------------------------------------------
# History windows
# ---------------------------------------------------------------------------
CONSISTENCY_WINDOW = 4
MOMENTUM_WINDOW = 3
MIN_HISTORY_FOR_TREND = 2
MIN_HISTORY_FOR_PREDICTION = 3

# ---------------------------------------------------------------------------
# Trend classification (fixed, not configurable)
# ---------------------------------------------------------------------------
TREND_RISING_THRESHOLD = 10
TREND_FALLING_THRESHOLD = -10

# ---------------------------------------------------------------------------
# Insight rules
# ---------------------------------------------------------------------------
INSIGHT_TASKS_ABOVE = 1.2
INSIGHT_TASKS_BELOW = 0.8
INSIGHT_FAN_SCORE_ABOVE = 1.15
INSIGHT_FAN_SCORE_BELOW = 0.85
INSIGHT_LOW_ASSISTS = 10
INSIGHT_MOMENTUM_HIGH = 20
INSIGHT_MOMENTUM_LOW = -20
INSIGHT_HIGH_CONSISTENCY = 0.8

# ---------------------------------------------------------------------------
# Prediction
# ---------------------------------------------------------------------------
PREDICTION_FALLBACK_CONFIDENCE = 0.3
PREDICTION_MAX_CONFIDENCE = 0.9
PREDICTION_CONFIDENCE_FLOOR = 0.2
PREDICTION_CONSISTENCY_FACTOR = 0.8

# ---------------------------------------------------------------------------
# Performance categories — (min score, label, color, description)
# Ordered highest first; the last entry catches everything below.
# ---------------------------------------------------------------------------
PERFORMANCE_LADDER: list[tuple[int | None, str, str, str]] = [
    (90, "Lendário", "text-accent", "Performance excepcional em todas as áreas"),
    (80, "Elite", "text-primary", "Consistentemente acima das expectativas"),
    (70, "Starter", "text-secondary", "Sólido desempenho com oportunidades de crescimento"),
    (60, "Em Desenvolvimento", "text-muted-foreground", "Bom potencial, precisa focar em áreas-chave"),
    (None, "Atenção Necessária", "text-destructive", "Necessita suporte e ajustes nas prioridades"),
]

# ---------------------------------------------------------------------------
# Collaborator point rules
# ---------------------------------------------------------------------------
DEFAULT_ASSIST_POINTS = 10
DEFAULT_RITUAL_MAX_POINTS = 50
DEFAULT_ANONYMOUS_FEEDBACK_POINTS = 5
RITUAL_ATTENDANCE_WINDOW_DAYS = 30
CHECKIN_BASE_POINTS = 1
CHECKIN_STREAK_BONUS = 2
CHECKIN_STREAK_INTERVAL = 5
CHECKIN_STREAK_LOOKBACK = 30
ENERGY_LEVEL_MIN = 1
ENERGY_LEVEL_MAX = 5
