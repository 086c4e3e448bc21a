"""
League — Leadership League Scoring Engine
==========================================
Turns the raw counters a leader accumulates (task points, fan score, peer
assists, ritual attendance) into a single overall score, trend, momentum,
rank change and natural-language insights.  The engine is a pure function
library; everything around it persists counters and writes the derived
values back.

Package layout::

    league/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Thresholds + performance-category ladder
    ├── engine/
    │   ├── models.py      # LeaderSnapshot, ScoreHistory, ScoreWeights, Insight
    │   ├── scoring.py     # Overall / consistency / momentum / trend / rank
    │   ├── insights.py    # Rule-based insight pipeline
    │   └── points.py      # Ritual, check-in and VAR point rules
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   ├── models.py      # ORM models
    │   └── seed.py        # Default settings seeder
    ├── services/          # Read snapshot → run engine → write back
    └── api/
        ├── main.py        # FastAPI app
        └── routes/        # Read-only public endpoints
"""

__version__ = "0.1.0"
