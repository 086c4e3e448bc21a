"""
league.database.engine — Engine, Sessions & the Async Bridge
=============================================================

Database access in the league is synchronous SQLAlchemy.  Async callers
(the FastAPI app, scheduled jobs) hand service functions to :func:`run_db`,
which runs them on a worker thread so the event loop keeps serving.

Usage::

    from league.database.engine import create_db_engine, init_db, run_db

    engine = create_db_engine()              # DATABASE_URL from the env / .env
    init_db(engine, cfg.setting_defaults())  # tables + seeded settings

    snapshot = await run_db(recompute_leader, engine, leader_id)
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import ParamSpec, TypeVar

from sqlalchemy import Engine, create_engine, make_url
from sqlalchemy.orm import Session

from league.database.models import Base

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")

# Pool settings for a server database; a league has a few dozen leaders
# and a handful of concurrent dashboard readers.
_POOL_OPTIONS = {
    "pool_size": 5,
    "max_overflow": 10,
    "pool_pre_ping": True,
    "pool_timeout": 10,
    "pool_recycle": 3600,
}


# ---------------------------------------------------------------------------
# Engine creation
# ---------------------------------------------------------------------------
def create_db_engine(url: str | None = None) -> Engine:
    """Build the league's :class:`Engine`.

    *url* defaults to the ``DATABASE_URL`` environment variable.  SQLite
    URLs (handy for local runs) skip the connection-pool sizing.

    Raises
    ------
    RuntimeError
        If no URL is given and ``DATABASE_URL`` is not set.
    """
    url = url or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError(
            "DATABASE_URL is not set.  "
            "Copy .env.example → .env and point it at the league database."
        )

    parsed = make_url(url)
    options = {} if parsed.get_backend_name() == "sqlite" else _POOL_OPTIONS
    engine = create_engine(parsed, echo=False, **options)
    logger.info("Database engine created → %s", parsed.host or parsed.database)
    return engine


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------
def init_db(engine: Engine, defaults: dict | None = None) -> None:
    """Create missing tables, then seed any missing settings.

    Both steps only add what is absent, so this runs on every startup.
    *defaults* (usually :meth:`LeagueConfig.setting_defaults`) replaces
    the built-in values for keys seeded for the first time.
    """
    Base.metadata.create_all(engine)
    logger.info("League tables verified / created.")

    from league.database.seed import seed_default_settings

    seed_default_settings(engine, defaults)


# ---------------------------------------------------------------------------
# Unit of work
# ---------------------------------------------------------------------------
@contextmanager
def get_session(engine: Engine) -> Iterator[Session]:
    """One transaction: commit when the block finishes, roll back if it raises.

    Objects stay readable after the block (``expire_on_commit=False``)::

        with get_session(engine) as session:
            session.add(Ritual(name="Daily", type="daily", ritual_date=today))
    """
    session = Session(engine, expire_on_commit=False)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# ---------------------------------------------------------------------------
# Async bridge
# ---------------------------------------------------------------------------
async def run_db(func: Callable[P, T], *args: P.args, **kwargs: P.kwargs) -> T:
    """Await a synchronous service call without blocking the event loop."""
    return await asyncio.to_thread(func, *args, **kwargs)
