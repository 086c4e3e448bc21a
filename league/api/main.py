"""
league.api.main — FastAPI application entry point
====================================================

Run with::

    uvicorn league.api.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

from league import __version__  # noqa: E402
from league.api.deps import get_config, get_engine  # noqa: E402
from league.api.routes.public import router as public_router  # noqa: E402
from league.database.engine import init_db  # noqa: E402

logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from env.

    Priority:
      1) CORS_ALLOW_ORIGINS (comma-separated)
      2) FRONTEND_URL (single origin)
    """
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if raw:
        return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]

    frontend_url = os.getenv("FRONTEND_URL", "").strip()
    if frontend_url:
        return [frontend_url.rstrip("/")]

    return []


def _setting_defaults() -> dict | None:
    """Seed values from config.yaml, or None to use the built-in defaults."""
    try:
        return get_config().setting_defaults()
    except FileNotFoundError:
        logger.warning("config.yaml not found; seeding built-in scoring defaults")
        return None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle — create tables and seed settings."""
    engine = get_engine()
    init_db(engine, _setting_defaults())
    logger.info("League API started — engine ready (%s)", engine.url.database)
    yield
    logger.info("League API shutting down")


app = FastAPI(
    title="Leadership League API",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)

app.include_router(public_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}
