"""Ad Ops Hub - FastAPI Application.

Campaign log dashboard: chart aggregation, campaign search and entry
submission over the "Weekly log" sheet.
"""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from adops.config import settings
from adops.database import check_connection, init_db
from adops.api.deps import build_cache_backend
from adops.api.dashboard_routes import router as dashboard_router
from adops.scheduler.jobs import start_scheduler, stop_scheduler
from adops.core.logging import get_logger

logger = get_logger("main")

VERSION = "1.0.0"

# No scheduler on serverless platforms
IS_SERVERLESS = bool(
    os.environ.get("VERCEL") or os.environ.get("AWS_LAMBDA_FUNCTION_NAME")
)


def _prepare_storage() -> None:
    """Create the sheet and cache tables when the database is reachable."""
    if not check_connection():
        logger.error("❌ Database unreachable: database sheets and cache are unavailable")
        return
    try:
        init_db()
    except Exception as e:
        logger.error(f"❌ Table creation failed: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        f"🚀 Ad Ops Hub starting ({'serverless' if IS_SERVERLESS else 'local'}); "
        f"sheets={settings.sheet_backend}, cache={settings.cache_backend}"
    )
    _prepare_storage()

    app.state.cache_backend = build_cache_backend()
    app.state.append_locks = {}
    run_jobs = not IS_SERVERLESS
    if run_jobs:
        start_scheduler(app.state.cache_backend)
    yield
    if run_jobs:
        stop_scheduler()
    logger.info("Ad Ops Hub stopped")


app = FastAPI(
    title="Ad Ops Hub",
    description="Campaign log dashboard: cached chart aggregation, campaign search and admin entry submission.",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(dashboard_router)


@app.get("/health", tags=["System"])
async def health_check():
    return {"status": "healthy", "service": "adops-hub", "version": VERSION}
