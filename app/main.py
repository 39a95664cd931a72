"""CFP review service application"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from api.routes import admin, reviewer, speaker, submissions, tags
from api.schemas import HealthResponse
from app.exception_handlers import register_exception_handlers
from app.middleware import RequestIDMiddleware, TimingMiddleware
from core.config import get_settings
from core.database import close_db, get_engine, get_session_maker
from core.logging_config import setup_logging
from services.notification_queue import NotificationQueue
from services.submission_store import MAX_TAGS, MIN_TAGS, WORKSHOP_MAX_HOURS, WORKSHOP_MIN_HOURS

settings = get_settings()

setup_logging()
logger = logging.getLogger(__name__)

VERSION = "0.1.0"


async def ping_database() -> None:
    async with get_engine().connect() as conn:
        await conn.execute(text("SELECT 1"))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.app_name} v{VERSION} ({settings.app_env})")
    logger.info(
        f"Submission limit {settings.max_submissions_per_speaker}, "
        f"scores {settings.review_score_min:g}-{settings.review_score_max:g}, "
        f"decision email delay {settings.email_delay_minutes}m"
    )
    if not settings.analytics_webhook_url:
        logger.info("No analytics webhook configured; events are only logged")

    try:
        await ping_database()
        logger.info("Database connection verified on startup")
    except Exception as e:
        logger.error(f"Database connection failed on startup: {e}", exc_info=True)
        raise

    yield

    await close_db()
    logger.info(f"Shutting down {settings.app_name}")


app = FastAPI(
    title=settings.app_name,
    description="Call for Papers submission, review and decision API",
    version=VERSION,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(TimingMiddleware)
app.add_middleware(RequestIDMiddleware)

register_exception_handlers(app)

for module in (speaker, submissions, tags, reviewer, admin):
    app.include_router(module.router)


@app.get("/", tags=["Root"])
async def root():
    return {
        "name": settings.app_name,
        "version": VERSION,
        "status": "running",
        "environment": settings.app_env,
    }


@app.get("/health", tags=["Health"], response_model=HealthResponse)
async def health():
    """
    Database reachability plus the number of notifications already due.

    A growing ``emails_due`` means the delivery worker is not draining the
    queue.
    """
    try:
        await ping_database()
        async with get_session_maker()() as session:
            emails_due = len(await NotificationQueue(session).list_pending())
    except Exception as e:
        logger.error(f"Database health check failed: {e}", exc_info=True)
        return HealthResponse(
            status="unhealthy", database_connected=False, database_error=str(e), version=VERSION
        )

    return HealthResponse(database_connected=True, emails_due=emails_due, version=VERSION)


@app.get("/api", tags=["API"])
async def api_info():
    """Endpoint map and the call-for-papers rules clients need to render forms."""
    return {
        "name": settings.app_name,
        "version": VERSION,
        "endpoints": {
            "health": "/health",
            "docs": "/docs" if settings.debug else "disabled",
            "speaker": "/api/cfp/speaker",
            "submissions": "/api/cfp/submissions",
            "tags": "/api/cfp/tags",
            "reviewer": "/api/cfp/reviewer",
            "admin": "/api/cfp/admin",
        },
        "rules": {
            "max_submissions_per_speaker": settings.max_submissions_per_speaker,
            "review_score_min": settings.review_score_min,
            "review_score_max": settings.review_score_max,
            "tags_per_submission": {"min": MIN_TAGS, "max": MAX_TAGS},
            "workshop_duration_hours": {"min": WORKSHOP_MIN_HOURS, "max": WORKSHOP_MAX_HOURS},
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
