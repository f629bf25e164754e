import logging
from typing import Any, Dict

from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .config import get_settings
from .db.monitoring import get_pool_snapshot
from .db.session import get_engine
from .lesson_routes import router as lesson_router
from .logging_config import configure_logging
from .profile_routes import router as profile_router
from .recommendation_routes import router as recommendation_router


configure_logging()
logger = logging.getLogger(__name__)
settings_snapshot = get_settings()

app = FastAPI(title="MathStreak Backend", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings_snapshot.cors_origin_list() or ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(lesson_router)
app.include_router(recommendation_router)
app.include_router(profile_router)

logger.info("Backend starting with database configured: %s", bool(settings_snapshot.database_url))
logger.info("Streak timezone: %s", settings_snapshot.streak_timezone)


@app.get("/healthz")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/healthz/database")
def database_health() -> Dict[str, Any]:
    try:
        engine = get_engine()
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except (RuntimeError, SQLAlchemyError) as exc:
        logger.warning("Database health check failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database is unavailable.",
        ) from exc
    return {"status": "ok", "pool": get_pool_snapshot(engine)}
