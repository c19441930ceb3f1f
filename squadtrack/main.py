"""
Main FastAPI application for the SquadTrack match lifecycle and growth API.
"""
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text

from squadtrack.core.circuit_breaker import get_breaker_state
from squadtrack.core.config import settings
from squadtrack.core.database import SessionLocal, init_db
from squadtrack.core.exceptions import SquadTrackError
from squadtrack.core.logging import configure_logging, get_correlation_id, get_logger
from squadtrack.core.middleware import CorrelationIdMiddleware
from squadtrack.core.rate_limit import limiter
from squadtrack.api.routes import seasons, matches, lineups, match_stats, feedback, growth

# Load environment variables from .env file
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

configure_logging(level=settings.LOG_LEVEL, json_output=settings.LOG_JSON)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan events."""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    init_db()
    logger.info("Application started")

    yield

    logger.info("Shutting down application")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Seasons, matches, lineups, match stats, reflection-gated feedback and player growth tracking",
    lifespan=lifespan,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Correlation ids must be bound before anything else logs
app.add_middleware(CorrelationIdMiddleware)

# Prometheus instrumentation must be set up before routes are added
instrumentator = Instrumentator()
instrumentator.instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API v1 - every router carries its own resource prefix
app.include_router(seasons.router, prefix="/api/v1")
app.include_router(matches.router, prefix="/api/v1")
app.include_router(lineups.router, prefix="/api/v1")
app.include_router(match_stats.router, prefix="/api/v1")
app.include_router(feedback.router, prefix="/api/v1")
app.include_router(growth.router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "endpoints": {
            "api_version": "v1",
            "seasons": "/api/v1/seasons",
            "matches": "/api/v1/matches",
            "lineups": "/api/v1/lineups",
            "match_stats": "/api/v1/match-stats",
            "feedback": "/api/v1/feedback",
            "growth": "/api/v1/players/{player_id}/growth",
            "docs": "/docs",
            "health": "/health",
        },
    }


@app.get("/health")
@limiter.limit("120/minute")
async def health_check(request: Request):
    """Health check with database connectivity and breaker state."""
    status = {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "components": {"ai_suggestions_breaker": get_breaker_state()},
    }
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        status["components"]["database"] = "connected"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        status["components"]["database"] = "unhealthy"
        status["status"] = "degraded"
    finally:
        db.close()

    return JSONResponse(status_code=200 if status["status"] == "healthy" else 503, content=status)


# Exception handlers
@app.exception_handler(SquadTrackError)
async def domain_exception_handler(request: Request, exc: SquadTrackError):
    """Render domain errors as {"error", "message", "details"}."""
    if exc.status_code >= 500:
        logger.error(f"{exc.error_code}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.error_code}", extra={"details": exc.details})
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(TimeoutError)
async def lock_timeout_handler(request: Request, exc: TimeoutError):
    """A keyed lock was not acquired in time; the client may retry."""
    logger.warning(f"Lock timeout on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=503,
        content={"error": "busy", "message": "Resource is busy, retry shortly", "details": {}},
        headers={"Retry-After": "1"},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.exception(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={"error": "internal_error", "message": "Internal server error",
                 "details": {"correlation_id": get_correlation_id()}},
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "squadtrack.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
