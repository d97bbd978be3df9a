"""
FastAPI Application Entry Point.
Initializes the FastAPI app with middleware, CORS, and routes.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ballot.api.v1 import auth, polls, votes
from ballot.config import settings
from ballot.core.cache import RedisCache
from ballot.core.database import Database
from ballot.core.logging import configure_logging
from ballot.core.rate_limit import limiter

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Opens the database and cache handles at startup and closes them at shutdown.
    """
    # Startup
    configure_logging()
    database = Database()
    database.connect()
    cache = RedisCache()
    await cache.connect()
    app.state.database = database
    app.state.cache = cache
    logger.info(f"Ballot server started (environment={settings.environment})")
    yield
    # Shutdown
    await cache.disconnect()
    await database.disconnect()
    logger.info("Ballot server stopped")


# Initialize FastAPI application
app = FastAPI(
    title="Ballot Server",
    description="Polling service with once-per-day voting and cached results",
    version="1.0.0",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan,
)

# Add rate limiter state and error handler
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# CORS Middleware
cors_origins = settings.get_allowed_origins_list()
logger.info(f"CORS allowed origins: {cors_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Health Check Endpoints
@app.get("/health", tags=["Health"])
async def health_check():
    """Basic health check endpoint."""
    return JSONResponse(
        status_code=200,
        content={
            "status": "healthy",
            "environment": settings.environment,
        }
    )


@app.get("/health/ready", tags=["Health"])
async def readiness_check(request: Request):
    """
    Readiness check endpoint.
    Verifies database and cache connectivity. The cache is optional, so a
    missing cache degrades the report but not readiness.
    """
    checks = {
        "database": False,
        "redis": "not_configured" if not settings.redis_url else False,
    }

    database: Database = request.app.state.database
    try:
        async with database.session() as session:
            await session.execute(text("SELECT 1"))
            checks["database"] = True
    except (SQLAlchemyError, OSError, RuntimeError) as e:
        logger.warning(f"Readiness database check failed: {e}")

    if settings.redis_url:
        checks["redis"] = await request.app.state.cache.ping()

    ready = checks["database"]
    return JSONResponse(
        status_code=200 if ready else 503,
        content={
            "status": "ready" if ready else "not ready",
            "checks": checks,
        }
    )


# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "message": "Ballot Server API",
        "version": "1.0.0",
        "docs": "/docs" if settings.debug else "Documentation disabled in production",
    }


# Include API routers
app.include_router(
    auth.router,
    prefix="/api/v1/auth",
    tags=["Authentication"]
)

app.include_router(
    polls.router,
    prefix="/api/v1/polls",
    tags=["Polls"]
)

app.include_router(
    votes.router,
    prefix="/api/v1/votes",
    tags=["Votes"]
)
