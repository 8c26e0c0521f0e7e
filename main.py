"""
VideoHub API - Main Application Entry Point.

This module initializes and configures the FastAPI application for the
VideoHub backend: channels, videos, comments, likes, playlists, subscriptions
and tweets. It sets up logging, the database, middleware and routes.

Key Responsibilities:
- Configure and launch the FastAPI application.
- Set up middleware for correlation, error handling, performance logging and
  request validation, and register the exception handlers that turn domain
  errors into response envelopes.
- Mount the API routers under `/api/v1` and serve stored media from
  `MEDIA_ROOT` at `MEDIA_BASE_URL`.
- Manage the application's lifecycle (logging and tables on startup).
"""

import os
from contextlib import asynccontextmanager
from pathlib import Path
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from core.database import create_db_and_tables
from api.comment_endpoints import router as comment_router
from api.dashboard_endpoints import router as dashboard_router
from api.health_router import health_router
from api.like_endpoints import router as like_router
from api.playlist_endpoints import router as playlist_router
from api.subscription_endpoints import router as subscription_router
from api.tweet_endpoints import router as tweet_router
from api.user_endpoints import router as user_router
from api.video_endpoints import router as video_router
from core.logging_config import setup_logging, get_logger
from core.middleware import (
    CorrelationMiddleware,
    ErrorHandlingMiddleware,
    PerformanceMiddleware,
    RequestValidationMiddleware,
    register_exception_handlers,
)

API_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    setup_logging()
    logger = get_logger("main.startup")
    await create_db_and_tables()
    logger.info("Database initialized successfully")

    logger.info("Service startup completed")
    yield

    logger.info("Shutting down VideoHub API")


app = FastAPI(
    title="VideoHub API",
    description="Video-sharing backend: channels, videos, comments, likes, playlists, subscriptions and tweets",
    version="1.0.0",
    lifespan=lifespan,
)

cors_origins = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")
    if origin.strip()
]

# Added in reverse order of execution: CorrelationMiddleware runs first
app.add_middleware(RequestValidationMiddleware)
app.add_middleware(PerformanceMiddleware)
app.add_middleware(ErrorHandlingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(CorrelationMiddleware)

register_exception_handlers(app)

# Health router FIRST (no authentication required for monitoring)
app.include_router(health_router, prefix=API_PREFIX)

for router in (
    user_router,
    video_router,
    comment_router,
    like_router,
    subscription_router,
    playlist_router,
    tweet_router,
    dashboard_router,
):
    app.include_router(router, prefix=API_PREFIX)

media_root = Path(os.getenv("MEDIA_ROOT", "./media"))
media_root.mkdir(parents=True, exist_ok=True)
app.mount(
    os.getenv("MEDIA_BASE_URL", "/media").rstrip("/") or "/media",
    StaticFiles(directory=str(media_root)),
    name="media",
)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("ENVIRONMENT", "development") == "development",
        log_level="info",
    )
