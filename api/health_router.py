"""
Health Router.

Public, unauthenticated health check for load balancers and uptime monitors. The
database is pinged on every call; a failed ping reports `degraded` with a 503
rather than raising.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_database_info, get_session
from core.logging_config import get_logger
from core.response import ok

logger = get_logger(__name__)

SERVICE_NAME = "VideoHub API"
SERVICE_VERSION = "1.0.0"

health_router = APIRouter(tags=["Health"])


@health_router.get("/healthcheck")
async def health_check(session: AsyncSession = Depends(get_session)):
    """Basic health check endpoint (no authentication required)"""
    logger.debug("Health check requested")
    database = await get_database_info(session)
    healthy = database["connection_healthy"]

    return ok(
        {
            "status": "healthy" if healthy else "degraded",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": SERVICE_VERSION,
            "service": SERVICE_NAME,
            "database": database,
        },
        "Service is healthy." if healthy else "Database is unreachable.",
        status_code=200 if healthy else 503,
    )
