"""
Database Management and Configuration.

This module is responsible for setting up and managing the asynchronous database
connection for the VideoHub API. It uses SQLAlchemy with `asyncio` support and
SQLModel for data modeling.

Key Components:
- `engine`: The core SQLAlchemy async engine, configured from the
  `DATABASE_URL` environment variable. It supports SQLite (development and
  tests) and PostgreSQL (production).
- `async_session`: An asynchronous session factory.
- `create_db_and_tables`: A startup function that creates all tables from the
  SQLModel metadata.
- `get_session`: A dependency that yields one session per request.
- `get_database_info`: Diagnostic information used by the health endpoint.

Architectural Design:
- In-memory SQLite URLs use a `StaticPool` so every session shares the single
  connection that holds the data.
- Dependency Injection: `get_session` is consumed through FastAPI's dependency
  system and can be overridden in tests.
"""

import os
import logging
from typing import Optional
from sqlmodel import SQLModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy.pool import AsyncAdaptedQueuePool, StaticPool

# Get database URL from environment variable
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./videohub.db")

logger = logging.getLogger(__name__)


def build_engine(database_url: str) -> AsyncEngine:
    """Create an async engine suited to the database type"""
    if database_url.startswith("sqlite"):
        in_memory = database_url.rstrip("/").endswith(":memory:") or database_url.endswith("://")
        return create_async_engine(
            database_url,
            connect_args={"check_same_thread": False},
            echo=False,  # Set to True for SQL debugging
            poolclass=StaticPool if in_memory else AsyncAdaptedQueuePool,
        )

    # PostgreSQL configuration with asyncpg
    return create_async_engine(
        database_url,
        poolclass=AsyncAdaptedQueuePool,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,  # Validate connections before use
        echo=False,
    )


engine = build_engine(DATABASE_URL)

# Create async session factory
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_db_and_tables(target_engine: AsyncEngine = None):
    """
    Initialize the database and create all tables.
    Called during application startup.
    """
    # Register table metadata before create_all
    from core import models  # noqa: F401

    target_engine = target_engine or engine
    try:
        async with target_engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
        logger.info("VideoHub database tables created successfully")
    except Exception as e:
        logger.error(f"Failed to create VideoHub database tables: {e}")
        raise


async def get_session():
    """
    Get an async database session for dependency injection.
    """
    async with async_session() as session:
        yield session


async def get_database_info(session: Optional[AsyncSession] = None):
    """
    Get basic database information for health checks.
    """
    try:
        if session is not None:
            await session.execute(text("SELECT 1"))
        else:
            async with async_session() as own_session:
                await own_session.execute(text("SELECT 1"))
        connection_healthy = True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        connection_healthy = False

    return {
        "connection_healthy": connection_healthy,
        "database_type": "postgresql" if "postgresql" in DATABASE_URL else "sqlite",
    }
