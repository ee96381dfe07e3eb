import asyncio
import logging
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy import inspect, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from pokedex_api.models import ORIGIN_CLIENT, ORIGIN_UPSTREAM, Base

logger = logging.getLogger(__name__)


def create_engine(database_url: str) -> AsyncEngine:
    """Async engine for the configured database (asyncpg or aiosqlite)."""
    return create_async_engine(
        database_url,
        echo=False,
    )


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Session factory for getting AsyncSession objects
    return async_sessionmaker(
        engine,
        expire_on_commit=False,
        class_=AsyncSession,
    )


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session (AsyncSession)
    to request handlers.

    Usage in endpoints:
        async def some_endpoint(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with request.app.state.sessionmaker() as session:
        yield session


async def run_migrations(
    engine: AsyncEngine,
    max_retries: int = 10,
    retry_delay: float = 2,
) -> None:
    """
    Idempotent migration with retry logic.

    - Waits for the database to be ready (with exponential backoff)
    - Creates the 'users', 'pokemon' and 'games' tables if they do not exist.
    - Adds the 'origin' column to an older 'pokemon' table.
    """
    for attempt in range(max_retries):
        try:
            async with engine.begin() as conn:
                # Test connection first
                await conn.execute(text("SELECT 1"))
                await conn.run_sync(Base.metadata.create_all)

                # add origin column to pokemon tables created before it existed
                columns = await conn.run_sync(
                    lambda sync_conn: {c["name"] for c in inspect(sync_conn).get_columns("pokemon")}
                )
                if "origin" not in columns:
                    await conn.execute(
                        text(
                            "ALTER TABLE pokemon ADD COLUMN origin VARCHAR "
                            f"NOT NULL DEFAULT '{ORIGIN_CLIENT}'"
                        )
                    )
                    # rows without an owner can only have come from write-back
                    await conn.execute(
                        text("UPDATE pokemon SET origin = :origin WHERE owner_id IS NULL"),
                        {"origin": ORIGIN_UPSTREAM},
                    )

            # Success - migrations completed
            return

        except Exception as e:
            if attempt < max_retries - 1:
                wait_time = min(retry_delay * (2 ** attempt), 30)  # Exponential backoff with max 30 seconds
                logger.warning(
                    "Database not ready (attempt %d/%d), retrying in %ss: %s",
                    attempt + 1, max_retries, wait_time, e,
                )
                await asyncio.sleep(wait_time)
            else:
                logger.error("Failed to connect to database after %d attempts: %s", max_retries, e)
                raise
