"""
Async PostgreSQL connection pool module for the follow-up notes store.

This module provides an async PostgreSQL connection pool using asyncpg with a
module-level singleton. Only the notes store talks to the database; the funnel
engine itself never does.

Key Components:
- Global connection pool singleton (_pool)
- init_db(): Initialize the connection pool at application startup
- get_db_pool(): Get the pool instance (initializes if needed)
- close_db(): Gracefully close the pool at application shutdown
- execute_command(): Convenience helper for DDL and write statements

Connection Pool Configuration:
- min_size: 1 (minimum idle connections kept in pool)
- max_size: 5 (maximum connections in pool)
- command_timeout: 30 seconds (query timeout)

Usage:
    # At application startup (in FastAPI lifespan)
    await init_db()

    # In services
    await execute_command(CREATE_NOTES_TABLE)

    # At application shutdown
    await close_db()
"""

import asyncpg
from asyncpg import Pool
from typing import Optional, Any

from salesboard.core.config import get_settings


# =============================================================================
# Global Pool Singleton
# =============================================================================

# None until init_db() is called
_pool: Optional[Pool] = None


# =============================================================================
# Pool Lifecycle Functions
# =============================================================================

async def init_db() -> Pool:
    """
    Initialize the database connection pool.

    Idempotent: returns the existing pool when one is already open.

    Returns:
        Pool: The asyncpg connection pool instance.

    Raises:
        asyncpg.PostgresError: If connection to the database fails.
        OSError: If the database host is unreachable.
    """
    global _pool

    if _pool is None:
        settings = get_settings()
        _pool = await asyncpg.create_pool(
            dsn=settings.database_url,
            min_size=1,
            max_size=5,
            command_timeout=30,
        )

    return _pool


async def get_db_pool() -> Pool:
    """
    Get the database connection pool, initializing if needed.

    Returns:
        Pool: The asyncpg connection pool instance.

    Raises:
        asyncpg.PostgresError: If connection to the database fails during lazy init.
    """
    global _pool

    if _pool is None:
        await init_db()

    assert _pool is not None, "Pool should be initialized after init_db()"

    return _pool


async def close_db() -> None:
    """
    Close the database connection pool gracefully.

    Safe to call when the pool was never opened.
    """
    global _pool

    if _pool is not None:
        await _pool.close()
        _pool = None


# =============================================================================
# Query Execution Helpers
# =============================================================================

async def execute_command(query: str, *args: Any) -> str:
    """
    Execute a command (DDL/INSERT/UPDATE/DELETE) and return the status string.

    Returns:
        str: The command status string (e.g., 'CREATE TABLE', 'UPDATE 1').
    """
    pool = await get_db_pool()

    async with pool.acquire() as conn:
        return await conn.execute(query, *args)
