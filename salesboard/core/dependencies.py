"""
FastAPI dependency injection module for the sales conversion backend.

Provides reusable dependencies for configuration access and database sessions,
so route handlers stay decoupled from infrastructure and tests can swap them
through `app.dependency_overrides`.

Key Dependencies Provided:
- get_db_session: Async generator yielding database connections from the pool
- get_settings_dependency: Returns the cached Settings singleton
- SettingsDep: Type alias for injecting Settings into endpoints
- DBSessionDep: Type alias for injecting database connections into endpoints

Usage:
    @router.get("/branches")
    async def list_branches(settings: SettingsDep) -> List[BranchInfo]:
        ...
"""

from typing import AsyncGenerator, Annotated

from fastapi import Depends
from asyncpg import Connection

from salesboard.core.config import Settings, get_settings
from salesboard.core.database import get_db_pool


# =============================================================================
# Database Session Dependency
# =============================================================================

async def get_db_session() -> AsyncGenerator[Connection, None]:
    """
    Yield an async database connection from the pool.

    The connection is released back to the pool when the endpoint completes,
    whether or not it raised.

    Yields:
        asyncpg.Connection: An active database connection from the pool.
    """
    pool = await get_db_pool()
    async with pool.acquire() as connection:
        yield connection


# =============================================================================
# Settings Dependency
# =============================================================================

def get_settings_dependency() -> Settings:
    """
    Return the Settings singleton instance.

    Thin wrapper around get_settings() so tests can do:

        app.dependency_overrides[get_settings_dependency] = lambda: test_settings
    """
    return get_settings()


# =============================================================================
# Type Aliases for Dependency Injection
# =============================================================================

SettingsDep = Annotated[Settings, Depends(get_settings_dependency)]

DBSessionDep = Annotated[Connection, Depends(get_db_session)]
