"""
Core infrastructure package for the sales conversion backend.

Provides:
- Configuration management via pydantic-settings
- Async PostgreSQL connectivity via asyncpg (follow-up notes store)
- FastAPI dependency injection utilities

Re-exports the key components so callers can write:

    from salesboard.core import get_settings, get_db_pool, SettingsDep
"""

from salesboard.core.config import Settings, get_settings

from salesboard.core.database import init_db, close_db, get_db_pool, execute_command

from salesboard.core.dependencies import (
    get_db_session,
    get_settings_dependency,
    SettingsDep,
    DBSessionDep,
)


__all__ = [
    # Configuration management
    'Settings',
    'get_settings',
    # Database pool lifecycle
    'init_db',
    'close_db',
    'get_db_pool',
    'execute_command',
    # FastAPI dependency injection
    'get_db_session',
    'get_settings_dependency',
    'SettingsDep',
    'DBSessionDep',
]
