"""
SQL Query Module for the sales conversion backend.

Keeps SQL text out of the service layer. Only the follow-up notes store uses
the database.

Example usage:
    from salesboard.sql import SELECT_NOTES_BY_BRANCH

    rows = await conn.fetch(SELECT_NOTES_BY_BRANCH, branch)
"""

from salesboard.sql.notes_queries import (
    CREATE_NOTES_TABLE,
    SELECT_NOTES_BY_BRANCH,
    UPDATE_NOTE_BY_ID,
    INSERT_NOTE,
)


__all__ = [
    'CREATE_NOTES_TABLE',
    'SELECT_NOTES_BY_BRANCH',
    'UPDATE_NOTE_BY_ID',
    'INSERT_NOTE',
]
