"""
Follow-up Notes Service

Two halves:

- enrich_pending(): a pure left join of stored notes onto the pending
  follow-up list, keyed by customer identity. No funnel logic.
- The notes store: asyncpg reads and upserts against the followup_note table.

A notes store outage must never take the funnel report down with it, so the
report path reads notes through load_notes_or_empty(), which logs and falls
back to an empty map.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import asyncpg
from asyncpg import Connection

from salesboard.core.database import execute_command, get_db_pool
from salesboard.models.schemas import FollowUpNote, PendingFollowUp
from salesboard.services.grouping import CustomerIdentity
from salesboard.sql.notes_queries import (
    CREATE_NOTES_TABLE,
    INSERT_NOTE,
    SELECT_NOTES_BY_BRANCH,
    UPDATE_NOTE_BY_ID,
)

logger = logging.getLogger(__name__)


class NotesStoreError(Exception):
    """Raised when a note cannot be written to the store."""


@dataclass(frozen=True)
class StoredNote:
    """Note text plus the store record id used for later updates."""
    text: str
    ref: Optional[str] = None


NotesByIdentity = Dict[CustomerIdentity, StoredNote]


# =============================================================================
# Enrichment
# =============================================================================

def enrich_pending(
    pending: Sequence[PendingFollowUp],
    notes: Optional[NotesByIdentity],
) -> List[PendingFollowUp]:
    """
    Attach stored notes to pending follow-up rows.

    Rows without a stored note get an empty note and no reference. The input
    rows are not modified.

    Args:
        pending: Pending rows from the funnel report
        notes: Stored notes keyed by identity

    Returns:
        New list of rows with note and note_ref filled in
    """
    notes = notes or {}
    enriched: List[PendingFollowUp] = []

    for row in pending:
        stored = notes.get(CustomerIdentity(phone=row.phone, name=row.name))
        enriched.append(row.model_copy(update={
            "note": stored.text if stored else "",
            "note_ref": stored.ref if stored else None,
        }))

    return enriched


# =============================================================================
# Notes Store
# =============================================================================

async def ensure_notes_schema() -> None:
    """Create the followup_note table when it does not exist yet."""
    await execute_command(CREATE_NOTES_TABLE)


def _record_to_note(record) -> FollowUpNote:
    return FollowUpNote(
        ref=str(record["id"]),
        phone=record["phone"],
        name=record["customer_name"],
        note=record["note"] or "",
    )


async def list_notes(conn: Connection, branch: str) -> List[FollowUpNote]:
    """
    List every stored note of a branch, most recently updated first.

    Raises:
        asyncpg.PostgresError: If the query fails.
    """
    records = await conn.fetch(SELECT_NOTES_BY_BRANCH, branch)
    return [_record_to_note(record) for record in records]


async def fetch_notes(conn: Connection, branch: str) -> NotesByIdentity:
    """
    Read the notes of a branch keyed by customer identity.

    Raises:
        asyncpg.PostgresError: If the query fails.
    """
    notes: NotesByIdentity = {}
    for note in await list_notes(conn, branch):
        identity = CustomerIdentity(phone=note.phone, name=note.name)
        # Rows come newest first; keep the newest per identity
        notes.setdefault(identity, StoredNote(text=note.note, ref=note.ref))
    return notes


def _parse_ref(ref: Optional[str]) -> Optional[uuid.UUID]:
    if not ref:
        return None
    try:
        return uuid.UUID(str(ref))
    except ValueError:
        logger.warning(f"Ignoring malformed note reference: {ref!r}")
        return None


async def upsert_note(
    conn: Connection,
    branch: str,
    identity: CustomerIdentity,
    text: str,
    ref: Optional[str] = None,
) -> str:
    """
    Create or update the note of one customer identity.

    With a reference the existing record is updated, provided it belongs to the
    same identity. Without one (or when the reference no longer exists or
    belongs to another customer) a record is inserted; an existing record for the
    same identity is updated in place instead of duplicated.

    Args:
        conn: Database connection
        branch: Branch id
        identity: Customer identity the note belongs to
        text: Note text
        ref: Record id returned by an earlier upsert, if any

    Returns:
        The record id to send with later updates

    Raises:
        NotesStoreError: If the database rejects the write.
    """
    record_id = _parse_ref(ref)

    try:
        if record_id is not None:
            updated = await conn.fetchval(
                UPDATE_NOTE_BY_ID, text, record_id, branch, identity.phone, identity.name
            )
            if updated is not None:
                logger.info(f"Updated note {updated} for {identity.key} in {branch}")
                return str(updated)
            logger.info(
                f"Note {record_id} not found for {identity.key} in {branch}; inserting a new one"
            )

        inserted = await conn.fetchval(
            INSERT_NOTE, uuid.uuid4(), branch, identity.phone, identity.name, text
        )
    except asyncpg.PostgresError as e:
        raise NotesStoreError(f"Failed to save note for {identity.key}: {e}") from e

    if inserted is None:
        raise NotesStoreError(f"Notes store returned no id for {identity.key}")

    logger.info(f"Saved note {inserted} for {identity.key} in {branch}")
    return str(inserted)


async def load_notes_or_empty(branch: str) -> Tuple[NotesByIdentity, bool]:
    """
    Read a branch's notes for the funnel report, degrading on failure.

    Returns:
        Tuple of (notes keyed by identity, whether the store was readable)
    """
    try:
        pool = await get_db_pool()
        async with pool.acquire() as conn:
            notes = await fetch_notes(conn, branch)
    except Exception as e:
        logger.warning(f"Notes store unavailable for {branch}, continuing without notes: {e}")
        return {}, False

    logger.debug(f"Loaded {len(notes)} notes for {branch}")
    return notes, True
