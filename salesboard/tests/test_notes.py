"""
Test suite for follow-up notes.

Verifies:
1. enrich_pending() is a pure left join keyed by identity
2. fetch_notes() keys store rows by identity and keeps the newest per identity
3. upsert_note() updates by reference only within the same identity and
   falls back to insert
4. Database failures surface as NotesStoreError on writes and degrade to an
   empty map on the report read path
"""

import uuid
from datetime import date
from unittest.mock import AsyncMock, patch

import asyncpg
import pytest

from salesboard.models.schemas import PendingFollowUp
from salesboard.services.grouping import CustomerIdentity
from salesboard.services.notes import (
    NotesStoreError,
    StoredNote,
    enrich_pending,
    ensure_notes_schema,
    fetch_notes,
    list_notes,
    load_notes_or_empty,
    upsert_note,
)
from salesboard.sql.notes_queries import (
    CREATE_NOTES_TABLE,
    INSERT_NOTE,
    SELECT_NOTES_BY_BRANCH,
    UPDATE_NOTE_BY_ID,
)


SOMCHAI = CustomerIdentity('0811111111', 'Somchai')


def pending_row(name: str = 'Somchai', phone: str = '0811111111') -> PendingFollowUp:
    return PendingFollowUp(
        funnel_entry_date=date(2025, 1, 3),
        name=name,
        phone=phone,
        salesperson='Fah',
        interest='Facial',
        service_date='-',
    )


def note_record(name: str, phone: str, note: str, record_id: uuid.UUID = None) -> dict:
    return {
        'id': record_id or uuid.uuid4(),
        'phone': phone,
        'customer_name': name,
        'note': note,
    }


# =============================================================================
# TEST CLASS: Enrichment
# =============================================================================


class TestEnrichPending:
    """Tests for enrich_pending()."""

    def test_attaches_matching_note(self):
        rows = [pending_row()]
        enriched = enrich_pending(rows, {SOMCHAI: StoredNote(text='call after 5pm', ref='r1')})

        assert enriched[0].note == 'call after 5pm'
        assert enriched[0].note_ref == 'r1'

    def test_unmatched_rows_get_empty_note(self):
        enriched = enrich_pending([pending_row(name='Other')], {SOMCHAI: StoredNote(text='x')})
        assert enriched[0].note == ''
        assert enriched[0].note_ref is None

    def test_identity_needs_both_phone_and_name(self):
        notes = {SOMCHAI: StoredNote(text='x')}
        enriched = enrich_pending([pending_row(phone='0899999999')], notes)
        assert enriched[0].note == ''

    def test_input_rows_untouched(self):
        rows = [pending_row()]
        enrich_pending(rows, {SOMCHAI: StoredNote(text='x', ref='r1')})
        assert rows[0].note == ''
        assert rows[0].note_ref is None

    def test_no_notes(self):
        assert enrich_pending([pending_row()], None)[0].note == ''
        assert enrich_pending([], {SOMCHAI: StoredNote(text='x')}) == []


# =============================================================================
# TEST CLASS: Notes Store Reads
# =============================================================================


class TestNotesStoreReads:
    """Tests for list_notes() and fetch_notes()."""

    @pytest.mark.asyncio
    async def test_list_notes(self, mock_conn):
        record_id = uuid.uuid4()
        mock_conn.fetch.return_value = [note_record('Somchai', '0811111111', 'hi', record_id)]

        notes = await list_notes(mock_conn, 'Bangyai')

        mock_conn.fetch.assert_awaited_once_with(SELECT_NOTES_BY_BRANCH, 'Bangyai')
        assert len(notes) == 1
        assert notes[0].ref == str(record_id)
        assert notes[0].name == 'Somchai'
        assert notes[0].note == 'hi'

    @pytest.mark.asyncio
    async def test_null_note_text_reads_as_empty(self, mock_conn):
        mock_conn.fetch.return_value = [note_record('Somchai', '0811111111', None)]
        notes = await list_notes(mock_conn, 'Bangyai')
        assert notes[0].note == ''

    @pytest.mark.asyncio
    async def test_fetch_notes_keeps_newest_per_identity(self, mock_conn):
        newest = uuid.uuid4()
        mock_conn.fetch.return_value = [
            note_record('Somchai', '0811111111', 'newest', newest),
            note_record('Somchai', '0811111111', 'older'),
            note_record('Malee', '0822222222', 'other'),
        ]

        notes = await fetch_notes(mock_conn, 'Bangyai')

        assert notes[SOMCHAI] == StoredNote(text='newest', ref=str(newest))
        assert notes[CustomerIdentity('0822222222', 'Malee')].text == 'other'


# =============================================================================
# TEST CLASS: Notes Store Writes
# =============================================================================


class TestUpsertNote:
    """Tests for upsert_note()."""

    @pytest.mark.asyncio
    async def test_insert_without_ref(self, mock_conn):
        new_id = uuid.uuid4()
        mock_conn.fetchval.return_value = new_id

        ref = await upsert_note(mock_conn, 'Bangyai', SOMCHAI, 'call back')

        assert ref == str(new_id)
        mock_conn.fetchval.assert_awaited_once()
        args = mock_conn.fetchval.await_args.args
        assert args[0] == INSERT_NOTE
        assert isinstance(args[1], uuid.UUID)
        assert args[2:] == ('Bangyai', '0811111111', 'Somchai', 'call back')

    @pytest.mark.asyncio
    async def test_update_with_ref(self, mock_conn):
        existing = uuid.uuid4()
        mock_conn.fetchval.return_value = existing

        ref = await upsert_note(mock_conn, 'Bangyai', SOMCHAI, 'edited', str(existing))

        assert ref == str(existing)
        mock_conn.fetchval.assert_awaited_once_with(
            UPDATE_NOTE_BY_ID, 'edited', existing, 'Bangyai', '0811111111', 'Somchai'
        )

    @pytest.mark.asyncio
    async def test_ref_of_another_customer_inserts_for_this_one(self, mock_conn):
        malee_ref = uuid.uuid4()
        somchai_id = uuid.uuid4()
        # The update is scoped to the identity, so Malee's row does not match
        mock_conn.fetchval.side_effect = [None, somchai_id]

        ref = await upsert_note(mock_conn, 'Bangyai', SOMCHAI, 'for Somchai', str(malee_ref))

        assert ref == str(somchai_id)
        update_call, insert_call = mock_conn.fetchval.await_args_list
        assert update_call.args == (
            UPDATE_NOTE_BY_ID, 'for Somchai', malee_ref, 'Bangyai', '0811111111', 'Somchai'
        )
        assert insert_call.args[0] == INSERT_NOTE
        assert insert_call.args[2:] == ('Bangyai', '0811111111', 'Somchai', 'for Somchai')

    def test_update_is_scoped_to_identity(self):
        assert 'phone = $4' in UPDATE_NOTE_BY_ID
        assert 'customer_name = $5' in UPDATE_NOTE_BY_ID

    @pytest.mark.asyncio
    async def test_missing_ref_falls_back_to_insert(self, mock_conn):
        new_id = uuid.uuid4()
        mock_conn.fetchval.side_effect = [None, new_id]

        ref = await upsert_note(mock_conn, 'Bangyai', SOMCHAI, 'text', str(uuid.uuid4()))

        assert ref == str(new_id)
        assert mock_conn.fetchval.await_count == 2
        assert mock_conn.fetchval.await_args_list[1].args[0] == INSERT_NOTE

    @pytest.mark.asyncio
    async def test_malformed_ref_inserts(self, mock_conn):
        mock_conn.fetchval.return_value = uuid.uuid4()

        await upsert_note(mock_conn, 'Bangyai', SOMCHAI, 'text', 'not-a-uuid')

        mock_conn.fetchval.assert_awaited_once()
        assert mock_conn.fetchval.await_args.args[0] == INSERT_NOTE

    @pytest.mark.asyncio
    async def test_database_error_raises_store_error(self, mock_conn):
        mock_conn.fetchval.side_effect = asyncpg.PostgresError('connection lost')

        with pytest.raises(NotesStoreError):
            await upsert_note(mock_conn, 'Bangyai', SOMCHAI, 'text')

    @pytest.mark.asyncio
    async def test_no_id_returned_raises_store_error(self, mock_conn):
        mock_conn.fetchval.return_value = None

        with pytest.raises(NotesStoreError):
            await upsert_note(mock_conn, 'Bangyai', SOMCHAI, 'text')


# =============================================================================
# TEST CLASS: Schema and Degraded Reads
# =============================================================================


class TestNotesStoreLifecycle:
    """Tests for ensure_notes_schema() and load_notes_or_empty()."""

    @pytest.mark.asyncio
    async def test_ensure_schema(self):
        with patch('salesboard.services.notes.execute_command', new_callable=AsyncMock) as execute:
            await ensure_notes_schema()
        execute.assert_awaited_once_with(CREATE_NOTES_TABLE)

    @pytest.mark.asyncio
    async def test_load_notes(self, mock_db_pool, mock_conn):
        mock_conn.fetch.return_value = [note_record('Somchai', '0811111111', 'hi')]

        with patch('salesboard.services.notes.get_db_pool', new=AsyncMock(return_value=mock_db_pool)):
            notes, available = await load_notes_or_empty('Bangyai')

        assert available is True
        assert notes[SOMCHAI].text == 'hi'

    @pytest.mark.asyncio
    async def test_store_outage_degrades_to_empty(self):
        failing = AsyncMock(side_effect=OSError('database unreachable'))

        with patch('salesboard.services.notes.get_db_pool', new=failing):
            notes, available = await load_notes_or_empty('Bangyai')

        assert notes == {}
        assert available is False

    @pytest.mark.asyncio
    async def test_query_failure_degrades_to_empty(self, mock_db_pool, mock_conn):
        mock_conn.fetch.side_effect = asyncpg.PostgresError('relation does not exist')

        with patch('salesboard.services.notes.get_db_pool', new=AsyncMock(return_value=mock_db_pool)):
            notes, available = await load_notes_or_empty('Bangyai')

        assert notes == {}
        assert available is False
