"""
Parameterized SQL for the follow-up notes store.

One row per (branch, phone, customer_name): the identity key of the pending
follow-up list. The row id is the opaque reference handed back to clients so
later edits update the same record.
"""


CREATE_NOTES_TABLE: str = """
    CREATE TABLE IF NOT EXISTS followup_note (
        id UUID PRIMARY KEY,
        branch TEXT NOT NULL,
        phone TEXT NOT NULL,
        customer_name TEXT NOT NULL,
        note TEXT NOT NULL DEFAULT '',
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        UNIQUE (branch, phone, customer_name)
    )
"""


SELECT_NOTES_BY_BRANCH: str = """
    SELECT id, phone, customer_name, note
    FROM followup_note
    WHERE branch = $1
    ORDER BY updated_at DESC
"""


# $1 note, $2 id, $3 branch, $4 phone, $5 customer_name
# A ref that belongs to another identity matches nothing and the caller inserts.
UPDATE_NOTE_BY_ID: str = """
    UPDATE followup_note
    SET note = $1,
        updated_at = now()
    WHERE id = $2
      AND branch = $3
      AND phone = $4
      AND customer_name = $5
    RETURNING id
"""


# $1 id, $2 branch, $3 phone, $4 customer_name, $5 note
# A note written for an identity that already has one updates it in place, so
# two clients without a ref never produce duplicate rows.
INSERT_NOTE: str = """
    INSERT INTO followup_note (id, branch, phone, customer_name, note)
    VALUES ($1, $2, $3, $4, $5)
    ON CONFLICT (branch, phone, customer_name)
    DO UPDATE SET note = EXCLUDED.note, updated_at = now()
    RETURNING id
"""
