"""
FastAPI router module for follow-up notes on pending customers.

Key Endpoints:
- GET /branches/{branch}/notes - List stored notes of a branch
- PUT /branches/{branch}/notes - Create or update the note of one customer

Response shapes:
- GET: { notes: [...] }
- PUT: { success: true, ref: "<record id>" }

Clients send back the ref they got from the pending list (or an earlier PUT)
so edits update the existing record.
"""

import logging

from fastapi import APIRouter, HTTPException

from salesboard.core.dependencies import DBSessionDep, SettingsDep
from salesboard.models.schemas import NoteUpsertRequest, NoteUpsertResponse
from salesboard.services.grouping import CustomerIdentity
from salesboard.services.notes import NotesStoreError, list_notes, upsert_note
from salesboard.api.funnel import require_branch


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/branches", tags=["notes"])


@router.get("/{branch}/notes", response_model=dict)
async def get_notes(branch: str, settings: SettingsDep, db: DBSessionDep) -> dict:
    """
    List the follow-up notes stored for a branch.

    Raises:
        HTTPException 404: Unknown branch
        HTTPException 500: Notes store failure
    """
    require_branch(branch, settings)

    try:
        notes = await list_notes(db, branch)
    except Exception as e:
        logger.error(f"Error fetching notes for {branch}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch notes")

    return {"notes": [note.model_dump() for note in notes]}


@router.put("/{branch}/notes", response_model=NoteUpsertResponse)
async def put_note(
    branch: str,
    body: NoteUpsertRequest,
    settings: SettingsDep,
    db: DBSessionDep,
) -> NoteUpsertResponse:
    """
    Save the follow-up note of one customer identity.

    Raises:
        HTTPException 400: Missing phone or name
        HTTPException 404: Unknown branch
        HTTPException 500: Notes store failure
    """
    require_branch(branch, settings)

    phone = body.phone.strip()
    name = body.name.strip()
    if not phone or not name:
        logger.warning(f"PUT /branches/{branch}/notes rejected: missing phone or name")
        raise HTTPException(status_code=400, detail="phone and name are required")

    try:
        ref = await upsert_note(
            db, branch, CustomerIdentity(phone=phone, name=name), body.note, body.ref
        )
    except NotesStoreError as e:
        logger.error(f"Error saving note in {branch}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to save note")

    return NoteUpsertResponse(success=True, ref=ref)
