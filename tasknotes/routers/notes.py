from fastapi import APIRouter, HTTPException, status

from tasknotes.api.deps import CallerDep, NoteServiceDep
from tasknotes.models import NoteResponse, NoteUpdate

router = APIRouter(prefix="/notes", tags=["notes"])


@router.put("/{note_id}", response_model=NoteResponse)
async def update_note(
    note_id: int, note_data: NoteUpdate, caller: CallerDep, notes: NoteServiceDep
):
    return await notes.update_note(caller, note_id, note_data)


@router.delete("/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_note(note_id: int, caller: CallerDep, notes: NoteServiceDep):
    """Delete a note"""
    result = await notes.delete_note(caller, note_id)

    if not result:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Note with id {note_id} not found",
        )
