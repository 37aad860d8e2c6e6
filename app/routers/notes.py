"""Notes router.

Journal entries shared within a family.  Every member can write and read
entries; editing or deleting someone else's entry needs owner or admin.
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import require_family_member
from app.core.permissions import Operation, require_capability
from app.database import get_db
from app.models.family import FamilyMember
from app.models.note import Note
from app.schemas.note import NoteCreate, NoteResponse, NoteUpdate

router = APIRouter(prefix="/families/{family_id}/notes", tags=["Notes"])

_NOT_NULL_FIELDS = {"tags", "children", "date"}


async def list_family_notes(
    db: AsyncSession,
    family_id: uuid.UUID,
    child: str | None = None,
    limit: int = 50,
) -> list[Note]:
    """Newest notes of a family, optionally only those mentioning ``child``."""
    query = (
        select(Note)
        .where(Note.family_id == family_id)
        .order_by(Note.date.desc(), Note.created_at.desc())
    )
    if child is None:
        result = await db.execute(query.limit(limit))
        return list(result.scalars().all())

    # Child names live in a portable array column; filter in Python so the
    # same query runs on PostgreSQL and SQLite.
    wanted = child.strip().lower()
    notes: list[Note] = []
    for note in (await db.execute(query)).scalars():
        if any(name.lower() == wanted for name in note.children or []):
            notes.append(note)
            if len(notes) >= limit:
                break
    return notes


async def _get_note(db: AsyncSession, family_id: uuid.UUID, note_id: uuid.UUID) -> Note:
    result = await db.execute(
        select(Note).where(Note.id == note_id, Note.family_id == family_id)
    )
    note = result.scalar_one_or_none()
    if note is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Note not found",
        )
    return note


def _check_can_modify(membership: FamilyMember, note: Note) -> None:
    if note.user_id == membership.user_id:
        require_capability(membership, Operation.WRITE_NOTES)
    else:
        require_capability(
            membership,
            Operation.MODERATE_NOTES,
            detail="Only the author, an owner or an admin can change this note",
        )


@router.get("/", response_model=list[NoteResponse])
async def list_notes(
    family_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    membership: FamilyMember = Depends(require_family_member),
    child: str | None = Query(default=None, description="Only notes mentioning this child"),
    limit: int = Query(default=50, ge=1, le=200),
):
    """List journal entries, newest first."""
    return await list_family_notes(db, family_id, child=child, limit=limit)


@router.post("/", response_model=NoteResponse, status_code=status.HTTP_201_CREATED)
async def create_note(
    family_id: uuid.UUID,
    body: NoteCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    membership: FamilyMember = Depends(require_family_member),
):
    """Record a journal entry."""
    require_capability(membership, Operation.WRITE_NOTES)

    data = body.model_dump(exclude_none=True)
    note = Note(family_id=family_id, user_id=membership.user_id, **data)
    db.add(note)
    await db.flush()
    await db.refresh(note)
    return note


@router.get("/{note_id}", response_model=NoteResponse)
async def get_note(
    family_id: uuid.UUID,
    note_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    membership: FamilyMember = Depends(require_family_member),
):
    return await _get_note(db, family_id, note_id)


@router.put("/{note_id}", response_model=NoteResponse)
async def update_note(
    family_id: uuid.UUID,
    note_id: uuid.UUID,
    body: NoteUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    membership: FamilyMember = Depends(require_family_member),
):
    """Edit a journal entry."""
    note = await _get_note(db, family_id, note_id)
    _check_can_modify(membership, note)

    for field, value in body.model_dump(exclude_unset=True).items():
        if field in _NOT_NULL_FIELDS and value is None:
            continue
        setattr(note, field, value)

    await db.flush()
    await db.refresh(note)
    return note


@router.delete("/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_note(
    family_id: uuid.UUID,
    note_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    membership: FamilyMember = Depends(require_family_member),
):
    note = await _get_note(db, family_id, note_id)
    _check_can_modify(membership, note)

    await db.delete(note)
    await db.flush()
    return None
