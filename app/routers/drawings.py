"""Drawings router.

Children's drawings are uploaded as images, stored locally and listed per
family.  Deleting a drawing removes its stored file as well.
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import require_family_member
from app.core.permissions import Operation, require_capability
from app.database import get_db
from app.models.drawing import Drawing
from app.models.family import FamilyMember
from app.routers.children import get_family_child
from app.schemas.drawing import DrawingResponse
from app.services.storage import delete_image, save_image

router = APIRouter(prefix="/families/{family_id}/drawings", tags=["Drawings"])


@router.get("/", response_model=list[DrawingResponse])
async def list_drawings(
    family_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    membership: FamilyMember = Depends(require_family_member),
    child_id: uuid.UUID | None = None,
):
    """List drawings of the family, newest first."""
    query = select(Drawing).where(Drawing.family_id == family_id)
    if child_id is not None:
        query = query.where(Drawing.child_id == child_id)
    result = await db.execute(query.order_by(Drawing.created_at.desc()))
    return result.scalars().all()


@router.post("/", response_model=DrawingResponse, status_code=status.HTTP_201_CREATED)
async def upload_drawing(
    family_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    child_id: uuid.UUID = Form(...),
    file: UploadFile = File(...),
    title: str | None = Form(default=None),
    membership: FamilyMember = Depends(require_family_member),
):
    """Upload a drawing for one of the family's children."""
    require_capability(membership, Operation.MANAGE_DRAWINGS)
    child = await get_family_child(db, family_id, child_id)

    image_url = await save_image(file)
    drawing = Drawing(
        family_id=family_id,
        child_id=child.id,
        uploaded_by=membership.user_id,
        image_url=image_url,
        title=title.strip() if title and title.strip() else None,
    )
    db.add(drawing)
    await db.flush()
    await db.refresh(drawing)
    return drawing


@router.delete("/{drawing_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_drawing(
    family_id: uuid.UUID,
    drawing_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    membership: FamilyMember = Depends(require_family_member),
):
    require_capability(membership, Operation.MANAGE_DRAWINGS)
    result = await db.execute(
        select(Drawing).where(Drawing.id == drawing_id, Drawing.family_id == family_id)
    )
    drawing = result.scalar_one_or_none()
    if drawing is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Drawing not found",
        )

    delete_image(drawing.image_url)
    await db.delete(drawing)
    await db.flush()
    return None
