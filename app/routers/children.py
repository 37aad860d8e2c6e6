"""Children router.

Endpoints for managing the children of a family.  Any family member may
add, edit or remove a child.
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import require_family_member
from app.core.permissions import Operation, require_capability
from app.database import get_db
from app.models.child import Child
from app.models.drawing import Drawing
from app.models.family import FamilyMember
from app.schemas.child import ChildCreate, ChildResponse, ChildUpdate
from app.services.storage import delete_image

router = APIRouter(prefix="/families/{family_id}/children", tags=["Children"])


async def get_family_child(
    db: AsyncSession, family_id: uuid.UUID, child_id: uuid.UUID
) -> Child:
    """Load a child of the family or raise 404."""
    result = await db.execute(
        select(Child).where(
            Child.id == child_id,
            Child.family_id == family_id,
        )
    )
    child = result.scalar_one_or_none()

    if child is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Child not found",
        )

    return child


@router.get("/", response_model=list[ChildResponse])
async def list_children(
    family_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    membership: FamilyMember = Depends(require_family_member),
):
    """List all children in a family."""
    result = await db.execute(
        select(Child).where(Child.family_id == family_id).order_by(Child.name)
    )
    return result.scalars().all()


@router.post("/", response_model=ChildResponse, status_code=status.HTTP_201_CREATED)
async def create_child(
    family_id: uuid.UUID,
    body: ChildCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    membership: FamilyMember = Depends(require_family_member),
):
    """Add a child to the family."""
    require_capability(membership, Operation.MANAGE_CHILDREN)

    child = Child(
        family_id=family_id,
        created_by=membership.user_id,
        **body.model_dump(),
    )
    db.add(child)
    await db.flush()
    await db.refresh(child)
    return child


@router.get("/{child_id}", response_model=ChildResponse)
async def get_child(
    family_id: uuid.UUID,
    child_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    membership: FamilyMember = Depends(require_family_member),
):
    """Get details of a specific child."""
    return await get_family_child(db, family_id, child_id)


@router.put("/{child_id}", response_model=ChildResponse)
async def update_child(
    family_id: uuid.UUID,
    child_id: uuid.UUID,
    body: ChildUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    membership: FamilyMember = Depends(require_family_member),
):
    """Update a child's information."""
    require_capability(membership, Operation.MANAGE_CHILDREN)
    child = await get_family_child(db, family_id, child_id)

    update_data = body.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        if field in ("name", "birthdate") and value is None:
            continue
        setattr(child, field, value)

    await db.flush()
    await db.refresh(child)
    return child


@router.delete("/{child_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_child(
    family_id: uuid.UUID,
    child_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    membership: FamilyMember = Depends(require_family_member),
):
    """Remove a child (and their drawings) from the family."""
    require_capability(membership, Operation.MANAGE_CHILDREN)
    child = await get_family_child(db, family_id, child_id)

    drawings = await db.execute(select(Drawing).where(Drawing.child_id == child.id))
    for drawing in drawings.scalars().all():
        delete_image(drawing.image_url)
        await db.delete(drawing)

    await db.delete(child)
    await db.flush()
    return None
