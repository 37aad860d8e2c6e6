"""Families router.

Endpoints for viewing and renaming a family, listing and labelling its
members, and managing its pending invitations.
"""

import logging
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import require_family_member
from app.core.permissions import Operation, require_capability
from app.database import get_db
from app.models.family import Family, FamilyMember
from app.models.invitation import FamilyInvitation
from app.models.user import User
from app.schemas.family import FamilyResponse, FamilyUpdate, MemberLabelUpdate, MemberResponse
from app.schemas.invitation import InvitationResponse
from app.services.invitation_service import cancel_invitation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/families", tags=["Families"])


def _member_response(member: FamilyMember, user: User | None) -> MemberResponse:
    return MemberResponse(
        id=member.id,
        family_id=member.family_id,
        user_id=member.user_id,
        role=member.role,
        label=member.label,
        joined_at=member.joined_at,
        email=user.email if user else None,
        full_name=user.full_name if user else None,
    )


@router.get("/{family_id}", response_model=FamilyResponse)
async def get_family(
    family_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    membership: FamilyMember = Depends(require_family_member),
):
    """Get family details. Requires the caller to be a family member."""
    result = await db.execute(select(Family).where(Family.id == family_id))
    family = result.scalar_one_or_none()

    if family is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Family not found",
        )

    return family


@router.put("/{family_id}", response_model=FamilyResponse)
async def update_family(
    family_id: uuid.UUID,
    body: FamilyUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    membership: FamilyMember = Depends(require_family_member),
):
    """Rename the family. Requires owner or admin role."""
    require_capability(membership, Operation.UPDATE_FAMILY)

    result = await db.execute(select(Family).where(Family.id == family_id))
    family = result.scalar_one()

    update_data = body.model_dump(exclude_unset=True)
    if "name" in update_data:
        family.name = update_data["name"]

    await db.flush()
    await db.refresh(family)
    return family


@router.get("/{family_id}/members", response_model=list[MemberResponse])
async def list_family_members(
    family_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    membership: FamilyMember = Depends(require_family_member),
):
    """List all members of a family with their profile, oldest first."""
    result = await db.execute(
        select(FamilyMember, User)
        .outerjoin(User, User.id == FamilyMember.user_id)
        .where(FamilyMember.family_id == family_id)
        .order_by(FamilyMember.joined_at, FamilyMember.id)
    )
    return [_member_response(member, user) for member, user in result.all()]


@router.patch("/{family_id}/members/{member_id}", response_model=MemberResponse)
async def set_member_label(
    family_id: uuid.UUID,
    member_id: uuid.UUID,
    body: MemberLabelUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    membership: FamilyMember = Depends(require_family_member),
):
    """Set or clear a member's display label. Requires owner role."""
    require_capability(
        membership,
        Operation.SET_MEMBER_LABEL,
        detail="Only the family owner can edit member labels",
    )

    result = await db.execute(
        select(FamilyMember).where(
            FamilyMember.id == member_id,
            FamilyMember.family_id == family_id,
        )
    )
    member = result.scalar_one_or_none()
    if member is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Member not found",
        )

    label = body.label.strip() if body.label else None
    member.label = label or None
    await db.flush()

    user = await db.get(User, member.user_id)
    return _member_response(member, user)


# ---------------------------------------------------------------------------
# Invitations
# ---------------------------------------------------------------------------

@router.get("/{family_id}/invitations", response_model=list[InvitationResponse])
async def list_invitations(
    family_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    membership: FamilyMember = Depends(require_family_member),
):
    """List pending invitations for a family, newest first."""
    result = await db.execute(
        select(FamilyInvitation).where(
            FamilyInvitation.family_id == family_id,
            FamilyInvitation.status == "pending",
        ).order_by(FamilyInvitation.created_at.desc())
    )
    return result.scalars().all()


@router.post(
    "/{family_id}/invitations/{invitation_id}/cancel",
    response_model=InvitationResponse,
)
async def cancel_family_invitation(
    family_id: uuid.UUID,
    invitation_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    membership: FamilyMember = Depends(require_family_member),
):
    """Cancel a pending invitation. Requires owner or admin role."""
    return await cancel_invitation(db, membership, invitation_id)
