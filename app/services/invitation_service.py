"""Invitation Service.

Issue, cancel and accept family invitations.

An invitation moves ``pending -> accepted | expired | cancelled`` exactly
once.  Every status write below is a conditional UPDATE on
``status = 'pending'``, so a token that has left ``pending`` can never be
consumed again, even by two requests racing each other.
"""

import logging
import re
import uuid

from fastapi import HTTPException, status
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from app.core.dependencies import find_membership
from app.core.permissions import Operation, require_capability
from app.core.security import generate_token
from app.models.family import FamilyMember
from app.models.invitation import FamilyInvitation
from app.models.user import User

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MAX_EMAIL_LENGTH = 255


def build_invitation_link(origin: str, token: str) -> str:
    return f"{origin.rstrip('/')}/accept-invitation?token={token}"


async def _transition(
    db: AsyncSession, invitation: FamilyInvitation, new_status: str
) -> bool:
    """Move a pending invitation to ``new_status``.

    Returns False when another request already moved it out of pending.
    """
    result = await db.execute(
        update(FamilyInvitation)
        .where(
            FamilyInvitation.id == invitation.id,
            FamilyInvitation.status == "pending",
        )
        .values(status=new_status)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 1:
        set_committed_value(invitation, "status", new_status)
        return True
    return False


async def create_invitation(
    db: AsyncSession, user: User, email: str
) -> FamilyInvitation:
    """Create a pending invitation from ``user``'s family to ``email``."""
    email = email.strip()
    if not email:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email is required",
        )
    if len(email) > MAX_EMAIL_LENGTH or not EMAIL_RE.match(email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid email format",
        )

    membership = await find_membership(db, user.id)
    if membership is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No family found for user",
        )

    require_capability(
        membership,
        Operation.INVITE_MEMBER,
        detail="Only family owners or admins can send invitations",
    )

    if email.lower() == user.email.lower():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot invite yourself",
        )

    existing_member = await db.execute(
        select(FamilyMember.id)
        .join(User, User.id == FamilyMember.user_id)
        .where(
            FamilyMember.family_id == membership.family_id,
            func.lower(User.email) == email.lower(),
        )
    )
    if existing_member.first() is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User is already a member of this family",
        )

    existing_invitation = await db.execute(
        select(FamilyInvitation.id).where(
            FamilyInvitation.family_id == membership.family_id,
            func.lower(FamilyInvitation.email) == email.lower(),
            FamilyInvitation.status == "pending",
        )
    )
    if existing_invitation.first() is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="An invitation has already been sent to this email",
        )

    invitation = FamilyInvitation(
        family_id=membership.family_id,
        invited_by=user.id,
        email=email,
        token=generate_token(),
        status="pending",
    )
    db.add(invitation)
    await db.flush()
    await db.refresh(invitation)

    logger.info(
        "Invitation %s created for family %s by user %s",
        invitation.id, invitation.family_id, user.id,
    )
    return invitation


async def cancel_invitation(
    db: AsyncSession, membership: FamilyMember, invitation_id: uuid.UUID
) -> FamilyInvitation:
    """Cancel a pending invitation of the caller's family.

    Cancelling an already cancelled invitation is a no-op.  Accepted or
    expired invitations cannot be cancelled.
    """
    require_capability(
        membership,
        Operation.CANCEL_INVITATION,
        detail="Only family owners or admins can cancel invitations",
    )

    result = await db.execute(
        select(FamilyInvitation).where(
            FamilyInvitation.id == invitation_id,
            FamilyInvitation.family_id == membership.family_id,
        )
    )
    invitation = result.scalar_one_or_none()
    if invitation is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Invitation not found",
        )

    if invitation.status == "cancelled":
        return invitation

    if not await _transition(db, invitation, "cancelled"):
        await db.refresh(invitation)
        if invitation.status != "cancelled":
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invitation is already {invitation.status}",
            )

    logger.info("Invitation %s cancelled by user %s", invitation.id, membership.user_id)
    return invitation


async def get_invitation_by_token(
    db: AsyncSession, token: str
) -> FamilyInvitation | None:
    result = await db.execute(
        select(FamilyInvitation).where(FamilyInvitation.token == token)
    )
    return result.scalar_one_or_none()


async def accept_invitation(
    db: AsyncSession, token: str, user: User
) -> FamilyMember:
    """Redeem ``token`` for ``user`` and return the new membership.

    The membership insert and the ``accepted`` transition happen in the
    caller's transaction; if the transition loses a race the whole request
    is rolled back.
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Token is required",
        )

    invitation = await get_invitation_by_token(db, token)
    if invitation is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Invalid invitation token",
        )

    if invitation.status == "accepted":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="This invitation has already been accepted",
        )

    if invitation.status == "expired" or invitation.is_past_expiry:
        # Lazy expiry: only a pending row is moved, terminal states stay put.
        # Committed here because the error response rolls the session back.
        if await _transition(db, invitation, "expired"):
            await db.commit()
            logger.info("Invitation %s expired", invitation.id)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="This invitation has expired",
        )

    if invitation.status == "cancelled":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="This invitation has been cancelled",
        )

    if invitation.email.lower() != (user.email or "").lower():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This invitation was sent to a different email address",
        )

    existing = await find_membership(db, user.id)
    if existing is not None:
        if existing.family_id == invitation.family_id:
            if await _transition(db, invitation, "accepted"):
                await db.commit()
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You are already a member of this family",
            )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You are already a member of another family. Please leave first.",
        )

    if not await _transition(db, invitation, "accepted"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="This invitation has already been accepted",
        )

    member = FamilyMember(
        family_id=invitation.family_id,
        user_id=user.id,
        role="member",
    )
    db.add(member)
    await db.flush()

    logger.info(
        "Invitation %s accepted: user %s joined family %s",
        invitation.id, user.id, invitation.family_id,
    )
    return member
