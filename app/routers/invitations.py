"""Invitations router.

Sending an invitation returns a shareable link; nothing is emailed.  The
invitee opens the link, signs in with the invited address and accepts.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.dependencies import get_current_user
from app.core.rate_limit import limiter
from app.database import get_db
from app.models.family import Family
from app.models.user import User
from app.schemas.invitation import (
    InvitationAccept,
    InvitationAccepted,
    InvitationCreate,
    InvitationCreated,
    InvitationPreview,
    InvitationResponse,
)
from app.services.invitation_service import (
    accept_invitation,
    build_invitation_link,
    create_invitation,
    get_invitation_by_token,
)

router = APIRouter(prefix="/invitations", tags=["Invitations"])


@router.post("", response_model=InvitationCreated)
@limiter.limit("20/minute")
async def send_invitation(
    request: Request,
    body: InvitationCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(get_current_user),
):
    """Invite an email address into the caller's family. Owner or admin only."""
    invitation = await create_invitation(db, current_user, body.email)
    origin = request.headers.get("origin") or settings.FRONTEND_URL
    return InvitationCreated(
        invitation=InvitationResponse.model_validate(invitation),
        invitation_link=build_invitation_link(origin, invitation.token),
    )


@router.post("/accept", response_model=InvitationAccepted)
async def accept(
    body: InvitationAccept,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(get_current_user),
):
    """Join the invitation's family as the authenticated user."""
    await accept_invitation(db, body.token, current_user)
    return InvitationAccepted(message="Successfully joined the family!")


@router.get("/{token}", response_model=InvitationPreview)
async def preview_invitation(
    token: str,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Show who an invitation is for before the invitee signs in."""
    invitation = await get_invitation_by_token(db, token)
    if invitation is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Invalid invitation token",
        )

    # Report lapsed invitations as expired without writing; the status
    # column only changes on an acceptance attempt.
    shown_status = invitation.status
    if shown_status == "pending" and invitation.is_past_expiry:
        shown_status = "expired"

    family = await db.get(Family, invitation.family_id)
    return InvitationPreview(
        family_name=family.name if family else None,
        email=invitation.email,
        status=shown_status,
        expires_at=invitation.expires_at,
    )
