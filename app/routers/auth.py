"""Authentication router.

Endpoints for registration, login, token refresh, logout and the
caller's own profile.
"""

import hashlib
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from jose import JWTError
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.dependencies import find_membership, get_current_user
from app.core.rate_limit import limiter
from app.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    get_password_hash,
    verify_password,
)
from app.database import get_db
from app.models.family import Family, FamilyMember
from app.models.user import RefreshToken, User
from app.schemas.auth import LoginRequest, RefreshRequest, RegisterRequest, TokenResponse
from app.schemas.user import MeResponse, ProfileUpdate
from app.services.invitation_service import get_invitation_by_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


def _hash_token(token: str) -> str:
    """Return the SHA-256 hex digest of a raw token string."""
    return hashlib.sha256(token.encode()).hexdigest()


async def _create_tokens_for_user(
    db: AsyncSession, user: User
) -> TokenResponse:
    """Create an access + refresh token pair and persist the refresh token."""
    access_token = create_access_token(data={"sub": str(user.id)})
    raw_refresh = create_refresh_token(data={"sub": str(user.id)})

    refresh_record = RefreshToken(
        user_id=user.id,
        token_hash=_hash_token(raw_refresh),
        expires_at=datetime.now(timezone.utc)
        + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )
    db.add(refresh_record)
    await db.flush()

    return TokenResponse(
        access_token=access_token,
        refresh_token=raw_refresh,
    )


async def _me(db: AsyncSession, user: User) -> MeResponse:
    membership = await find_membership(db, user.id)
    return MeResponse(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        avatar_url=user.avatar_url,
        language=user.language,
        created_at=user.created_at,
        family_id=membership.family_id if membership else None,
        role=membership.role if membership else None,
    )


@router.post("/register", response_model=TokenResponse)
async def register(
    body: RegisterRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Register a parent.

    A new family is created with the user as its owner unless the
    registration comes from a pending invitation addressed to this email.
    """
    existing = await db.execute(
        select(User).where(func.lower(User.email) == body.email.lower())
    )
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered",
        )

    user = User(
        email=body.email,
        password_hash=get_password_hash(body.password),
        full_name=body.full_name,
        language=body.language,
    )
    db.add(user)
    await db.flush()

    if not await _joins_by_invitation(db, body):
        family = Family(name=body.family_name or _default_family_name(user))
        db.add(family)
        await db.flush()
        db.add(FamilyMember(family_id=family.id, user_id=user.id, role="owner"))
        await db.flush()
        logger.info("User %s registered with new family %s", user.id, family.id)
    else:
        logger.info("User %s registered from an invitation link", user.id)

    await db.refresh(user)
    return await _create_tokens_for_user(db, user)


async def _joins_by_invitation(db: AsyncSession, body: RegisterRequest) -> bool:
    """True when ``body`` carries a pending, unexpired invitation for its email."""
    if not body.invitation_token:
        return False
    invitation = await get_invitation_by_token(db, body.invitation_token)
    return (
        invitation is not None
        and invitation.status == "pending"
        and not invitation.is_past_expiry
        and invitation.email.lower() == body.email.lower()
    )


def _default_family_name(user: User) -> str:
    if user.full_name:
        return f"{user.full_name}'s Family"
    return "My Family"


@router.post("/login", response_model=TokenResponse)
@limiter.limit("10/minute")
async def login(
    request: Request,
    body: LoginRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Authenticate with email + password and return tokens."""
    result = await db.execute(
        select(User).where(func.lower(User.email) == body.email.strip().lower())
    )
    user = result.scalar_one_or_none()

    if user is None or not verify_password(body.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    return await _create_tokens_for_user(db, user)


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    body: RefreshRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Exchange a valid refresh token for a new token pair (rotation)."""
    try:
        payload = decode_token(body.refresh_token)
        user_id = payload.get("sub")
        token_type = payload.get("type")
        if user_id is None or token_type != "refresh":
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid refresh token",
            )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token",
        )

    result = await db.execute(
        select(RefreshToken).where(
            RefreshToken.token_hash == _hash_token(body.refresh_token),
            RefreshToken.revoked == False,  # noqa: E712
        )
    )
    stored_token = result.scalar_one_or_none()

    if stored_token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token not found or already revoked",
        )

    expires = stored_token.expires_at
    if expires.tzinfo is None:
        expires = expires.replace(tzinfo=timezone.utc)
    if expires < datetime.now(timezone.utc):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token expired",
        )

    stored_token.revoked = True
    await db.flush()

    user_result = await db.execute(
        select(User).where(User.id == uuid.UUID(user_id))
    )
    user = user_result.scalar_one_or_none()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    return await _create_tokens_for_user(db, user)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    body: RefreshRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Revoke the provided refresh token.  Always 204."""
    result = await db.execute(
        select(RefreshToken).where(
            RefreshToken.token_hash == _hash_token(body.refresh_token),
            RefreshToken.revoked == False,  # noqa: E712
        )
    )
    stored_token = result.scalar_one_or_none()

    if stored_token is not None:
        stored_token.revoked = True
        await db.flush()

    return None


@router.get("/me", response_model=MeResponse)
async def get_me(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(get_current_user),
):
    """Return the caller's profile and family membership."""
    return await _me(db, current_user)


@router.put("/me", response_model=MeResponse)
async def update_me(
    body: ProfileUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(get_current_user),
):
    """Update the caller's display name, avatar or language."""
    for field, value in body.model_dump(exclude_unset=True).items():
        if field == "language" and value is None:
            continue
        setattr(current_user, field, value)

    await db.flush()
    await db.refresh(current_user)
    return await _me(db, current_user)
