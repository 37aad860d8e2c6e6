from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import decode_token
from app.database import get_db

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


async def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Extract and validate the JWT from the Authorization header.

    Returns the User ORM instance for the authenticated user.

    Raises:
        HTTPException 401: If the token is missing, invalid, or the user
            does not exist.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_token(token)
        user_id: str | None = payload.get("sub")
        token_type: str | None = payload.get("type")
        if user_id is None or token_type != "access":
            raise credentials_exception
        user_uuid = UUID(user_id)
    except (JWTError, ValueError):
        raise credentials_exception

    # Import here to avoid circular imports (models -> database -> dependencies)
    from app.models.user import User

    result = await db.execute(select(User).where(User.id == user_uuid))
    user = result.scalar_one_or_none()

    if user is None:
        raise credentials_exception

    return user


async def find_membership(db: AsyncSession, user_id: UUID):
    """Return the user's FamilyMember row, or None if they have no family."""
    from app.models.family import FamilyMember

    result = await db.execute(
        select(FamilyMember)
        .where(FamilyMember.user_id == user_id)
        .order_by(FamilyMember.joined_at)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_current_membership(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user=Depends(get_current_user),
):
    """Dependency returning the caller's family membership.

    Raises:
        HTTPException 404: If the user does not belong to any family.
    """
    membership = await find_membership(db, current_user.id)
    if membership is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No family found for user",
        )
    return membership


async def require_family_member(
    family_id: UUID,
    membership=Depends(get_current_membership),
):
    """Dependency checking that the caller belongs to the family in the path.

    Usage::

        @router.get("/families/{family_id}/notes")
        async def list_notes(
            family_id: UUID,
            membership=Depends(require_family_member),
        ):
            ...

    Raises:
        HTTPException 403: If the path family is not the caller's family.
    """
    if membership.family_id != family_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not a member of this family",
        )
    return membership
