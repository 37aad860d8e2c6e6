"""Notion router.

Connects a user's Notion workspace through OAuth and exports journal
entries as Notion pages.
"""

import logging
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import HTMLResponse
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_current_user
from app.core.rate_limit import limiter
from app.core.security import generate_token
from app.database import get_db
from app.models.notion import NotionToken, OAuthState
from app.models.user import User
from app.schemas.notion import (
    AuthorizeUrlResponse,
    NotionConnectionResponse,
    NotionConnectionUpdate,
    OAuthStateResponse,
    SaveToNotionRequest,
    SaveToNotionResponse,
)
from app.services.notion_service import (
    NotionError,
    build_authorize_url,
    build_blocks,
    build_title,
    create_page,
    error_page,
    exchange_code,
    success_page,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notion", tags=["Notion"])


async def _get_token(db: AsyncSession, user_id) -> NotionToken | None:
    result = await db.execute(select(NotionToken).where(NotionToken.user_id == user_id))
    return result.scalar_one_or_none()


async def _issue_state(db: AsyncSession, user: User) -> OAuthState:
    await db.execute(
        delete(OAuthState).where(
            OAuthState.user_id == user.id,
            OAuthState.expires_at < datetime.now(timezone.utc),
        ).execution_options(synchronize_session="fetch")
    )
    state = OAuthState(user_id=user.id, state_token=generate_token())
    db.add(state)
    await db.flush()
    return state


# ---------------------------------------------------------------------------
# OAuth
# ---------------------------------------------------------------------------

@router.post("/oauth-state", response_model=OAuthStateResponse)
async def generate_oauth_state(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(get_current_user),
):
    """Create a single-use state token for the Notion OAuth redirect."""
    state = await _issue_state(db, current_user)
    return OAuthStateResponse(state_token=state.state_token)


@router.get("/authorize-url", response_model=AuthorizeUrlResponse)
async def get_authorize_url(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(get_current_user),
):
    """Build the Notion consent URL with a fresh state token."""
    state = await _issue_state(db, current_user)
    return AuthorizeUrlResponse(
        url=build_authorize_url(state.state_token),
        state_token=state.state_token,
    )


@router.get("/oauth/callback", response_class=HTMLResponse)
async def notion_oauth_callback(
    db: Annotated[AsyncSession, Depends(get_db)],
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
):
    """Finish the OAuth flow and store the user's Notion token.

    The state token is consumed before anything else so it can never be
    replayed, even when the rest of the callback fails.
    """
    oauth_state = None
    if state:
        result = await db.execute(
            select(OAuthState).where(OAuthState.state_token == state)
        )
        oauth_state = result.scalar_one_or_none()
        if oauth_state is not None:
            await db.delete(oauth_state)
            await db.flush()

    if oauth_state is None or oauth_state.is_expired:
        return HTMLResponse(
            error_page("Invalid or expired state. Please try connecting again."),
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    if error or not code:
        return HTMLResponse(
            error_page(error or "No authorization code provided"),
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    try:
        token_data = await exchange_code(code)
    except NotionError as exc:
        return HTMLResponse(
            error_page(str(exc)),
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    token = await _get_token(db, oauth_state.user_id)
    if token is None:
        token = NotionToken(user_id=oauth_state.user_id, access_token=token_data["access_token"])
        db.add(token)
    else:
        token.access_token = token_data["access_token"]
    token.workspace_id = token_data.get("workspace_id")
    token.workspace_name = token_data.get("workspace_name")
    await db.flush()

    logger.info("Notion token stored for user %s", oauth_state.user_id)
    return HTMLResponse(success_page())


# ---------------------------------------------------------------------------
# Connection
# ---------------------------------------------------------------------------

@router.get("/connection", response_model=NotionConnectionResponse)
async def get_connection(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(get_current_user),
):
    token = await _get_token(db, current_user.id)
    if token is None:
        return NotionConnectionResponse(connected=False)
    return NotionConnectionResponse(
        connected=True,
        workspace_name=token.workspace_name,
        database_id=token.database_id,
    )


@router.put("/connection", response_model=NotionConnectionResponse)
async def update_connection(
    body: NotionConnectionUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(get_current_user),
):
    """Choose the page new entries are created under."""
    token = await _get_token(db, current_user.id)
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No Notion connection found. Please connect to Notion first.",
        )

    token.database_id = (body.database_id or "").strip() or None
    await db.flush()
    return NotionConnectionResponse(
        connected=True,
        workspace_name=token.workspace_name,
        database_id=token.database_id,
    )


@router.delete("/connection", status_code=status.HTTP_204_NO_CONTENT)
async def disconnect(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(get_current_user),
):
    await db.execute(delete(NotionToken).where(NotionToken.user_id == current_user.id))
    return None


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------

@router.post("/pages", response_model=SaveToNotionResponse)
@limiter.limit("20/minute")
async def save_to_notion(
    request: Request,
    body: SaveToNotionRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(get_current_user),
):
    """Export a journal entry as a new Notion page."""
    token = await _get_token(db, current_user.id)
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No Notion connection found. Please connect to Notion first.",
        )

    blocks = build_blocks(
        body.transcript,
        audio_url=body.audio_url,
        tags=body.tags,
        sentiment=body.sentiment,
        duration=body.duration,
        location=body.location,
    )
    try:
        page = await create_page(
            token.access_token,
            token.database_id,
            build_title(body.children),
            blocks,
        )
    except NotionError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        )

    logger.info("Notion page %s created for user %s", page.get("id"), current_user.id)
    return SaveToNotionResponse(page_id=page["id"], url=page.get("url"))
