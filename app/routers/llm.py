"""LLM router.

Endpoints for AI-powered features: drawing analysis, journal entry
summaries and behavior pattern analysis.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_current_membership, get_current_user
from app.core.rate_limit import limiter
from app.database import get_db
from app.models.family import FamilyMember
from app.models.user import User
from app.routers.children import get_family_child
from app.routers.notes import list_family_notes
from app.schemas.llm import (
    AnalyzeBehaviorRequest,
    AnalyzeBehaviorResponse,
    AnalyzeDrawingRequest,
    AnalyzeDrawingResponse,
    DrawingAnalysis,
    GenerateSummaryRequest,
    GenerateSummaryResponse,
)
from app.services.llm_service import analyze_behavior, analyze_drawing, generate_summary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai", tags=["LLM / AI"])

BEHAVIOR_NOTE_LIMIT = 50


# ---------------------------------------------------------------------------
# 1. Drawing Analysis
# ---------------------------------------------------------------------------

@router.post("/analyze-drawing", response_model=AnalyzeDrawingResponse)
@limiter.limit("10/minute")
async def analyze_drawing_endpoint(
    request: Request,
    body: AnalyzeDrawingRequest,
    current_user: User = Depends(get_current_user),
):
    """Analyze a child's drawing with AI vision."""
    result = await analyze_drawing(body.image_url, body.child_name, body.language)
    try:
        analysis = DrawingAnalysis.model_validate(result)
    except ValidationError:
        logger.warning("Drawing analysis did not match the expected structure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to parse analysis response",
        )
    return AnalyzeDrawingResponse(analysis=analysis)


# ---------------------------------------------------------------------------
# 2. Journal Entry Summary
# ---------------------------------------------------------------------------

@router.post("/generate-summary", response_model=GenerateSummaryResponse)
@limiter.limit("20/minute")
async def generate_summary_endpoint(
    request: Request,
    body: GenerateSummaryRequest,
    current_user: User = Depends(get_current_user),
):
    """Summarize a transcript and suggest behavioral tags."""
    result = await generate_summary(body.transcript, body.language)
    return GenerateSummaryResponse(**result)


# ---------------------------------------------------------------------------
# 3. Behavior Analysis
# ---------------------------------------------------------------------------

@router.post("/analyze-behavior", response_model=AnalyzeBehaviorResponse)
@limiter.limit("5/minute")
async def analyze_behavior_endpoint(
    request: Request,
    body: AnalyzeBehaviorRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    membership: FamilyMember = Depends(get_current_membership),
):
    """Analyze behavior trends across the family's most recent notes."""
    child_name = None
    if body.child_id is not None:
        child = await get_family_child(db, membership.family_id, body.child_id)
        child_name = child.name

    notes = await list_family_notes(
        db, membership.family_id, child=child_name, limit=BEHAVIOR_NOTE_LIMIT,
    )
    if not notes:
        return AnalyzeBehaviorResponse(error="No notes found")

    result = await analyze_behavior(notes, body.language)
    return AnalyzeBehaviorResponse(**result)
