"""LLM Service.

Integration with the Anthropic Claude API for:
- Drawing analysis (Vision)
- Journal entry summaries with behavioral tags
- Behavior pattern analysis across recent notes
"""

import base64
import json
import logging
import re

import anthropic
from fastapi import HTTPException, status

from app.config import settings
from app.services.storage import MEDIA_TYPES, local_path_for_url

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

def _get_client() -> anthropic.AsyncAnthropic:
    """Create an Anthropic client."""
    if not settings.ANTHROPIC_API_KEY:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="AI service is not configured",
        )
    return anthropic.AsyncAnthropic(api_key=settings.ANTHROPIC_API_KEY)


MAX_TOKENS = 1024
SUPPORTED_LANGUAGES = ("en", "ja", "ko")


def _language(language: str | None) -> str:
    return language if language in SUPPORTED_LANGUAGES else "en"


async def _create_message(**kwargs):
    """Call the Messages API, mapping upstream failures to HTTP errors.

    Rate limits become 429 and an exhausted credit balance becomes 402;
    everything else is a 500.
    """
    client = _get_client()
    try:
        return await client.messages.create(
            model=settings.AI_MODEL,
            max_tokens=MAX_TOKENS,
            **kwargs,
        )
    except anthropic.RateLimitError:
        logger.warning("AI rate limit exceeded")
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Rate limit exceeded. Please try again later.",
        )
    except anthropic.APIStatusError as e:
        if e.status_code == 402 or "credit balance" in str(e.message).lower():
            logger.warning("AI credits exhausted")
            raise HTTPException(
                status_code=status.HTTP_402_PAYMENT_REQUIRED,
                detail="AI credits exhausted. Please add funds.",
            )
        logger.error("AI API error %s: %s", e.status_code, e.message)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"AI service error: {e.status_code}",
        )
    except anthropic.APIError as e:
        logger.error("AI request failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="AI service is unavailable",
        )


def _tool_input(response, tool_name: str) -> dict:
    for block in response.content:
        if block.type == "tool_use" and block.name == tool_name:
            return dict(block.input)
    logger.error("AI response contained no %s tool call", tool_name)
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Failed to get structured response from AI",
    )


# ---------------------------------------------------------------------------
# 1. Drawing Analysis (Vision)
# ---------------------------------------------------------------------------

_DRAWING_LANGUAGE = {
    "en": "Respond in English.",
    "ja": "すべての回答は日本語で行ってください。",
    "ko": "모든 답변은 한국어로 해주세요.",
}

_FENCE_RE = re.compile(r"```(?:json)?\s*")


def _drawing_system_prompt(language: str, child_name: str) -> str:
    return (
        "You are a child development specialist who analyzes children's drawings.\n"
        f"{_DRAWING_LANGUAGE[_language(language)]}\n\n"
        f"Analyze this child's drawing for {child_name} and provide a gentle, parent-friendly report.\n"
        "Focus on what the artwork may express about the child's current emotional state, "
        "personality traits, developmental indicators, and creativity.\n\n"
        "Provide insights in the following JSON structure:\n"
        "{\n"
        '  "emotional_indicators": {"analysis": "colors, line strength, shapes, expressions, space usage", '
        '"tones": ["confidence", "joy"]},\n'
        '  "personality_traits": {"analysis": "energy, confidence, attention to detail, imagination", '
        '"traits": ["creative", "expressive"]},\n'
        '  "developmental_indicators": {"analysis": "structure, figures, spatial arrangement, fine motor signs", '
        '"level": "age-appropriate or advanced or developing"},\n'
        '  "creativity_imagination": {"analysis": "originality, storytelling, recurring motifs", '
        '"highlights": ["unique color choices"]},\n'
        '  "summary": "A short encouraging summary (2-3 sentences)"\n'
        "}\n\n"
        "Keep the tone supportive, positive, and non-diagnostic. "
        "Do not give medical or psychological judgments.\n"
        "Return ONLY valid JSON, no markdown or extra text."
    )


def image_source(image_url: str) -> dict:
    """Build the image source block for a drawing URL.

    Images stored by this service are sent inline; anything else is passed
    to the API as a URL.
    """
    path = local_path_for_url(image_url)
    if path is None:
        return {"type": "url", "url": image_url}

    if not path.is_file():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Image not found",
        )
    return {
        "type": "base64",
        "media_type": MEDIA_TYPES.get(path.suffix.lower(), "image/jpeg"),
        "data": base64.standard_b64encode(path.read_bytes()).decode("utf-8"),
    }


def parse_json_text(text: str) -> dict:
    """Parse a JSON object from model output, tolerating markdown fences."""
    cleaned = _FENCE_RE.sub("", text).strip()
    try:
        result = json.loads(cleaned)
    except json.JSONDecodeError:
        logger.warning("LLM returned non-JSON response: %.200s", text)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to parse analysis response",
        )
    if not isinstance(result, dict):
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to parse analysis response",
        )
    return result


async def analyze_drawing(image_url: str, child_name: str, language: str = "en") -> dict:
    """Analyze a child's drawing.

    Returns:
        dict with keys emotional_indicators, personality_traits,
        developmental_indicators, creativity_imagination, summary
    """
    source = image_source(image_url)
    logger.info("Analyzing drawing for %s in %s", child_name, _language(language))

    response = await _create_message(
        system=_drawing_system_prompt(language, child_name),
        messages=[
            {
                "role": "user",
                "content": [
                    {"type": "image", "source": source},
                    {"type": "text", "text": f"Please analyze this drawing by {child_name}."},
                ],
            }
        ],
    )

    text = "".join(block.text for block in response.content if block.type == "text")
    if not text.strip():
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="No content in AI response",
        )
    return parse_json_text(text)


# ---------------------------------------------------------------------------
# 2. Journal Entry Summary
# ---------------------------------------------------------------------------

_SUMMARY_LANGUAGE = {
    "en": "Generate a concise summary in English.",
    "ja": "日本語で簡潔な要約を生成してください。",
    "ko": "한국어로 간결한 요약을 생성하세요.",
}

SUMMARY_TOOL = {
    "name": "analyze_journal_entry",
    "description": (
        "Analyze a parent journal entry about their child and return a summary "
        "with behavioral hashtags"
    ),
    "input_schema": {
        "type": "object",
        "properties": {
            "summary": {
                "type": "string",
                "description": "A concise summary of the journal entry focusing on key insights",
            },
            "tags": {
                "type": "array",
                "items": {"type": "string"},
                "description": (
                    "Behavioral hashtags (3-5 tags) such as creativity, curiosity, "
                    "motor-skills, language-development, social-skills, "
                    "problem-solving, emotional-regulation"
                ),
            },
        },
        "required": ["summary", "tags"],
    },
}


async def generate_summary(transcript: str, language: str = "en") -> dict:
    """Summarize a journal entry.

    Returns:
        dict with keys: summary (str), tags (list[str])
    """
    if not transcript or not transcript.strip():
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Transcript is required",
        )

    system_prompt = (
        "You are a helpful assistant that analyzes parent journal entries about their "
        f"children. {_SUMMARY_LANGUAGE[_language(language)]} Identify key behavioral "
        "patterns and developmental milestones. Create relevant hashtags for "
        "categorization and trend analysis."
    )

    response = await _create_message(
        system=system_prompt,
        messages=[{
            "role": "user",
            "content": (
                "Analyze this journal entry and provide a summary with behavioral "
                f"hashtags:\n\n{transcript}"
            ),
        }],
        tools=[SUMMARY_TOOL],
        tool_choice={"type": "tool", "name": SUMMARY_TOOL["name"]},
    )

    result = _tool_input(response, SUMMARY_TOOL["name"])
    tags = [str(tag).lstrip("#") for tag in result.get("tags") or []]
    return {"summary": str(result.get("summary", "")), "tags": tags}


# ---------------------------------------------------------------------------
# 3. Behavior Pattern Analysis
# ---------------------------------------------------------------------------

_BEHAVIOR_LANGUAGE = {
    "en": "Respond in English",
    "ja": "日本語で回答してください",
    "ko": "한국어로 답변해주세요",
}

BEHAVIOR_TOOL = {
    "name": "analyze_behavior_patterns",
    "description": "Analyze children's behavior patterns from parent journal entries",
    "input_schema": {
        "type": "object",
        "properties": {
            "childSummaries": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "childName": {"type": "string"},
                        "summary": {"type": "string"},
                    },
                    "required": ["childName", "summary"],
                },
                "description": "Summary of each child's behavior patterns",
            },
            "topHashtags": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Top 3 behavioral themes/hashtags",
            },
            "encouragement": {
                "type": "string",
                "description": "One positive sentence for parents to tell their child",
            },
        },
        "required": ["childSummaries", "topHashtags", "encouragement"],
    },
}


def format_notes(notes: list) -> str:
    """Render notes as the plain-text digest sent to the model."""
    entries = []
    for note in notes:
        entries.append(
            f"Date: {note.date}\n"
            f"Children: {', '.join(note.children or []) or 'N/A'}\n"
            f"Summary: {note.summary or note.transcript}\n"
            f"Tags: {', '.join(note.tags or []) or 'N/A'}\n"
        )
    return "\n---\n".join(entries)


async def analyze_behavior(notes: list, language: str = "en") -> dict:
    """Analyze behavior trends across journal entries.

    Args:
        notes: Note rows, newest first
        language: Response language code

    Returns:
        dict with keys: child_summaries (list of {child_name, summary}),
        top_hashtags (list[str]), encouragement (str)
    """
    children: list[str] = []
    for note in notes:
        for name in note.children or []:
            if name not in children:
                children.append(name)

    system_prompt = (
        "You are an AI assistant helping parents understand their children's behavior "
        f"patterns. {_BEHAVIOR_LANGUAGE[_language(language)]}.\n"
        "Analyze the parent's journal entries and provide insights about each child's "
        "behavior trends."
    )
    user_prompt = (
        "Based on these parent journal entries about their children "
        f"({', '.join(children)}), analyze the behavior patterns:\n\n"
        f"{format_notes(notes)}\n\n"
        "Please provide:\n"
        "1. A brief overall summary of each child's behavior patterns (2-3 sentences per child)\n"
        "2. The top 3 most common behavioral themes/hashtags that appear across entries\n"
        "3. One positive, encouraging sentence parents can say to their child to reinforce good behavior"
    )

    response = await _create_message(
        system=system_prompt,
        messages=[{"role": "user", "content": user_prompt}],
        tools=[BEHAVIOR_TOOL],
        tool_choice={"type": "tool", "name": BEHAVIOR_TOOL["name"]},
    )

    result = _tool_input(response, BEHAVIOR_TOOL["name"])
    return {
        "child_summaries": [
            {"child_name": item.get("childName", ""), "summary": item.get("summary", "")}
            for item in result.get("childSummaries") or []
        ],
        "top_hashtags": list(result.get("topHashtags") or []),
        "encouragement": str(result.get("encouragement", "")),
    }
