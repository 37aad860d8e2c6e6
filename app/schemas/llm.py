"""AI Schemas.

Pydantic models for the drawing, summary and behavior analysis endpoints.
Field names are camelCase on the wire.
"""

import uuid

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AnalyzeDrawingRequest(_CamelModel):
    image_url: str = Field(min_length=1)
    child_name: str = Field(min_length=1)
    language: str = "en"


class EmotionalIndicators(BaseModel):
    analysis: str = ""
    tones: list[str] = []


class PersonalityTraits(BaseModel):
    analysis: str = ""
    traits: list[str] = []


class DevelopmentalIndicators(BaseModel):
    analysis: str = ""
    level: str = ""
    """age-appropriate, advanced or developing."""


class CreativityImagination(BaseModel):
    analysis: str = ""
    highlights: list[str] = []


class DrawingAnalysis(BaseModel):
    emotional_indicators: EmotionalIndicators = EmotionalIndicators()
    personality_traits: PersonalityTraits = PersonalityTraits()
    developmental_indicators: DevelopmentalIndicators = DevelopmentalIndicators()
    creativity_imagination: CreativityImagination = CreativityImagination()
    summary: str = ""


class AnalyzeDrawingResponse(BaseModel):
    analysis: DrawingAnalysis


class GenerateSummaryRequest(_CamelModel):
    transcript: str = ""
    language: str = "en"


class GenerateSummaryResponse(BaseModel):
    summary: str
    tags: list[str] = []


class AnalyzeBehaviorRequest(_CamelModel):
    language: str = "en"
    child_id: uuid.UUID | None = None


class ChildSummary(_CamelModel):
    child_name: str
    summary: str


class AnalyzeBehaviorResponse(_CamelModel):
    child_summaries: list[ChildSummary] = []
    top_hashtags: list[str] = []
    encouragement: str = ""
    error: str | None = None
    """Set when there were no notes to analyze (still a 200)."""
