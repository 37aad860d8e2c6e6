import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class NoteCreate(BaseModel):
    transcript: str | None = None
    summary: str | None = None
    tags: list[str] = []
    children: list[str] = []
    structured_content: dict | None = None
    duration: int | None = Field(default=None, ge=0)
    date: datetime | None = None


class NoteUpdate(BaseModel):
    transcript: str | None = None
    summary: str | None = None
    tags: list[str] | None = None
    children: list[str] | None = None
    structured_content: dict | None = None
    duration: int | None = Field(default=None, ge=0)
    date: datetime | None = None


class NoteResponse(BaseModel):
    id: uuid.UUID
    family_id: uuid.UUID
    user_id: uuid.UUID
    transcript: str | None = None
    summary: str | None = None
    tags: list[str] = []
    children: list[str] = []
    structured_content: dict | None = None
    duration: int | None = None
    date: datetime
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)
