import uuid
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field


class ChildCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    birthdate: date
    photo_url: str | None = None
    photo_emoji: str | None = Field(default=None, max_length=16)


class ChildUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    birthdate: date | None = None
    photo_url: str | None = None
    photo_emoji: str | None = Field(default=None, max_length=16)


class ChildResponse(BaseModel):
    id: uuid.UUID
    family_id: uuid.UUID
    name: str
    birthdate: date
    photo_url: str | None = None
    photo_emoji: str | None = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)
