import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ProfileResponse(BaseModel):
    id: uuid.UUID
    email: str
    full_name: str | None = None
    avatar_url: str | None = None
    language: str = "en"
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class ProfileUpdate(BaseModel):
    full_name: str | None = Field(default=None, max_length=100)
    avatar_url: str | None = None
    language: str | None = Field(default=None, max_length=5)


class MeResponse(ProfileResponse):
    family_id: uuid.UUID | None = None
    role: str | None = None
