import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class FamilyUpdate(BaseModel):
    name: str | None = Field(default=None, max_length=100)


class FamilyResponse(BaseModel):
    id: uuid.UUID
    name: str | None = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class MemberResponse(BaseModel):
    id: uuid.UUID
    family_id: uuid.UUID
    user_id: uuid.UUID
    role: str
    label: str | None = None
    joined_at: datetime
    email: str | None = None
    full_name: str | None = None


class MemberLabelUpdate(BaseModel):
    # Free text shown next to the member ("Mom", "Dad"); null clears it
    label: str | None = Field(default=None, max_length=50)
