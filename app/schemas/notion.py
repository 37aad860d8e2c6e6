"""Notion integration schemas."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class OAuthStateResponse(BaseModel):
    state_token: str


class AuthorizeUrlResponse(BaseModel):
    url: str
    state_token: str


class NotionConnectionResponse(BaseModel):
    connected: bool
    workspace_name: str | None = None
    database_id: str | None = None


class NotionConnectionUpdate(BaseModel):
    database_id: str | None = Field(default=None, max_length=64)
    """Page to create entries under; null means the workspace root."""


class SaveToNotionRequest(BaseModel):
    transcript: str = Field(min_length=1)
    audio_url: str | None = None
    children: list[str] = []
    tags: list[str] = []
    sentiment: str | None = None
    duration: int | None = None
    """Recording length in seconds."""
    location: str | None = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SaveToNotionResponse(BaseModel):
    success: bool = True
    page_id: str
    url: str | None = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
