import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class InvitationCreate(BaseModel):
    # Checked in the service so a missing or malformed address is a 400
    email: str = ""


class InvitationResponse(BaseModel):
    id: uuid.UUID
    family_id: uuid.UUID
    invited_by: uuid.UUID
    email: str
    token: str
    status: str
    expires_at: datetime
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InvitationCreated(BaseModel):
    success: bool = True
    invitation: InvitationResponse
    invitation_link: str

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class InvitationAccept(BaseModel):
    token: str = ""


class InvitationAccepted(BaseModel):
    success: bool = True
    message: str


class InvitationPreview(BaseModel):
    """Public view of an invitation, shown on the accept page before login."""

    family_name: str | None = None
    email: str
    status: str
    expires_at: datetime
