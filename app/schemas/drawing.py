import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class DrawingResponse(BaseModel):
    id: uuid.UUID
    family_id: uuid.UUID
    child_id: uuid.UUID
    uploaded_by: uuid.UUID
    image_url: str
    title: str | None = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)
