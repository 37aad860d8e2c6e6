"""SQLAlchemy ORM models.

All models are imported here so that Alembic can discover them
via ``Base.metadata`` when generating migrations.
"""

from app.models.child import Child  # noqa: F401
from app.models.drawing import Drawing  # noqa: F401
from app.models.family import Family, FamilyMember  # noqa: F401
from app.models.invitation import FamilyInvitation  # noqa: F401
from app.models.note import Note  # noqa: F401
from app.models.notion import NotionToken, OAuthState  # noqa: F401
from app.models.user import RefreshToken, User  # noqa: F401

__all__ = [
    "Child",
    "Drawing",
    "Family",
    "FamilyInvitation",
    "FamilyMember",
    "Note",
    "NotionToken",
    "OAuthState",
    "RefreshToken",
    "User",
]
