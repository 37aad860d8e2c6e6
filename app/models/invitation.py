import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import DateTime, ForeignKey, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.config import settings
from app.database import Base

INVITATION_STATUSES = ("pending", "accepted", "expired", "cancelled")
TERMINAL_STATUSES = frozenset({"accepted", "expired", "cancelled"})


def _default_expiry() -> datetime:
    return datetime.now(timezone.utc) + timedelta(days=settings.INVITATION_EXPIRE_DAYS)


class FamilyInvitation(Base):
    __tablename__ = "family_invitations"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    family_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("families.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    invited_by: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    token: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending",
    )  # pending | accepted | expired | cancelled
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_default_expiry,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(),
    )

    # Relationships
    family: Mapped["Family"] = relationship()  # noqa: F821
    inviter: Mapped["User"] = relationship(foreign_keys=[invited_by])  # noqa: F821

    @property
    def is_past_expiry(self) -> bool:
        expires = self.expires_at
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)
        return datetime.now(timezone.utc) > expires

    def __repr__(self) -> str:
        return f"<FamilyInvitation(id={self.id}, email={self.email!r}, status={self.status!r})>"
