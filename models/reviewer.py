"""Reviewer model"""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from core.database import Base
from core.utils import isoformat_or_none, utcnow


class ReviewerRole(str, Enum):
    SUPER_ADMIN = "super_admin"
    REVIEWER = "reviewer"
    READONLY = "readonly"


class Reviewer(Base):
    """Review committee member. ``accepted_at`` is null until first login."""

    __tablename__ = "reviewers"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[str | None] = mapped_column(String(100), unique=True, nullable=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False, index=True)
    name: Mapped[str | None] = mapped_column(String(200))
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ReviewerRole.REVIEWER.value
    )
    can_see_speaker_identity: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    invited_by: Mapped[UUID | None] = mapped_column(Uuid, ForeignKey("reviewers.id"))
    invited_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    invite_sent_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    last_invited_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    accepted_at: Mapped[datetime | None] = mapped_column(DateTime)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    @property
    def is_activated(self) -> bool:
        return self.accepted_at is not None and self.is_active

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "can_see_speaker_identity": self.can_see_speaker_identity,
            "invited_at": isoformat_or_none(self.invited_at),
            "invite_sent_count": self.invite_sent_count,
            "accepted_at": isoformat_or_none(self.accepted_at),
            "is_active": self.is_active,
        }
