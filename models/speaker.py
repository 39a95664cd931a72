"""Speaker model"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from core.database import Base
from core.utils import isoformat_or_none, utcnow

# Fields that identify a speaker, directly or indirectly. Anonymous review
# views must never carry any of these.
IDENTITY_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "job_title",
    "company",
    "bio",
    "linkedin_url",
    "github_url",
    "twitter_handle",
    "bluesky_handle",
    "mastodon_handle",
    "profile_image_url",
)


class Speaker(Base):
    """Speaker profile owning CFP submissions. Soft-deactivated, never deleted."""

    __tablename__ = "speakers"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[str | None] = mapped_column(String(100), unique=True, nullable=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False, index=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    job_title: Mapped[str | None] = mapped_column(String(200))
    company: Mapped[str | None] = mapped_column(String(200))
    bio: Mapped[str | None] = mapped_column(Text)
    linkedin_url: Mapped[str | None] = mapped_column(String(500))
    github_url: Mapped[str | None] = mapped_column(String(500))
    twitter_handle: Mapped[str | None] = mapped_column(String(100))
    bluesky_handle: Mapped[str | None] = mapped_column(String(100))
    mastodon_handle: Mapped[str | None] = mapped_column(String(100))
    profile_image_url: Mapped[str | None] = mapped_column(String(500))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    def to_dict(self) -> dict:
        """Convert Speaker to dictionary."""
        data: dict = {"id": str(self.id)}
        for field in IDENTITY_FIELDS:
            data[field] = getattr(self, field)
        data["created_at"] = isoformat_or_none(self.created_at)
        data["updated_at"] = isoformat_or_none(self.updated_at)
        return data
