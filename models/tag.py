"""Tag model"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Table, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from core.database import Base
from core.utils import utcnow

submission_tags = Table(
    "submission_tags",
    Base.metadata,
    Column(
        "submission_id",
        Uuid,
        ForeignKey("submissions.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "tag_id",
        Uuid,
        ForeignKey("tags.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    ),
)


def normalize_tag_name(name: str) -> str:
    """Key used for case-insensitive tag uniqueness."""
    return " ".join(name.split()).lower()


class Tag(Base):
    """Topic tag; suggested tags are curated by admins."""

    __tablename__ = "tags"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    name_normalized: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    is_suggested: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "name": self.name,
            "is_suggested": self.is_suggested,
        }
