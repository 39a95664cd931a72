"""Submission model"""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base
from core.utils import isoformat_or_none, utcnow
from models.tag import Tag, submission_tags


class SubmissionStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    SHORTLISTED = "shortlisted"
    WAITLISTED = "waitlisted"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"


class SubmissionType(str, Enum):
    LIGHTNING = "lightning"
    STANDARD = "standard"
    WORKSHOP = "workshop"


class TalkLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


# Statuses in which reviewers may score a submission
REVIEWABLE_STATUSES = (
    SubmissionStatus.SUBMITTED,
    SubmissionStatus.UNDER_REVIEW,
    SubmissionStatus.SHORTLISTED,
    SubmissionStatus.WAITLISTED,
)

# Statuses visible to reviewers at all
REVIEW_VISIBLE_STATUSES = REVIEWABLE_STATUSES + (
    SubmissionStatus.ACCEPTED,
    SubmissionStatus.REJECTED,
)

DECIDED_STATUSES = (SubmissionStatus.ACCEPTED, SubmissionStatus.REJECTED)


class Submission(Base):
    """Talk or workshop proposal"""

    __tablename__ = "submissions"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    speaker_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("speakers.id"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    abstract: Mapped[str] = mapped_column(Text, nullable=False)
    submission_type: Mapped[str] = mapped_column(String(20), nullable=False)
    talk_level: Mapped[str] = mapped_column(String(20), nullable=False)
    outline: Mapped[str | None] = mapped_column(Text)
    additional_notes: Mapped[str | None] = mapped_column(Text)
    slides_url: Mapped[str | None] = mapped_column(String(500))
    previous_recording_url: Mapped[str | None] = mapped_column(String(500))
    workshop_duration_hours: Mapped[int | None] = mapped_column(Integer)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SubmissionStatus.DRAFT.value, index=True
    )
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime)
    withdrawn_at: Mapped[datetime | None] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    tags: Mapped[list[Tag]] = relationship(
        Tag,
        secondary=submission_tags,
        lazy="selectin",
        order_by=Tag.name,
    )

    __table_args__ = (Index("ix_submissions_speaker_status", "speaker_id", "status"),)

    def to_dict(self) -> dict:
        """Convert Submission to dictionary."""
        return {
            "id": str(self.id),
            "speaker_id": str(self.speaker_id),
            "title": self.title,
            "abstract": self.abstract,
            "submission_type": self.submission_type,
            "talk_level": self.talk_level,
            "outline": self.outline,
            "additional_notes": self.additional_notes,
            "slides_url": self.slides_url,
            "previous_recording_url": self.previous_recording_url,
            "workshop_duration_hours": self.workshop_duration_hours,
            "tags": [tag.to_dict() for tag in self.tags],
            "status": self.status,
            "submitted_at": isoformat_or_none(self.submitted_at),
            "withdrawn_at": isoformat_or_none(self.withdrawn_at),
            "created_at": isoformat_or_none(self.created_at),
            "updated_at": isoformat_or_none(self.updated_at),
        }
