"""Review model"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Float, ForeignKey, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from core.database import Base
from core.utils import isoformat_or_none, utcnow

SCORE_FIELDS = (
    "score_overall",
    "score_relevance",
    "score_technical_depth",
    "score_clarity",
    "score_diversity",
)


class Review(Base):
    """One reviewer's scores for one submission"""

    __tablename__ = "reviews"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    submission_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("submissions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    reviewer_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("reviewers.id"),
        nullable=False,
        index=True,
    )
    score_overall: Mapped[float | None] = mapped_column(Float)
    score_relevance: Mapped[float | None] = mapped_column(Float)
    score_technical_depth: Mapped[float | None] = mapped_column(Float)
    score_clarity: Mapped[float | None] = mapped_column(Float)
    score_diversity: Mapped[float | None] = mapped_column(Float)
    private_notes: Mapped[str | None] = mapped_column(Text)
    feedback_to_speaker: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("submission_id", "reviewer_id", name="uq_reviews_submission_reviewer"),
    )

    def to_dict(self) -> dict:
        data = {
            "id": str(self.id),
            "submission_id": str(self.submission_id),
            "reviewer_id": str(self.reviewer_id),
        }
        for field in SCORE_FIELDS:
            data[field] = getattr(self, field)
        data["private_notes"] = self.private_notes
        data["feedback_to_speaker"] = self.feedback_to_speaker
        data["created_at"] = isoformat_or_none(self.created_at)
        data["updated_at"] = isoformat_or_none(self.updated_at)
        return data
