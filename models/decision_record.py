"""Decision audit models"""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from core.database import Base
from core.utils import isoformat_or_none, utcnow


class Decision(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class DecisionRecord(Base):
    """Append-only record of an accept/reject decision"""

    __tablename__ = "decision_records"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    submission_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("submissions.id", ondelete="CASCADE"),
        nullable=False,
    )
    decision: Mapped[str] = mapped_column(String(20), nullable=False)
    previous_status: Mapped[str] = mapped_column(String(20), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)
    decided_by: Mapped[str] = mapped_column(String(200), nullable=False)
    decided_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    # Per-submission position; decided_at can tie, this cannot
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        Index("ix_decision_records_submission_time", "submission_id", "decided_at"),
        UniqueConstraint(
            "submission_id", "sequence", name="uq_decision_records_submission_sequence"
        ),
    )

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "submission_id": str(self.submission_id),
            "decision": self.decision,
            "previous_status": self.previous_status,
            "notes": self.notes,
            "decided_by": self.decided_by,
            "decided_at": isoformat_or_none(self.decided_at),
            "sequence": self.sequence,
        }


class StatusOverride(Base):
    """Append-only record of an admin free-form status change"""

    __tablename__ = "status_overrides"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    submission_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("submissions.id", ondelete="CASCADE"),
        nullable=False,
    )
    previous_status: Mapped[str] = mapped_column(String(20), nullable=False)
    new_status: Mapped[str] = mapped_column(String(20), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    changed_by: Mapped[str] = mapped_column(String(200), nullable=False)
    changed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_status_overrides_submission_time", "submission_id", "changed_at"),
    )

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "submission_id": str(self.submission_id),
            "previous_status": self.previous_status,
            "new_status": self.new_status,
            "reason": self.reason,
            "changed_by": self.changed_by,
            "changed_at": isoformat_or_none(self.changed_at),
        }
