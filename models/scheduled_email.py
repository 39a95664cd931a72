"""Scheduled email model"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from core.database import Base
from core.utils import isoformat_or_none, utcnow


class ScheduledEmail(Base):
    """
    A notification intent awaiting external delivery.

    Pending means ``sent_at`` and ``cancelled_at`` are both null. The delivery
    worker pulls pending rows whose ``fire_at`` has passed and reports back
    with mark-sent or a failure, which leaves the row pending.
    """

    __tablename__ = "scheduled_emails"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    submission_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("submissions.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    template: Mapped[str] = mapped_column(String(100), nullable=False)
    recipient: Mapped[str] = mapped_column(String(320), nullable=False)
    fire_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    personal_message: Mapped[str | None] = mapped_column(Text)
    scheduled_by: Mapped[str | None] = mapped_column(String(200))
    sent_at: Mapped[datetime | None] = mapped_column(DateTime)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime)
    cancelled_by: Mapped[str | None] = mapped_column(String(200))
    attempt_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_error: Mapped[str | None] = mapped_column(Text)
    last_attempt_at: Mapped[datetime | None] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (Index("ix_scheduled_emails_pending", "sent_at", "cancelled_at", "fire_at"),)

    @property
    def is_pending(self) -> bool:
        return self.sent_at is None and self.cancelled_at is None

    @property
    def state(self) -> str:
        if self.sent_at is not None:
            return "sent"
        if self.cancelled_at is not None:
            return "cancelled"
        return "pending"

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "submission_id": str(self.submission_id) if self.submission_id else None,
            "template": self.template,
            "recipient": self.recipient,
            "fire_at": isoformat_or_none(self.fire_at),
            "payload": self.payload,
            "personal_message": self.personal_message,
            "scheduled_by": self.scheduled_by,
            "state": self.state,
            "sent_at": isoformat_or_none(self.sent_at),
            "cancelled_at": isoformat_or_none(self.cancelled_at),
            "cancelled_by": self.cancelled_by,
            "attempt_count": self.attempt_count,
            "last_error": self.last_error,
            "last_attempt_at": isoformat_or_none(self.last_attempt_at),
            "created_at": isoformat_or_none(self.created_at),
        }
