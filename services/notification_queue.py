"""Scheduled notification queue.

Durable, poll-only handoff to the external delivery worker. Nothing here
sends email; the worker pulls pending entries, delivers them and reports
back with ``mark_sent`` or ``record_failure``.
"""

import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import InvalidTransition, NotFound, ValidationFailed
from core.utils import is_blank, normalize_email, to_naive_utc, utcnow
from models.scheduled_email import ScheduledEmail

logger = logging.getLogger(__name__)

MAX_ERROR_LENGTH = 2000


class NotificationQueue:
    """Service for recording and draining notification intents."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, email_id: UUID, for_update: bool = False) -> ScheduledEmail:
        stmt = select(ScheduledEmail).where(ScheduledEmail.id == email_id)
        if for_update:
            stmt = stmt.with_for_update()
        email = (await self.session.execute(stmt)).scalar_one_or_none()
        if email is None:
            raise NotFound("Scheduled email not found")
        return email

    async def schedule(
        self,
        submission_id: UUID | None,
        template: str,
        recipient: str,
        fire_at: datetime,
        payload: dict[str, Any] | None = None,
        personal_message: str | None = None,
        scheduled_by: str | None = None,
    ) -> ScheduledEmail:
        """
        Record a notification intent.

        Args:
            submission_id: Related submission, if any
            template: Template key understood by the delivery worker
            recipient: Email address
            fire_at: Earliest delivery time; aware values are converted to UTC
            payload: Template variables
            personal_message: Optional note from the admin
            scheduled_by: Admin identity

        Returns:
            The pending ScheduledEmail
        """
        errors = {}
        if is_blank(template):
            errors["template"] = "must not be blank"
        if is_blank(recipient) or "@" not in recipient:
            errors["recipient"] = "must be an email address"
        if errors:
            raise ValidationFailed("Cannot schedule email", fields=errors)

        email = ScheduledEmail(
            submission_id=submission_id,
            template=template,
            recipient=normalize_email(recipient),
            fire_at=to_naive_utc(fire_at),
            payload=payload or {},
            personal_message=personal_message,
            scheduled_by=scheduled_by,
        )
        self.session.add(email)
        await self.session.flush()

        logger.info(
            f"Scheduled '{template}' email {email.id} for {email.recipient} at {email.fire_at}"
        )
        return email

    async def find_pending(self, submission_id: UUID, template: str) -> ScheduledEmail | None:
        result = await self.session.execute(
            select(ScheduledEmail)
            .where(
                ScheduledEmail.submission_id == submission_id,
                ScheduledEmail.template == template,
                ScheduledEmail.sent_at.is_(None),
                ScheduledEmail.cancelled_at.is_(None),
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def cancel(self, email_id: UUID, cancelled_by: str | None = None) -> ScheduledEmail:
        """Cancel a pending entry; already sent or cancelled entries are left as they are."""
        email = await self.get(email_id, for_update=True)
        if not email.is_pending:
            logger.info(f"Cancel of email {email_id} ignored; already {email.state}")
            return email

        email.cancelled_at = utcnow()
        email.cancelled_by = cancelled_by
        await self.session.flush()

        logger.info(f"Cancelled scheduled email {email_id}")
        return email

    async def list_pending(
        self,
        before: datetime | None = None,
        limit: int | None = None,
    ) -> list[ScheduledEmail]:
        """Entries due for delivery at ``before`` (default: now), oldest first."""
        cutoff = to_naive_utc(before) if before is not None else utcnow()
        stmt = (
            select(ScheduledEmail)
            .where(
                ScheduledEmail.sent_at.is_(None),
                ScheduledEmail.cancelled_at.is_(None),
                ScheduledEmail.fire_at <= cutoff,
            )
            .order_by(ScheduledEmail.fire_at, ScheduledEmail.id)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def mark_sent(self, email_id: UUID) -> ScheduledEmail:
        """
        Record successful delivery. Repeated calls keep the first ``sent_at``.

        Raises:
            InvalidTransition: the entry was cancelled
        """
        email = await self.get(email_id, for_update=True)
        if email.sent_at is not None:
            return email
        if email.cancelled_at is not None:
            raise InvalidTransition(
                "Cancelled emails cannot be marked as sent",
                details={"state": email.state},
            )

        email.sent_at = utcnow()
        email.last_attempt_at = email.sent_at
        email.attempt_count += 1
        await self.session.flush()

        logger.info(f"Email {email_id} marked as sent")
        return email

    async def record_failure(self, email_id: UUID, error: str) -> ScheduledEmail:
        """Record a failed delivery attempt; the entry stays pending for retry."""
        email = await self.get(email_id, for_update=True)
        if not email.is_pending:
            raise InvalidTransition(
                f"Cannot record a failure for a {email.state} email",
                details={"state": email.state},
            )

        email.attempt_count += 1
        email.last_error = (error or "unknown error")[:MAX_ERROR_LENGTH]
        email.last_attempt_at = utcnow()
        await self.session.flush()

        logger.warning(
            f"Delivery of email {email_id} failed (attempt {email.attempt_count}): {email.last_error}"
        )
        return email

    async def list_for_submission(self, submission_id: UUID) -> list[ScheduledEmail]:
        result = await self.session.execute(
            select(ScheduledEmail)
            .where(ScheduledEmail.submission_id == submission_id)
            .order_by(ScheduledEmail.created_at.desc(), ScheduledEmail.id)
        )
        return list(result.scalars().all())
