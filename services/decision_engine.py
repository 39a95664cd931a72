"""
Decision engine: accept/reject authority with an append-only audit trail.

A decision only writes the new status and a DecisionRecord. Notifying the
speaker is a separate, explicit step (``schedule_decision_email``) so that
decisions can be staged silently and announced in a batch later.
"""

import asyncio
import logging
import weakref
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import get_settings
from core.errors import CfpError, Conflict, InvalidTransition, NotFound, ValidationFailed
from core.utils import is_blank, utcnow
from models.decision_record import Decision, DecisionRecord, StatusOverride
from models.scheduled_email import ScheduledEmail
from models.speaker import Speaker
from models.submission import DECIDED_STATUSES, REVIEWABLE_STATUSES, Submission
from services.analytics import AnalyticsClient
from services.notification_queue import NotificationQueue

logger = logging.getLogger(__name__)

DECIDABLE_STATUSES = REVIEWABLE_STATUSES + DECIDED_STATUSES

DECISION_EMAIL_TEMPLATES = {
    Decision.ACCEPTED.value: "cfp_acceptance",
    Decision.REJECTED.value: "cfp_rejection",
}

# Serializes decisions per submission within this process. The row lock
# covers other processes on databases that support SELECT ... FOR UPDATE.
_decision_locks: "weakref.WeakValueDictionary[UUID, asyncio.Lock]" = weakref.WeakValueDictionary()


def _lock_for(submission_id: UUID) -> asyncio.Lock:
    lock = _decision_locks.get(submission_id)
    if lock is None:
        lock = asyncio.Lock()
        _decision_locks[submission_id] = lock
    return lock


@dataclass
class DecisionResult:
    submission_id: UUID
    status: str
    previous_status: str
    record: DecisionRecord

    def to_dict(self) -> dict:
        return {
            "submission_id": str(self.submission_id),
            "status": self.status,
            "previous_status": self.previous_status,
            "decision": self.record.to_dict(),
        }


@dataclass
class BulkDecisionResult:
    succeeded: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    errors: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "succeeded": self.succeeded,
            "failed": self.failed,
            "errors": self.errors,
        }


def history_is_reversed(records: list[DecisionRecord]) -> bool:
    """True when the decision history contains differing outcomes."""
    return len({record.decision for record in records}) > 1


class DecisionEngine:
    """Service for recording decisions and scheduling their notifications."""

    def __init__(self, session: AsyncSession, analytics: AnalyticsClient | None = None) -> None:
        self.session = session
        self.analytics = analytics or AnalyticsClient()
        self.queue = NotificationQueue(session)

    async def _get_submission(self, submission_id: UUID, for_update: bool = False) -> Submission:
        stmt = select(Submission).where(Submission.id == submission_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        submission = (await self.session.execute(stmt)).scalar_one_or_none()
        if submission is None:
            raise NotFound("Submission not found")
        return submission

    async def make_decision(
        self,
        submission_id: UUID,
        decision: str,
        decided_by: str,
        notes: str | None = None,
    ) -> DecisionResult:
        """
        Accept or reject a submission.

        The status write and the DecisionRecord append commit together, one
        decision per submission at a time. Re-deciding an already decided
        submission is allowed and appends another record. No email is
        scheduled.

        Args:
            submission_id: Submission to decide
            decision: "accepted" or "rejected"
            decided_by: Admin identity
            notes: Optional internal notes

        Returns:
            DecisionResult with the new status and the appended record

        Raises:
            ValidationFailed: unknown decision or missing admin identity
            NotFound: submission does not exist
            InvalidTransition: submission is a draft or withdrawn
        """
        try:
            outcome = Decision(decision).value
        except ValueError as exc:
            raise ValidationFailed(
                "Decision must be 'accepted' or 'rejected'",
                fields={"decision": f"'{decision}' is not a decision"},
            ) from exc
        if is_blank(decided_by):
            raise ValidationFailed("Decider is required", fields={"decided_by": "must not be blank"})

        async with _lock_for(submission_id):
            try:
                submission = await self._get_submission(submission_id, for_update=True)

                previous = submission.status
                if previous not in [s.value for s in DECIDABLE_STATUSES]:
                    raise InvalidTransition(
                        f"Cannot decide a submission in status '{previous}'",
                        details={"status": previous},
                    )

                sequence = await self._next_sequence(submission.id)
                submission.status = outcome
                record = DecisionRecord(
                    submission_id=submission.id,
                    decision=outcome,
                    previous_status=previous,
                    notes=notes,
                    decided_by=decided_by,
                    decided_at=utcnow(),
                    sequence=sequence,
                )
                self.session.add(record)
                await self.session.flush()
                await self.session.commit()
            except Exception:
                await self.session.rollback()
                raise

        if previous in [s.value for s in DECIDED_STATUSES] and previous != outcome:
            logger.warning(
                f"Decision on {submission_id} reversed: {previous} -> {outcome} by {decided_by}"
            )
        else:
            logger.info(f"Decision on {submission_id}: {outcome} by {decided_by}")

        await self.analytics.track(
            "cfp_decision_made",
            {
                "submission_id": str(submission_id),
                "decision": outcome,
                "previous_status": previous,
            },
        )
        return DecisionResult(
            submission_id=submission_id,
            status=outcome,
            previous_status=previous,
            record=record,
        )

    async def bulk_decide(
        self,
        submission_ids: list[UUID],
        decision: str,
        decided_by: str,
        notes: str | None = None,
    ) -> BulkDecisionResult:
        """Decide several submissions; each one commits or fails on its own."""
        result = BulkDecisionResult()
        for submission_id in dict.fromkeys(submission_ids):
            try:
                await self.make_decision(submission_id, decision, decided_by, notes)
            except CfpError as e:
                result.failed.append(str(submission_id))
                result.errors.append(
                    {"submission_id": str(submission_id), **e.to_dict()}
                )
            else:
                result.succeeded.append(str(submission_id))

        logger.info(
            f"Bulk decision '{decision}' by {decided_by}: "
            f"{len(result.succeeded)} succeeded, {len(result.failed)} failed"
        )
        return result

    async def schedule_decision_email(
        self,
        submission_id: UUID,
        scheduled_by: str,
        fire_at: datetime | None = None,
        personal_message: str | None = None,
    ) -> ScheduledEmail:
        """
        Queue the speaker notification for the current decision.

        Args:
            submission_id: Decided submission
            scheduled_by: Admin identity
            fire_at: Delivery time (default: now plus the configured delay)
            personal_message: Optional note included in the email

        Raises:
            NotFound: submission does not exist
            InvalidTransition: submission has no accept/reject decision
            Conflict: a decision email of the same kind is already pending
        """
        submission = await self._get_submission(submission_id)
        template = DECISION_EMAIL_TEMPLATES.get(submission.status)
        if template is None:
            raise InvalidTransition(
                "Only decided submissions can be notified",
                details={"status": submission.status},
            )

        if await self.queue.find_pending(submission_id, template) is not None:
            raise Conflict(
                "A decision email is already scheduled for this submission",
                details={"template": template},
            )

        speaker = await self.session.get(Speaker, submission.speaker_id)
        if speaker is None:
            raise NotFound("Speaker not found")

        if fire_at is None:
            fire_at = utcnow() + timedelta(minutes=get_settings().email_delay_minutes)

        return await self.queue.schedule(
            submission_id=submission_id,
            template=template,
            recipient=speaker.email,
            fire_at=fire_at,
            payload={
                "speaker_name": speaker.full_name,
                "submission_title": submission.title,
                "submission_type": submission.submission_type,
                "decision": submission.status,
            },
            personal_message=personal_message,
            scheduled_by=scheduled_by,
        )

    async def _next_sequence(self, submission_id: UUID) -> int:
        result = await self.session.execute(
            select(func.coalesce(func.max(DecisionRecord.sequence), 0)).where(
                DecisionRecord.submission_id == submission_id
            )
        )
        return result.scalar_one() + 1

    async def _decision_records(self, submission_id: UUID) -> list[DecisionRecord]:
        result = await self.session.execute(
            select(DecisionRecord)
            .where(DecisionRecord.submission_id == submission_id)
            .order_by(DecisionRecord.sequence.desc())
        )
        return list(result.scalars().all())

    async def get_decision_status(self, submission_id: UUID) -> dict[str, Any]:
        """Current status with the latest decision and pending notifications."""
        submission = await self._get_submission(submission_id)
        records = await self._decision_records(submission_id)
        emails = await self.queue.list_for_submission(submission_id)

        return {
            "submission_id": str(submission_id),
            "status": submission.status,
            "latest_decision": records[0].to_dict() if records else None,
            "decision_count": len(records),
            "reversed": history_is_reversed(records),
            "pending_emails": [email.to_dict() for email in emails if email.is_pending],
        }

    async def get_decision_history(self, submission_id: UUID) -> dict[str, Any]:
        """Full decision, override and notification history, newest first."""
        submission = await self._get_submission(submission_id)
        records = await self._decision_records(submission_id)
        overrides = (
            await self.session.execute(
                select(StatusOverride)
                .where(StatusOverride.submission_id == submission_id)
                .order_by(StatusOverride.changed_at.desc(), StatusOverride.id)
            )
        ).scalars().all()
        emails = await self.queue.list_for_submission(submission_id)

        return {
            "submission_id": str(submission_id),
            "status": submission.status,
            "reversed": history_is_reversed(records),
            "decisions": [record.to_dict() for record in records],
            "overrides": [override.to_dict() for override in overrides],
            "emails": [email.to_dict() for email in emails],
        }
