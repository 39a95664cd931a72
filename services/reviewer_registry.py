"""Reviewer registry: invitations, activation and account management."""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import get_settings
from core.errors import AlreadyAccepted, Conflict, NotFound, ValidationFailed
from core.utils import is_blank, normalize_email, utcnow
from models.review import Review
from models.reviewer import Reviewer, ReviewerRole
from models.submission import REVIEWABLE_STATUSES, Submission
from services.access_policy import resolve_access_level
from services.notification_queue import NotificationQueue

logger = logging.getLogger(__name__)

INVITATION_TEMPLATE = "reviewer_invitation"


def invitation_payload(reviewer: Reviewer) -> dict[str, Any]:
    """Template variables for an invitation; the access level drives its wording."""
    return {
        "reviewer_id": str(reviewer.id),
        "reviewer_name": reviewer.name,
        "role": reviewer.role,
        "access_level": resolve_access_level(reviewer).value,
    }


class ReviewerRegistry:
    """Service for the reviewer account lifecycle."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.queue = NotificationQueue(session)

    async def get_reviewer(self, reviewer_id: UUID) -> Reviewer:
        reviewer = await self.session.get(Reviewer, reviewer_id)
        if reviewer is None:
            raise NotFound("Reviewer not found")
        return reviewer

    async def get_by_email(self, email: str) -> Reviewer | None:
        result = await self.session.execute(
            select(Reviewer).where(Reviewer.email == normalize_email(email))
        )
        return result.scalar_one_or_none()

    async def _enqueue_invitation(self, reviewer: Reviewer, invited_by: str | None) -> None:
        await self.queue.schedule(
            submission_id=None,
            template=INVITATION_TEMPLATE,
            recipient=reviewer.email,
            fire_at=utcnow(),
            payload=invitation_payload(reviewer),
            scheduled_by=invited_by,
        )

    async def invite_reviewer(
        self,
        email: str,
        name: str | None = None,
        role: str = ReviewerRole.REVIEWER.value,
        can_see_speaker_identity: bool | None = None,
        invited_by: UUID | None = None,
        invited_by_label: str | None = None,
    ) -> Reviewer:
        """
        Invite a reviewer. The account stays inactive until first login.

        Args:
            email: Reviewer email (unique, case-insensitive)
            name: Display name
            role: super_admin, reviewer or readonly
            can_see_speaker_identity: Identity visibility (default: the
                opposite of ``anonymous_review_default``)
            invited_by: Inviting reviewer, if the admin is a reviewer
            invited_by_label: Inviting admin identity for the audit trail

        Raises:
            Conflict: a reviewer with this email already exists
        """
        if is_blank(email) or "@" not in email:
            raise ValidationFailed("A valid email is required", fields={"email": "invalid email"})
        try:
            role = ReviewerRole(role).value
        except ValueError as exc:
            raise ValidationFailed("Unknown role", fields={"role": f"'{role}' is not a role"}) from exc

        if can_see_speaker_identity is None:
            can_see_speaker_identity = not get_settings().anonymous_review_default

        normalized = normalize_email(email)
        if await self.get_by_email(normalized) is not None:
            raise Conflict(
                "A reviewer with this email already exists", details={"email": normalized}
            )

        now = utcnow()
        reviewer = Reviewer(
            email=normalized,
            name=name.strip() if name else None,
            role=role,
            can_see_speaker_identity=can_see_speaker_identity,
            invited_by=invited_by,
            invited_at=now,
            last_invited_at=now,
            invite_sent_count=1,
            is_active=True,
        )
        self.session.add(reviewer)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise Conflict(
                "A reviewer with this email already exists", details={"email": normalized}
            ) from exc

        await self._enqueue_invitation(reviewer, invited_by_label)
        logger.info(f"Invited reviewer {reviewer.id} ({role}) by {invited_by_label}")
        return reviewer

    async def resend_invite(self, reviewer_id: UUID, invited_by_label: str | None = None) -> Reviewer:
        reviewer = await self.get_reviewer(reviewer_id)
        if reviewer.accepted_at is not None:
            raise AlreadyAccepted("Reviewer has already accepted the invitation")
        if not reviewer.is_active:
            raise ValidationFailed(
                "Reactivate the reviewer before resending the invitation",
                fields={"is_active": "reviewer is deactivated"},
            )

        reviewer.invite_sent_count += 1
        reviewer.last_invited_at = utcnow()
        await self.session.flush()

        await self._enqueue_invitation(reviewer, invited_by_label)
        logger.info(f"Resent invitation to reviewer {reviewer_id} (#{reviewer.invite_sent_count})")
        return reviewer

    async def activate(self, email: str, user_id: str | None = None) -> Reviewer:
        """
        Activate a reviewer on first successful login. Safe to call on every login.

        Raises:
            NotFound: no invitation for this email, or the reviewer is deactivated
        """
        reviewer = await self.get_by_email(email)
        if reviewer is None or not reviewer.is_active:
            logger.warning(f"Reviewer login refused for {normalize_email(email)}")
            raise NotFound("No active reviewer invitation for this email")

        if user_id and not reviewer.user_id:
            reviewer.user_id = user_id
        if reviewer.accepted_at is None:
            reviewer.accepted_at = utcnow()
            logger.info(f"Reviewer {reviewer.id} activated")
        await self.session.flush()
        return reviewer

    async def update_reviewer(
        self,
        reviewer_id: UUID,
        role: str | None = None,
        can_see_speaker_identity: bool | None = None,
        name: str | None = None,
    ) -> Reviewer:
        reviewer = await self.get_reviewer(reviewer_id)
        if role is not None:
            try:
                reviewer.role = ReviewerRole(role).value
            except ValueError as exc:
                raise ValidationFailed(
                    "Unknown role", fields={"role": f"'{role}' is not a role"}
                ) from exc
        if can_see_speaker_identity is not None:
            reviewer.can_see_speaker_identity = can_see_speaker_identity
        if name is not None:
            reviewer.name = name.strip() or None
        await self.session.flush()
        return reviewer

    async def deactivate(self, reviewer_id: UUID) -> Reviewer:
        reviewer = await self.get_reviewer(reviewer_id)
        reviewer.is_active = False
        await self.session.flush()
        logger.info(f"Reviewer {reviewer_id} deactivated")
        return reviewer

    async def reactivate(self, reviewer_id: UUID) -> Reviewer:
        reviewer = await self.get_reviewer(reviewer_id)
        reviewer.is_active = True
        await self.session.flush()
        logger.info(f"Reviewer {reviewer_id} reactivated")
        return reviewer

    async def list_reviewers(self, include_inactive: bool = True) -> list[Reviewer]:
        stmt = select(Reviewer)
        if not include_inactive:
            stmt = stmt.where(Reviewer.is_active.is_(True))
        result = await self.session.execute(stmt.order_by(Reviewer.invited_at, Reviewer.id))
        return list(result.scalars().all())

    async def count_active_reviewers(self) -> int:
        """Reviewers who can currently write reviews."""
        result = await self.session.execute(
            select(func.count(Reviewer.id)).where(
                Reviewer.is_active.is_(True),
                Reviewer.accepted_at.is_not(None),
                Reviewer.role != ReviewerRole.READONLY.value,
            )
        )
        return result.scalar_one()

    async def reviewer_stats(self, reviewer_id: UUID) -> dict[str, Any]:
        """Review activity for one reviewer."""
        reviewer = await self.get_reviewer(reviewer_id)

        row = (
            await self.session.execute(
                select(
                    func.count(Review.id),
                    func.avg(Review.score_overall),
                    func.max(Review.updated_at),
                ).where(Review.reviewer_id == reviewer.id)
            )
        ).one()
        review_count, avg_overall, last_reviewed_at = row

        reviewable = (
            await self.session.execute(
                select(func.count(Submission.id)).where(
                    Submission.status.in_([s.value for s in REVIEWABLE_STATUSES])
                )
            )
        ).scalar_one()

        reviewed_open = (
            await self.session.execute(
                select(func.count(Review.id))
                .join(Submission, Submission.id == Review.submission_id)
                .where(
                    Review.reviewer_id == reviewer.id,
                    Submission.status.in_([s.value for s in REVIEWABLE_STATUSES]),
                )
            )
        ).scalar_one()

        return {
            "reviewer_id": str(reviewer.id),
            "review_count": review_count,
            "avg_overall_given": float(avg_overall) if avg_overall is not None else None,
            "last_reviewed_at": last_reviewed_at.isoformat() if last_reviewed_at else None,
            "pending_count": max(reviewable - reviewed_open, 0),
        }
