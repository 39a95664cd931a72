"""
Reviewer access policy.

Every decision about what a reviewer may see or do goes through
``resolve_access_level`` and ``permissions_for``. Response shaping for
reviewers happens only in ``shape_submission_for_review``.
"""

import logging
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import NotAuthorized, NotFound
from models.review import Review
from models.reviewer import Reviewer, ReviewerRole
from models.speaker import Speaker
from models.submission import REVIEW_VISIBLE_STATUSES, Submission
from services.scoring import Aggregates, compute_aggregates

logger = logging.getLogger(__name__)

MEDIA_FIELDS = ("slides_url", "previous_recording_url")


class AccessLevel(str, Enum):
    FULL_ACCESS = "full_access"
    ANONYMOUS = "anonymous"
    READONLY = "readonly"


@dataclass(frozen=True)
class ReviewerPermissions:
    access_level: AccessLevel
    can_see_speaker_identity: bool
    can_write_reviews: bool
    can_change_status: bool
    can_see_all_reviews: bool
    can_see_score_averages: bool
    can_see_media_links: bool

    def to_dict(self) -> dict:
        data = asdict(self)
        data["access_level"] = self.access_level.value
        return data


def resolve_access_level(reviewer: Reviewer) -> AccessLevel:
    """Access level from role and identity-visibility flag alone."""
    if reviewer.role == ReviewerRole.SUPER_ADMIN.value:
        return AccessLevel.FULL_ACCESS
    if reviewer.role == ReviewerRole.READONLY.value:
        return AccessLevel.READONLY
    if reviewer.can_see_speaker_identity:
        return AccessLevel.FULL_ACCESS
    return AccessLevel.ANONYMOUS


def permissions_for(reviewer: Reviewer) -> ReviewerPermissions:
    level = resolve_access_level(reviewer)
    is_super_admin = reviewer.role == ReviewerRole.SUPER_ADMIN.value
    return ReviewerPermissions(
        access_level=level,
        can_see_speaker_identity=level == AccessLevel.FULL_ACCESS,
        can_write_reviews=level != AccessLevel.READONLY,
        can_change_status=is_super_admin,
        # Other reviewers' opinions and media could bias a review
        can_see_all_reviews=is_super_admin,
        can_see_score_averages=is_super_admin,
        can_see_media_links=is_super_admin,
    )


def shape_submission_for_review(
    submission: Submission,
    speaker: Speaker | None,
    reviewer: Reviewer,
    my_review: Review | None = None,
    all_reviews: list[Review] | None = None,
    stats: Aggregates | None = None,
) -> dict[str, Any]:
    """
    Build the reviewer-facing view of a submission.

    Without identity visibility the ``speaker`` and ``speaker_id`` keys are
    omitted entirely; ``speaker_redacted`` tells the client why.
    """
    permissions = permissions_for(reviewer)
    data = submission.to_dict()

    if permissions.can_see_speaker_identity and speaker is not None:
        data["speaker"] = speaker.to_dict()
        data["speaker_redacted"] = False
    else:
        data.pop("speaker_id", None)
        data["speaker_redacted"] = True

    if not permissions.can_see_media_links:
        for name in MEDIA_FIELDS:
            data[name] = None

    data["my_review"] = my_review.to_dict() if my_review is not None else None

    if permissions.can_see_all_reviews:
        data["all_reviews"] = [review.to_dict() for review in all_reviews or []]

    if stats is not None:
        visible = stats if permissions.can_see_score_averages else stats.without_averages()
        data["stats"] = visible.to_dict()

    data["permissions"] = permissions.to_dict()
    return data


async def load_active_reviewer(session: AsyncSession, reviewer_id: UUID) -> Reviewer:
    """
    Load a reviewer who has accepted the invitation and is not deactivated.

    Raises:
        NotAuthorized: unknown, not yet activated, or deactivated reviewer
    """
    reviewer = await session.get(Reviewer, reviewer_id)
    if reviewer is None:
        logger.warning(f"Unknown reviewer id {reviewer_id}")
        raise NotAuthorized("Reviewer access required")
    if not reviewer.is_activated:
        logger.warning(
            f"Inactive reviewer {reviewer_id} (accepted={reviewer.accepted_at is not None}, "
            f"active={reviewer.is_active}) attempted access"
        )
        raise NotAuthorized("Reviewer account is not active")
    return reviewer


class AccessPolicy:
    """Reviewer-facing reads, shaped by the visibility rules above."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _reviews_for(self, submission_ids: list[UUID]) -> dict[UUID, list[Review]]:
        grouped: dict[UUID, list[Review]] = {sid: [] for sid in submission_ids}
        if not submission_ids:
            return grouped
        result = await self.session.execute(
            select(Review)
            .where(Review.submission_id.in_(submission_ids))
            .order_by(Review.created_at.desc())
        )
        for review in result.scalars().all():
            grouped[review.submission_id].append(review)
        return grouped

    async def _speakers_for(self, speaker_ids: set[UUID]) -> dict[UUID, Speaker]:
        if not speaker_ids:
            return {}
        result = await self.session.execute(select(Speaker).where(Speaker.id.in_(speaker_ids)))
        return {speaker.id: speaker for speaker in result.scalars().all()}

    async def get_submission_for_review(
        self,
        reviewer_id: UUID,
        submission_id: UUID,
    ) -> dict[str, Any]:
        """
        Fetch one submission for review.

        Raises:
            NotAuthorized: reviewer is not active
            NotFound: submission missing or not in a review-visible status
        """
        reviewer = await load_active_reviewer(self.session, reviewer_id)

        submission = await self.session.get(Submission, submission_id)
        visible = [s.value for s in REVIEW_VISIBLE_STATUSES]
        if submission is None or submission.status not in visible:
            if submission is not None:
                logger.warning(
                    f"Reviewer {reviewer_id} requested submission {submission_id} "
                    f"in non-reviewable status '{submission.status}'"
                )
            raise NotFound("Submission not found")

        permissions = permissions_for(reviewer)
        reviews = (await self._reviews_for([submission_id]))[submission_id]
        my_review = next((r for r in reviews if r.reviewer_id == reviewer.id), None)

        speaker = None
        if permissions.can_see_speaker_identity:
            speaker = await self.session.get(Speaker, submission.speaker_id)

        return shape_submission_for_review(
            submission,
            speaker,
            reviewer,
            my_review=my_review,
            all_reviews=reviews,
            stats=compute_aggregates(reviews),
        )

    async def list_submissions_for_review(
        self,
        reviewer_id: UUID,
        status: list[str] | None = None,
        exclude_reviewed: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> dict[str, Any]:
        """
        Reviewer dashboard listing.

        Args:
            reviewer_id: Active reviewer
            status: Statuses to include (default: submitted and under_review);
                statuses outside the review-visible set are ignored
            exclude_reviewed: Drop submissions this reviewer already reviewed
            limit: Page size
            offset: Page offset

        Returns:
            {"submissions": [...], "total": int}
        """
        reviewer = await load_active_reviewer(self.session, reviewer_id)

        visible = {s.value for s in REVIEW_VISIBLE_STATUSES}
        wanted = [s for s in (status or ["submitted", "under_review"]) if s in visible]
        if not wanted:
            return {"submissions": [], "total": 0}

        filters = [Submission.status.in_(wanted)]
        if exclude_reviewed:
            mine = select(Review.submission_id).where(Review.reviewer_id == reviewer.id)
            filters.append(Submission.id.not_in(mine))

        total = (
            await self.session.execute(select(func.count(Submission.id)).where(*filters))
        ).scalar_one()

        result = await self.session.execute(
            select(Submission)
            .where(*filters)
            .order_by(Submission.submitted_at.asc(), Submission.id)
            .limit(limit)
            .offset(offset)
        )
        submissions = list(result.scalars().all())

        permissions = permissions_for(reviewer)
        reviews = await self._reviews_for([s.id for s in submissions])
        speakers = {}
        if permissions.can_see_speaker_identity:
            speakers = await self._speakers_for({s.speaker_id for s in submissions})

        shaped = []
        for submission in submissions:
            submission_reviews = reviews[submission.id]
            shaped.append(
                shape_submission_for_review(
                    submission,
                    speakers.get(submission.speaker_id),
                    reviewer,
                    my_review=next(
                        (r for r in submission_reviews if r.reviewer_id == reviewer.id), None
                    ),
                    all_reviews=submission_reviews,
                    stats=compute_aggregates(submission_reviews),
                )
            )

        return {"submissions": shaped, "total": total}
