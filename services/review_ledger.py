"""Review ledger: one review per (reviewer, submission) plus aggregates."""

import logging
from numbers import Real
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import get_settings
from core.database import dialect_insert
from core.errors import Forbidden, NotFound, ValidationFailed
from core.utils import utcnow
from models.review import SCORE_FIELDS, Review
from models.submission import REVIEWABLE_STATUSES, Submission
from services.access_policy import load_active_reviewer, permissions_for
from services.reviewer_registry import ReviewerRegistry
from services.scoring import (
    Aggregates,
    classify,
    coverage_ratio,
    pick_next_unreviewed,
)

logger = logging.getLogger(__name__)

NOTES_MAX_LENGTH = 5000
FEEDBACK_MAX_LENGTH = 2000


def validate_scores(
    scores: dict[str, Any],
    score_min: float,
    score_max: float,
) -> dict[str, float | None]:
    """
    Check score names and bounds.

    Returns:
        Every score field, with None for the ones not given
    """
    errors: dict[str, str] = {}
    unknown = sorted(set(scores) - set(SCORE_FIELDS))
    for name in unknown:
        errors[name] = "not a score field"

    cleaned: dict[str, float | None] = {}
    for name in SCORE_FIELDS:
        value = scores.get(name)
        if value is None:
            cleaned[name] = None
            continue
        if isinstance(value, bool) or not isinstance(value, Real):
            errors[name] = "must be a number"
            continue
        if not score_min <= value <= score_max:
            errors[name] = f"must be between {score_min:g} and {score_max:g}"
            continue
        cleaned[name] = float(value)

    if errors:
        raise ValidationFailed("Invalid review scores", fields=errors)
    return cleaned


class ReviewLedger:
    """Service for recording reviews and reading review statistics."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        settings = get_settings()
        self.score_min = settings.review_score_min
        self.score_max = settings.review_score_max

    async def _reviewable_submission(self, submission_id: UUID) -> Submission:
        submission = await self.session.get(Submission, submission_id)
        if submission is None or submission.status not in [s.value for s in REVIEWABLE_STATUSES]:
            if submission is not None:
                logger.warning(
                    f"Review attempted on submission {submission_id} in status '{submission.status}'"
                )
            raise NotFound("Submission not found")
        return submission

    async def submit_review(
        self,
        reviewer_id: UUID,
        submission_id: UUID,
        scores: dict[str, Any],
        private_notes: str | None = None,
        feedback_to_speaker: str | None = None,
    ) -> Review:
        """
        Create or overwrite the reviewer's review of a submission.

        A single INSERT ... ON CONFLICT DO UPDATE against the
        (submission_id, reviewer_id) unique index, so a double submit can
        never produce two rows.

        Raises:
            NotAuthorized: reviewer is not active
            Forbidden: reviewer is read-only
            NotFound: submission missing or not open for review
            ValidationFailed: scores out of bounds or notes too long
        """
        reviewer = await load_active_reviewer(self.session, reviewer_id)
        if not permissions_for(reviewer).can_write_reviews:
            raise Forbidden("Read-only reviewers cannot submit reviews")

        await self._reviewable_submission(submission_id)

        values = validate_scores(scores, self.score_min, self.score_max)
        errors = {}
        if private_notes and len(private_notes) > NOTES_MAX_LENGTH:
            errors["private_notes"] = f"must be at most {NOTES_MAX_LENGTH} characters"
        if feedback_to_speaker and len(feedback_to_speaker) > FEEDBACK_MAX_LENGTH:
            errors["feedback_to_speaker"] = f"must be at most {FEEDBACK_MAX_LENGTH} characters"
        if errors:
            raise ValidationFailed("Invalid review", fields=errors)

        now = utcnow()
        values["private_notes"] = private_notes or None
        values["feedback_to_speaker"] = feedback_to_speaker or None

        stmt = dialect_insert(self.session, Review).values(
            id=uuid4(),
            submission_id=submission_id,
            reviewer_id=reviewer.id,
            created_at=now,
            updated_at=now,
            **values,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["submission_id", "reviewer_id"],
            set_={**values, "updated_at": now},
        )
        await self.session.execute(stmt)

        review = await self.get_own_review(reviewer.id, submission_id)
        logger.info(f"Reviewer {reviewer.id} reviewed submission {submission_id}")
        return review

    async def get_own_review(self, reviewer_id: UUID, submission_id: UUID) -> Review | None:
        result = await self.session.execute(
            select(Review)
            .where(Review.submission_id == submission_id, Review.reviewer_id == reviewer_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_reviews(self, submission_id: UUID) -> list[Review]:
        result = await self.session.execute(
            select(Review)
            .where(Review.submission_id == submission_id)
            .order_by(Review.created_at.desc(), Review.id)
        )
        return list(result.scalars().all())

    async def get_aggregates(self, submission_id: UUID) -> Aggregates:
        """Review count and per-dimension averages over non-null scores."""
        columns = [func.avg(getattr(Review, name)) for name in SCORE_FIELDS]
        row = (
            await self.session.execute(
                select(func.count(Review.id), *columns).where(
                    Review.submission_id == submission_id
                )
            )
        ).one()

        review_count, *averages = row
        return Aggregates(
            review_count,
            *[float(avg) if avg is not None else None for avg in averages],
        )

    async def scoring_summary(self, submission_id: UUID) -> dict[str, Any]:
        """Aggregates plus reviewer coverage and a shortlist hint."""
        if await self.session.get(Submission, submission_id) is None:
            raise NotFound("Submission not found")

        aggregates = await self.get_aggregates(submission_id)
        total_reviewers = await ReviewerRegistry(self.session).count_active_reviewers()
        coverage = coverage_ratio(aggregates.review_count, total_reviewers)

        return {
            "submission_id": str(submission_id),
            **aggregates.to_dict(),
            "total_reviewers": total_reviewers,
            "coverage": coverage,
            "shortlist_status": classify(
                aggregates.avg_overall, aggregates.review_count, coverage, self.score_max
            ).value,
        }

    async def review_count_snapshot(self) -> list[tuple[UUID, int]]:
        """(submission_id, review count) for every submission open for review."""
        result = await self.session.execute(
            select(Submission.id, func.count(Review.id))
            .outerjoin(Review, Review.submission_id == Submission.id)
            .where(Submission.status.in_([s.value for s in REVIEWABLE_STATUSES]))
            .group_by(Submission.id)
        )
        return [(submission_id, count) for submission_id, count in result.all()]

    async def reviewed_by(self, reviewer_id: UUID) -> set[UUID]:
        result = await self.session.execute(
            select(Review.submission_id).where(Review.reviewer_id == reviewer_id)
        )
        return set(result.scalars().all())

    async def next_unreviewed(
        self,
        reviewer_id: UUID,
        excluding: UUID | None = None,
    ) -> UUID | None:
        """Least-reviewed open submission this reviewer has not reviewed yet."""
        reviewer = await load_active_reviewer(self.session, reviewer_id)
        snapshot = await self.review_count_snapshot()
        reviewed = await self.reviewed_by(reviewer.id)
        return pick_next_unreviewed(snapshot, reviewed, excluding)
