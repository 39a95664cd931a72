"""Programme-wide CFP counters for the admin dashboard."""

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.review import Review
from models.speaker import Speaker
from models.submission import REVIEWABLE_STATUSES, Submission, SubmissionStatus
from services.reviewer_registry import ReviewerRegistry
from services.scoring import coverage_ratio


class CfpStatsService:
    """Read-only aggregate counts over submissions, speakers and reviews."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.reviewers = ReviewerRegistry(session)

    async def _count_by(self, column) -> dict[str, int]:
        result = await self.session.execute(
            select(column, func.count(Submission.id)).group_by(column)
        )
        return {key: count for key, count in result.all()}

    async def cfp_stats(self) -> dict[str, Any]:
        """
        Compute the dashboard counters.

        Drafts and withdrawn submissions are included in the totals and show
        up under their own status. Review coverage only looks at submissions
        still open for review.

        Returns:
            Dict of counts, per-status/type/level breakdowns and review coverage
        """
        by_status = await self._count_by(Submission.status)
        by_type = await self._count_by(Submission.submission_type)
        by_level = await self._count_by(Submission.talk_level)
        total_submissions = sum(by_status.values())

        total_speakers = (
            await self.session.execute(select(func.count(Speaker.id)))
        ).scalar_one()
        total_reviews = (await self.session.execute(select(func.count(Review.id)))).scalar_one()
        reviewed_submissions = (
            await self.session.execute(select(func.count(func.distinct(Review.submission_id))))
        ).scalar_one()
        accepted_speakers = (
            await self.session.execute(
                select(func.count(func.distinct(Submission.speaker_id))).where(
                    Submission.status == SubmissionStatus.ACCEPTED.value
                )
            )
        ).scalar_one()

        open_counts = (
            await self.session.execute(
                select(func.count(Review.id))
                .select_from(Submission)
                .outerjoin(Review, Review.submission_id == Submission.id)
                .where(Submission.status.in_([s.value for s in REVIEWABLE_STATUSES]))
                .group_by(Submission.id)
            )
        ).scalars().all()
        active_reviewers = await self.reviewers.count_active_reviewers()
        coverage = (
            sum(coverage_ratio(count, active_reviewers) for count in open_counts) / len(open_counts)
            if open_counts
            else 0.0
        )

        return {
            "total_submissions": total_submissions,
            "submissions_by_status": {
                status.value: by_status.get(status.value, 0) for status in SubmissionStatus
            },
            "submissions_by_type": by_type,
            "submissions_by_level": by_level,
            "total_speakers": total_speakers,
            "total_reviews": total_reviews,
            "reviewed_submissions": reviewed_submissions,
            "avg_reviews_per_submission": (
                total_reviews / total_submissions if total_submissions else 0.0
            ),
            "accepted_count": by_status.get(SubmissionStatus.ACCEPTED.value, 0),
            "accepted_speakers_count": accepted_speakers,
            "active_reviewers": active_reviewers,
            "open_for_review": len(open_counts),
            "avg_review_coverage": coverage,
        }
