"""Review ledger tests"""

import asyncio

import pytest
from sqlalchemy import func, select

from core.errors import Forbidden, NotAuthorized, NotFound, ValidationFailed
from factories import ReviewerFactory, ReviewFactory
from models.review import Review
from services.review_ledger import ReviewLedger, validate_scores


class TestValidateScores:
    """Score bounds come from configuration (1 to 10 by default)."""

    def test_fills_missing_scores_with_none(self):
        cleaned = validate_scores({"score_overall": 7}, 1, 10)

        assert cleaned["score_overall"] == 7.0
        assert cleaned["score_clarity"] is None

    def test_rejects_out_of_range_and_unknown(self):
        with pytest.raises(ValidationFailed) as exc_info:
            validate_scores({"score_overall": 11, "score_clarity": 0, "score_vibes": 3}, 1, 10)

        assert set(exc_info.value.details["fields"]) == {
            "score_overall",
            "score_clarity",
            "score_vibes",
        }

    def test_rejects_non_numbers(self):
        with pytest.raises(ValidationFailed):
            validate_scores({"score_overall": "9"}, 1, 10)
        with pytest.raises(ValidationFailed):
            validate_scores({"score_overall": True}, 1, 10)


class TestReviewLedger:
    """One review per reviewer and submission, aggregates over present scores."""

    async def test_resubmitting_overwrites_single_row(self, db_session, reviewer, make_submission):
        submission = await make_submission()
        ledger = ReviewLedger(db_session)

        first = await ledger.submit_review(
            reviewer.id, submission.id, {"score_overall": 4}, private_notes="meh"
        )
        await db_session.commit()
        second = await ledger.submit_review(
            reviewer.id, submission.id, {"score_overall": 9, "score_clarity": 8}
        )
        await db_session.commit()

        assert first.id == second.id
        assert second.score_overall == 9
        assert second.score_clarity == 8
        assert second.private_notes is None

        count = (
            await db_session.execute(
                select(func.count(Review.id)).where(Review.submission_id == submission.id)
            )
        ).scalar_one()
        assert count == 1

    async def test_concurrent_double_submit_keeps_one_row(
        self, db_session_maker, reviewer, make_submission
    ):
        """Two submits racing on separate sessions still leave a single review."""
        submission = await make_submission()

        async def submit(overall: int, notes: str):
            async with db_session_maker() as session:
                review = await ReviewLedger(session).submit_review(
                    reviewer.id, submission.id, {"score_overall": overall}, private_notes=notes
                )
                await session.commit()
                return review

        await asyncio.gather(submit(3, "first tab"), submit(8, "second tab"))

        async with db_session_maker() as session:
            reviews = (
                await session.execute(select(Review).where(Review.submission_id == submission.id))
            ).scalars().all()

        assert len(reviews) == 1
        assert (reviews[0].score_overall, reviews[0].private_notes) in {
            (3.0, "first tab"),
            (8.0, "second tab"),
        }

    async def test_aggregates_skip_missing_scores(self, db_session, make_submission):
        """Overall scores 4, none and 8 give three reviews averaging 6."""
        submission = await make_submission()
        ledger = ReviewLedger(db_session)
        for score in (4, None, 8):
            reviewer = ReviewerFactory()
            db_session.add(reviewer)
            await db_session.commit()
            await ledger.submit_review(reviewer.id, submission.id, {"score_overall": score})
        await db_session.commit()

        aggregates = await ledger.get_aggregates(submission.id)

        assert aggregates.review_count == 3
        assert aggregates.avg_overall == pytest.approx(6.0)
        assert aggregates.avg_clarity is None

    async def test_readonly_reviewer_cannot_review(
        self, db_session, readonly_reviewer, make_submission
    ):
        submission = await make_submission()

        with pytest.raises(Forbidden):
            await ReviewLedger(db_session).submit_review(
                readonly_reviewer.id, submission.id, {"score_overall": 5}
            )

    async def test_unactivated_reviewer_cannot_review(self, db_session, make_submission):
        invited = ReviewerFactory(accepted_at=None)
        db_session.add(invited)
        await db_session.commit()
        submission = await make_submission()

        with pytest.raises(NotAuthorized):
            await ReviewLedger(db_session).submit_review(
                invited.id, submission.id, {"score_overall": 5}
            )

    @pytest.mark.parametrize("status", ["draft", "withdrawn", "accepted", "rejected"])
    async def test_closed_submissions_cannot_be_reviewed(
        self, db_session, reviewer, make_submission, status
    ):
        submission = await make_submission(status=status)

        with pytest.raises(NotFound):
            await ReviewLedger(db_session).submit_review(
                reviewer.id, submission.id, {"score_overall": 5}
            )

    async def test_scoring_summary_uses_active_reviewer_coverage(
        self, db_session, reviewer, identity_reviewer, readonly_reviewer, make_submission
    ):
        """Two of two writing reviewers scored 8 and 9 out of 10."""
        submission = await make_submission()
        db_session.add_all(
            [
                ReviewFactory(submission_id=submission.id, reviewer_id=reviewer.id, score_overall=8),
                ReviewFactory(
                    submission_id=submission.id, reviewer_id=identity_reviewer.id, score_overall=9
                ),
            ]
        )
        await db_session.commit()

        summary = await ReviewLedger(db_session).scoring_summary(submission.id)

        assert summary["review_count"] == 2
        assert summary["total_reviewers"] == 2
        assert summary["coverage"] == 1.0
        assert summary["avg_overall"] == pytest.approx(8.5)
        assert summary["shortlist_status"] == "likely_shortlisted"

    async def test_next_unreviewed(self, db_session, reviewer, identity_reviewer, make_submission):
        busy = await make_submission()
        quiet = await make_submission()
        await make_submission(status="draft")
        db_session.add(ReviewFactory(submission_id=busy.id, reviewer_id=identity_reviewer.id))
        await db_session.commit()
        ledger = ReviewLedger(db_session)

        assert await ledger.next_unreviewed(reviewer.id) == quiet.id
        assert await ledger.next_unreviewed(reviewer.id, excluding=quiet.id) == busy.id

        await ledger.submit_review(reviewer.id, quiet.id, {"score_overall": 6})
        await ledger.submit_review(reviewer.id, busy.id, {"score_overall": 6})
        assert await ledger.next_unreviewed(reviewer.id) is None
