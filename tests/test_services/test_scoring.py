"""Scoring helper tests"""

from types import SimpleNamespace
from uuid import UUID

from services.scoring import (
    Aggregates,
    ShortlistStatus,
    classify,
    compute_aggregates,
    coverage_ratio,
    mean_of_present,
    pick_next_unreviewed,
)


def _review(**scores):
    values = {
        "score_overall": None,
        "score_relevance": None,
        "score_technical_depth": None,
        "score_clarity": None,
        "score_diversity": None,
    }
    values.update(scores)
    return SimpleNamespace(**values)


class TestAggregates:
    """Averages skip missing scores; counts do not."""

    def test_mean_of_present_ignores_none(self):
        assert mean_of_present([4, None, 8]) == 6
        assert mean_of_present([None, None]) is None
        assert mean_of_present([]) is None

    def test_compute_aggregates_counts_unscored_reviews(self):
        """A review with no overall score still counts towards review_count."""
        reviews = [
            _review(score_overall=4, score_clarity=5),
            _review(score_clarity=3),
            _review(score_overall=8),
        ]

        aggregates = compute_aggregates(reviews)

        assert aggregates.review_count == 3
        assert aggregates.avg_overall == 6
        assert aggregates.avg_clarity == 4
        assert aggregates.avg_relevance is None

    def test_compute_aggregates_empty(self):
        assert compute_aggregates([]) == Aggregates()

    def test_without_averages_keeps_only_count(self):
        aggregates = Aggregates(review_count=3, avg_overall=7.5, avg_clarity=6.0)

        hidden = aggregates.without_averages()

        assert hidden.review_count == 3
        assert hidden.avg_overall is None
        assert hidden.avg_clarity is None


class TestClassify:
    """Shortlist hints on the default five-point scale unless stated."""

    def test_no_scores_needs_more_reviews(self):
        assert classify(None, 5, 1.0) == ShortlistStatus.NEEDS_MORE_REVIEWS

    def test_single_review_needs_more_reviews(self):
        assert classify(5.0, 1, 1.0) == ShortlistStatus.NEEDS_MORE_REVIEWS

    def test_low_coverage_with_few_reviews_needs_more(self):
        assert classify(4.5, 3, 0.3) == ShortlistStatus.NEEDS_MORE_REVIEWS

    def test_many_reviews_override_low_coverage(self):
        assert classify(4.5, 4, 0.1) == ShortlistStatus.LIKELY_SHORTLISTED

    def test_threshold_boundaries(self):
        assert classify(3.0, 2, 0.5) == ShortlistStatus.LIKELY_SHORTLISTED
        assert classify(2.99, 2, 0.5) == ShortlistStatus.BORDERLINE
        assert classify(2.0, 2, 0.5) == ShortlistStatus.BORDERLINE
        assert classify(1.99, 2, 0.5) == ShortlistStatus.LIKELY_REJECT

    def test_thresholds_scale_with_score_max(self):
        assert classify(6.0, 3, 1.0, score_max=10) == ShortlistStatus.LIKELY_SHORTLISTED
        assert classify(5.0, 3, 1.0, score_max=10) == ShortlistStatus.BORDERLINE
        assert classify(3.5, 3, 1.0, score_max=10) == ShortlistStatus.LIKELY_REJECT

    def test_coverage_ratio(self):
        assert coverage_ratio(2, 4) == 0.5
        assert coverage_ratio(3, 0) == 0.0


class TestPickNextUnreviewed:
    """Review routing picks the least-reviewed eligible submission."""

    A = UUID("00000000-0000-0000-0000-00000000000a")
    B = UUID("00000000-0000-0000-0000-00000000000b")
    C = UUID("00000000-0000-0000-0000-00000000000c")

    def test_least_reviewed_wins(self):
        snapshot = [(self.A, 3), (self.B, 1), (self.C, 2)]

        assert pick_next_unreviewed(snapshot, set()) == self.B

    def test_ties_break_by_id(self):
        snapshot = [(self.C, 1), (self.A, 1), (self.B, 1)]

        assert pick_next_unreviewed(snapshot, set()) == self.A

    def test_skips_reviewed_and_excluded(self):
        snapshot = [(self.A, 0), (self.B, 0), (self.C, 5)]

        assert pick_next_unreviewed(snapshot, {self.A}, excluding=self.B) == self.C

    def test_nothing_left(self):
        snapshot = [(self.A, 0)]

        assert pick_next_unreviewed(snapshot, {self.A}) is None
        assert pick_next_unreviewed([], set()) is None
