"""Pure scoring helpers: aggregates, shortlist classification, review routing."""

from collections.abc import Iterable, Sequence
from dataclasses import asdict, dataclass
from enum import Enum
from uuid import UUID

from models.review import SCORE_FIELDS

# Shortlist classification thresholds
MIN_REVIEWS = 2
CONFIDENT_REVIEW_COUNT = 4
MIN_COVERAGE = 0.5
# Fractions of the maximum score; 3.0 and 2.0 on a five-point scale
SHORTLIST_FRACTION = 0.6
REJECT_FRACTION = 0.4


class ShortlistStatus(str, Enum):
    LIKELY_SHORTLISTED = "likely_shortlisted"
    NEEDS_MORE_REVIEWS = "needs_more_reviews"
    LIKELY_REJECT = "likely_reject"
    BORDERLINE = "borderline"


@dataclass
class Aggregates:
    review_count: int = 0
    avg_overall: float | None = None
    avg_relevance: float | None = None
    avg_technical_depth: float | None = None
    avg_clarity: float | None = None
    avg_diversity: float | None = None

    def to_dict(self) -> dict:
        return asdict(self)

    def without_averages(self) -> "Aggregates":
        """Count only; averages hidden to avoid anchoring reviewers."""
        return Aggregates(review_count=self.review_count)


def mean_of_present(values: Iterable[float | None]) -> float | None:
    """Mean of the non-null values, or None when there are none."""
    present = [v for v in values if v is not None]
    if not present:
        return None
    return sum(present) / len(present)


def compute_aggregates(reviews: Sequence) -> Aggregates:
    """
    Aggregate review scores for one submission.

    ``review_count`` counts every review, including ones without scores;
    each average only covers the reviews that set that score.
    """
    averages = {
        f"avg_{name.removeprefix('score_')}": mean_of_present(getattr(r, name) for r in reviews)
        for name in SCORE_FIELDS
    }
    return Aggregates(review_count=len(reviews), **averages)


def coverage_ratio(review_count: int, total_reviewers: int) -> float:
    if total_reviewers <= 0:
        return 0.0
    return review_count / total_reviewers


def classify(
    avg_overall: float | None,
    review_count: int,
    coverage: float,
    score_max: float = 5,
) -> ShortlistStatus:
    """Shortlist hint for admins; never applied automatically."""
    if (
        avg_overall is None
        or review_count < MIN_REVIEWS
        or (review_count < CONFIDENT_REVIEW_COUNT and coverage < MIN_COVERAGE)
    ):
        return ShortlistStatus.NEEDS_MORE_REVIEWS

    if avg_overall >= SHORTLIST_FRACTION * score_max:
        return ShortlistStatus.LIKELY_SHORTLISTED

    if avg_overall < REJECT_FRACTION * score_max:
        return ShortlistStatus.LIKELY_REJECT

    return ShortlistStatus.BORDERLINE


def pick_next_unreviewed(
    snapshot: Iterable[tuple[UUID, int]],
    reviewed: set[UUID],
    excluding: UUID | None = None,
) -> UUID | None:
    """
    Choose the next submission a reviewer should look at.

    Args:
        snapshot: (submission_id, total review count) for every candidate
        reviewed: Submissions this reviewer has already reviewed
        excluding: Submission to skip, usually the one just reviewed

    Returns:
        The least-reviewed eligible submission (ties by id), or None
    """
    candidates = [
        (count, str(submission_id), submission_id)
        for submission_id, count in snapshot
        if submission_id not in reviewed and submission_id != excluding
    ]
    if not candidates:
        return None
    return min(candidates)[2]
