"""Reviewer endpoints"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas import (
    AuthCallbackRequest,
    NextUnreviewedResponse,
    ReviewerResponse,
    ReviewRequest,
    ReviewResponse,
)
from app.auth import get_current_reviewer
from app.dependencies import (
    get_access_policy,
    get_db_session,
    get_review_ledger,
    get_reviewer_registry,
)
from models.reviewer import Reviewer
from services.access_policy import AccessPolicy
from services.review_ledger import ReviewLedger
from services.reviewer_registry import ReviewerRegistry

router = APIRouter(prefix="/api/cfp/reviewer", tags=["Reviewers"])


@router.post("/auth/callback", response_model=ReviewerResponse)
async def reviewer_auth_callback(
    request: AuthCallbackRequest,
    registry: ReviewerRegistry = Depends(get_reviewer_registry),
    db: AsyncSession = Depends(get_db_session),
):
    """
    Activate an invited reviewer on login.

    Called by the authentication gateway; safe to call on every login.
    """
    reviewer = await registry.activate(request.email, request.user_id)
    await db.commit()
    return reviewer


@router.get("/submissions")
async def list_submissions_for_review(
    reviewer: Reviewer = Depends(get_current_reviewer),
    policy: AccessPolicy = Depends(get_access_policy),
    status: list[str] | None = Query(None, description="Statuses to include"),
    exclude_reviewed: bool = Query(False, description="Hide submissions I already reviewed"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    """
    Reviewer dashboard.

    Each submission is shaped by the caller's access level: anonymous and
    read-only reviewers never receive speaker details.
    """
    return await policy.list_submissions_for_review(
        reviewer.id,
        status=status,
        exclude_reviewed=exclude_reviewed,
        limit=limit,
        offset=offset,
    )


@router.get("/submissions/{submission_id}")
async def get_submission_for_review(
    submission_id: UUID,
    reviewer: Reviewer = Depends(get_current_reviewer),
    policy: AccessPolicy = Depends(get_access_policy),
):
    """Get one submission for review, shaped by the caller's access level."""
    return await policy.get_submission_for_review(reviewer.id, submission_id)


@router.put("/submissions/{submission_id}/review", response_model=ReviewResponse)
async def submit_review(
    submission_id: UUID,
    request: ReviewRequest,
    reviewer: Reviewer = Depends(get_current_reviewer),
    ledger: ReviewLedger = Depends(get_review_ledger),
    db: AsyncSession = Depends(get_db_session),
):
    """Create or replace the caller's review of a submission."""
    data = request.model_dump()
    private_notes = data.pop("private_notes")
    feedback_to_speaker = data.pop("feedback_to_speaker")
    review = await ledger.submit_review(
        reviewer.id,
        submission_id,
        scores=data,
        private_notes=private_notes,
        feedback_to_speaker=feedback_to_speaker,
    )
    await db.commit()
    return review


@router.get("/next", response_model=NextUnreviewedResponse)
async def next_unreviewed(
    reviewer: Reviewer = Depends(get_current_reviewer),
    ledger: ReviewLedger = Depends(get_review_ledger),
    excluding: UUID | None = Query(None, description="Submission to skip"),
):
    """Suggest the least-reviewed submission the caller has not reviewed yet."""
    return NextUnreviewedResponse(
        submission_id=await ledger.next_unreviewed(reviewer.id, excluding=excluding)
    )
