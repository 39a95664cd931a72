"""Speaker submission endpoints"""

from uuid import UUID

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas import SubmissionCreate, SubmissionResponse, SubmissionUpdate
from app.auth import get_current_speaker
from app.dependencies import get_analytics_client, get_db_session, get_submission_store
from models.speaker import Speaker
from services.analytics import AnalyticsClient
from services.submission_store import SubmissionStore

router = APIRouter(prefix="/api/cfp/submissions", tags=["Submissions"])


@router.post("", response_model=SubmissionResponse, status_code=201)
async def create_submission(
    request: SubmissionCreate,
    speaker: Speaker = Depends(get_current_speaker),
    store: SubmissionStore = Depends(get_submission_store),
    db: AsyncSession = Depends(get_db_session),
):
    """
    Create a draft submission.

    Fails with quota_exceeded when the speaker already holds the maximum
    number of non-withdrawn submissions.
    """
    submission = await store.create_draft(speaker.id, request.model_dump(mode="json"))
    await db.commit()
    return submission


@router.get("", response_model=list[SubmissionResponse])
async def list_submissions(
    speaker: Speaker = Depends(get_current_speaker),
    store: SubmissionStore = Depends(get_submission_store),
):
    """List the caller's submissions, newest first."""
    return await store.list_own(speaker.id)


@router.get("/{submission_id}", response_model=SubmissionResponse)
async def get_submission(
    submission_id: UUID,
    speaker: Speaker = Depends(get_current_speaker),
    store: SubmissionStore = Depends(get_submission_store),
):
    return await store.get_own(speaker.id, submission_id)


@router.put("/{submission_id}", response_model=SubmissionResponse)
async def update_submission(
    submission_id: UUID,
    request: SubmissionUpdate,
    speaker: Speaker = Depends(get_current_speaker),
    store: SubmissionStore = Depends(get_submission_store),
    db: AsyncSession = Depends(get_db_session),
):
    """Edit a draft. Submitted submissions are read-only to their owner."""
    submission = await store.update_draft(
        speaker.id,
        submission_id,
        request.model_dump(mode="json", exclude_unset=True),
    )
    await db.commit()
    return submission


@router.delete("/{submission_id}", status_code=204)
async def delete_submission(
    submission_id: UUID,
    speaker: Speaker = Depends(get_current_speaker),
    store: SubmissionStore = Depends(get_submission_store),
    db: AsyncSession = Depends(get_db_session),
):
    """Delete a draft."""
    await store.delete_draft(speaker.id, submission_id)
    await db.commit()
    return Response(status_code=204)


@router.post("/{submission_id}/submit", response_model=SubmissionResponse)
async def submit_submission(
    submission_id: UUID,
    speaker: Speaker = Depends(get_current_speaker),
    store: SubmissionStore = Depends(get_submission_store),
    db: AsyncSession = Depends(get_db_session),
    analytics: AnalyticsClient = Depends(get_analytics_client),
):
    """Submit a draft for review. Requires a complete profile."""
    submission = await store.submit(speaker.id, submission_id)
    await db.commit()
    await analytics.track(
        "cfp_submission_submitted",
        {"submission_id": str(submission.id), "submission_type": submission.submission_type},
    )
    return submission


@router.post("/{submission_id}/withdraw", response_model=SubmissionResponse)
async def withdraw_submission(
    submission_id: UUID,
    speaker: Speaker = Depends(get_current_speaker),
    store: SubmissionStore = Depends(get_submission_store),
    db: AsyncSession = Depends(get_db_session),
    analytics: AnalyticsClient = Depends(get_analytics_client),
):
    """Withdraw a submitted submission."""
    submission = await store.withdraw(speaker.id, submission_id)
    await db.commit()
    await analytics.track("cfp_submission_withdrawn", {"submission_id": str(submission.id)})
    return submission


@router.post("/{submission_id}/reopen", response_model=SubmissionResponse)
async def reopen_submission(
    submission_id: UUID,
    speaker: Speaker = Depends(get_current_speaker),
    store: SubmissionStore = Depends(get_submission_store),
    db: AsyncSession = Depends(get_db_session),
    analytics: AnalyticsClient = Depends(get_analytics_client),
):
    """Reopen a withdrawn submission as a draft. Counts against the quota again."""
    submission = await store.reopen(speaker.id, submission_id)
    await db.commit()
    await analytics.track("cfp_submission_reopened", {"submission_id": str(submission.id)})
    return submission
