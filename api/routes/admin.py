"""Admin endpoints: submissions, speakers, decisions, notifications, reviewers, tags and stats"""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas import (
    AdminSubmissionUpdate,
    BulkDecisionRequest,
    BulkDecisionResponse,
    DecisionRequest,
    DecisionResponse,
    EmailFailureRequest,
    ReviewerInvite,
    ReviewerResponse,
    ReviewerUpdate,
    ScheduledEmailResponse,
    ScheduleEmailRequest,
    SpeakerProfileUpdate,
    SpeakerResponse,
    StatusOverrideRequest,
    SubmissionResponse,
    TagCreate,
    TagCreateResponse,
    TagResponse,
    TagUpdate,
)
from app.auth import AdminPrincipal, require_admin
from app.dependencies import (
    get_analytics_client,
    get_cfp_stats_service,
    get_db_session,
    get_decision_engine,
    get_notification_queue,
    get_review_ledger,
    get_reviewer_registry,
    get_speaker_profile_service,
    get_submission_store,
    get_tag_catalog,
)
from services.analytics import AnalyticsClient
from services.cfp_stats import CfpStatsService
from services.decision_engine import DecisionEngine
from services.notification_queue import NotificationQueue
from services.review_ledger import ReviewLedger
from services.reviewer_registry import ReviewerRegistry
from services.speaker_profile import SpeakerProfileService
from services.submission_store import SubmissionStore
from services.tag_catalog import TagCatalog

router = APIRouter(prefix="/api/cfp/admin", tags=["Admin"])


# Submissions


@router.get("/submissions")
async def list_submissions(
    admin: AdminPrincipal = Depends(require_admin),
    store: SubmissionStore = Depends(get_submission_store),
    status: str | None = Query(None, description="Filter by status"),
    submission_type: str | None = Query(None, alias="type", description="Filter by type"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
):
    """List submissions with speaker details and review aggregates."""
    return await store.admin_list(
        status=status, submission_type=submission_type, limit=limit, offset=offset
    )


@router.get("/submissions/{submission_id}")
async def get_submission(
    submission_id: UUID,
    admin: AdminPrincipal = Depends(require_admin),
    store: SubmissionStore = Depends(get_submission_store),
    ledger: ReviewLedger = Depends(get_review_ledger),
):
    """Get a submission with speaker, all reviews and a scoring summary."""
    data = await store.admin_get(submission_id)
    data["scoring"] = await ledger.scoring_summary(submission_id)
    return data


@router.put("/submissions/{submission_id}", response_model=SubmissionResponse)
async def update_submission(
    submission_id: UUID,
    request: AdminSubmissionUpdate,
    admin: AdminPrincipal = Depends(require_admin),
    store: SubmissionStore = Depends(get_submission_store),
    db: AsyncSession = Depends(get_db_session),
):
    """Correct submission content in any status. Leaving workshop clears its duration."""
    submission = await store.admin_update(
        submission_id, request.model_dump(mode="json", exclude_unset=True), admin.label
    )
    await db.commit()
    return submission


@router.post("/submissions/{submission_id}/status")
async def override_status(
    submission_id: UUID,
    request: StatusOverrideRequest,
    admin: AdminPrincipal = Depends(require_admin),
    store: SubmissionStore = Depends(get_submission_store),
    db: AsyncSession = Depends(get_db_session),
    analytics: AnalyticsClient = Depends(get_analytics_client),
):
    """
    Change a submission's status outside the normal workflow.

    Requires a reason, which is kept in the override audit trail. Accept and
    reject go through the decision endpoint instead.
    """
    result = await store.admin_override(
        submission_id, request.status.value, request.reason, admin.label
    )
    await db.commit()
    await analytics.track(
        "cfp_status_overridden",
        {
            "submission_id": str(submission_id),
            "previous_status": result.override.previous_status,
            "new_status": result.override.new_status,
        },
    )
    return {
        "submission_id": str(submission_id),
        "status": result.submission.status,
        "override": result.override.to_dict(),
        "cancelled_emails": result.cancelled_emails,
    }


# Speakers


@router.get("/speakers/{speaker_id}")
async def get_speaker(
    speaker_id: UUID,
    admin: AdminPrincipal = Depends(require_admin),
    profiles: SpeakerProfileService = Depends(get_speaker_profile_service),
):
    """Get a speaker with their submission count and submissions, newest first."""
    return await profiles.admin_get_speaker(speaker_id)


@router.put("/speakers/{speaker_id}", response_model=SpeakerResponse)
async def update_speaker(
    speaker_id: UUID,
    request: SpeakerProfileUpdate,
    admin: AdminPrincipal = Depends(require_admin),
    profiles: SpeakerProfileService = Depends(get_speaker_profile_service),
    db: AsyncSession = Depends(get_db_session),
):
    """Edit a speaker profile. Empty strings clear optional fields."""
    speaker = await profiles.admin_update_speaker(
        speaker_id, request.model_dump(exclude_unset=True), admin.label
    )
    await db.commit()
    return speaker


# Decisions


@router.post("/submissions/{submission_id}/decision", response_model=DecisionResponse)
async def make_decision(
    submission_id: UUID,
    request: DecisionRequest,
    admin: AdminPrincipal = Depends(require_admin),
    engine: DecisionEngine = Depends(get_decision_engine),
):
    """
    Accept or reject a submission.

    Does not notify the speaker; schedule the decision email separately.
    """
    result = await engine.make_decision(
        submission_id, request.decision.value, admin.label, notes=request.notes
    )
    return result.to_dict()


@router.get("/submissions/{submission_id}/decision")
async def get_decision_history(
    submission_id: UUID,
    admin: AdminPrincipal = Depends(require_admin),
    engine: DecisionEngine = Depends(get_decision_engine),
):
    """Current status with full decision, override and email history."""
    return await engine.get_decision_history(submission_id)


@router.get("/submissions/{submission_id}/decision/status")
async def get_decision_status(
    submission_id: UUID,
    admin: AdminPrincipal = Depends(require_admin),
    engine: DecisionEngine = Depends(get_decision_engine),
):
    """Current status, latest decision and pending notifications."""
    return await engine.get_decision_status(submission_id)


@router.post("/decisions/bulk", response_model=BulkDecisionResponse)
async def bulk_decide(
    request: BulkDecisionRequest,
    admin: AdminPrincipal = Depends(require_admin),
    engine: DecisionEngine = Depends(get_decision_engine),
):
    result = await engine.bulk_decide(
        request.submission_ids, request.decision.value, admin.label, notes=request.notes
    )
    return result.to_dict()


@router.post(
    "/submissions/{submission_id}/schedule-email",
    response_model=ScheduledEmailResponse,
    status_code=201,
)
async def schedule_decision_email(
    submission_id: UUID,
    request: ScheduleEmailRequest,
    admin: AdminPrincipal = Depends(require_admin),
    engine: DecisionEngine = Depends(get_decision_engine),
    db: AsyncSession = Depends(get_db_session),
):
    """Queue the decision email for a decided submission."""
    email = await engine.schedule_decision_email(
        submission_id,
        scheduled_by=admin.label,
        fire_at=request.fire_at,
        personal_message=request.personal_message,
    )
    await db.commit()
    return email


# Notification queue


@router.get("/emails/pending", response_model=list[ScheduledEmailResponse])
async def list_pending_emails(
    admin: AdminPrincipal = Depends(require_admin),
    queue: NotificationQueue = Depends(get_notification_queue),
    before: datetime | None = Query(None, description="Due at or before (default: now)"),
    limit: int = Query(100, ge=1, le=1000),
):
    """Pull interface for the delivery worker."""
    return await queue.list_pending(before=before, limit=limit)


@router.post("/emails/{email_id}/cancel", response_model=ScheduledEmailResponse)
async def cancel_email(
    email_id: UUID,
    admin: AdminPrincipal = Depends(require_admin),
    queue: NotificationQueue = Depends(get_notification_queue),
    db: AsyncSession = Depends(get_db_session),
):
    email = await queue.cancel(email_id, cancelled_by=admin.label)
    await db.commit()
    return email


@router.post("/emails/{email_id}/sent", response_model=ScheduledEmailResponse)
async def mark_email_sent(
    email_id: UUID,
    admin: AdminPrincipal = Depends(require_admin),
    queue: NotificationQueue = Depends(get_notification_queue),
    db: AsyncSession = Depends(get_db_session),
):
    email = await queue.mark_sent(email_id)
    await db.commit()
    return email


@router.post("/emails/{email_id}/failure", response_model=ScheduledEmailResponse)
async def record_email_failure(
    email_id: UUID,
    request: EmailFailureRequest,
    admin: AdminPrincipal = Depends(require_admin),
    queue: NotificationQueue = Depends(get_notification_queue),
    db: AsyncSession = Depends(get_db_session),
):
    """Record a failed delivery; the email stays pending for retry."""
    email = await queue.record_failure(email_id, request.error)
    await db.commit()
    return email


# Reviewers


@router.get("/reviewers", response_model=list[ReviewerResponse])
async def list_reviewers(
    admin: AdminPrincipal = Depends(require_admin),
    registry: ReviewerRegistry = Depends(get_reviewer_registry),
):
    return await registry.list_reviewers()


@router.post("/reviewers", response_model=ReviewerResponse, status_code=201)
async def invite_reviewer(
    request: ReviewerInvite,
    admin: AdminPrincipal = Depends(require_admin),
    registry: ReviewerRegistry = Depends(get_reviewer_registry),
    db: AsyncSession = Depends(get_db_session),
):
    """Invite a reviewer and queue the invitation email."""
    reviewer = await registry.invite_reviewer(
        email=request.email,
        name=request.name,
        role=request.role.value,
        can_see_speaker_identity=request.can_see_speaker_identity,
        invited_by=admin.reviewer_id,
        invited_by_label=admin.label,
    )
    await db.commit()
    return reviewer


@router.patch("/reviewers/{reviewer_id}", response_model=ReviewerResponse)
async def update_reviewer(
    reviewer_id: UUID,
    request: ReviewerUpdate,
    admin: AdminPrincipal = Depends(require_admin),
    registry: ReviewerRegistry = Depends(get_reviewer_registry),
    db: AsyncSession = Depends(get_db_session),
):
    reviewer = await registry.update_reviewer(
        reviewer_id,
        role=request.role.value if request.role else None,
        can_see_speaker_identity=request.can_see_speaker_identity,
        name=request.name,
    )
    await db.commit()
    return reviewer


@router.get("/reviewers/{reviewer_id}/stats")
async def reviewer_stats(
    reviewer_id: UUID,
    admin: AdminPrincipal = Depends(require_admin),
    registry: ReviewerRegistry = Depends(get_reviewer_registry),
):
    return await registry.reviewer_stats(reviewer_id)


@router.post("/reviewers/{reviewer_id}/resend-invite", response_model=ReviewerResponse)
async def resend_invite(
    reviewer_id: UUID,
    admin: AdminPrincipal = Depends(require_admin),
    registry: ReviewerRegistry = Depends(get_reviewer_registry),
    db: AsyncSession = Depends(get_db_session),
):
    reviewer = await registry.resend_invite(reviewer_id, invited_by_label=admin.label)
    await db.commit()
    return reviewer


@router.post("/reviewers/{reviewer_id}/deactivate", response_model=ReviewerResponse)
async def deactivate_reviewer(
    reviewer_id: UUID,
    admin: AdminPrincipal = Depends(require_admin),
    registry: ReviewerRegistry = Depends(get_reviewer_registry),
    db: AsyncSession = Depends(get_db_session),
):
    reviewer = await registry.deactivate(reviewer_id)
    await db.commit()
    return reviewer


@router.post("/reviewers/{reviewer_id}/reactivate", response_model=ReviewerResponse)
async def reactivate_reviewer(
    reviewer_id: UUID,
    admin: AdminPrincipal = Depends(require_admin),
    registry: ReviewerRegistry = Depends(get_reviewer_registry),
    db: AsyncSession = Depends(get_db_session),
):
    reviewer = await registry.reactivate(reviewer_id)
    await db.commit()
    return reviewer


# Tags


@router.get("/tags", response_model=list[TagResponse])
async def list_tags(
    admin: AdminPrincipal = Depends(require_admin),
    catalog: TagCatalog = Depends(get_tag_catalog),
    suggested_only: bool = Query(False),
):
    return await catalog.list_tags(suggested_only=suggested_only)


@router.post("/tags", response_model=TagCreateResponse, status_code=201)
async def create_tag(
    request: TagCreate,
    admin: AdminPrincipal = Depends(require_admin),
    catalog: TagCatalog = Depends(get_tag_catalog),
    db: AsyncSession = Depends(get_db_session),
):
    """Create a tag; near-duplicates of existing tags are returned as a warning."""
    similar = [tag for tag, _score in await catalog.similar_tags(request.name)]
    tag = await catalog.create_tag(request.name, is_suggested=request.is_suggested)
    await db.commit()
    return TagCreateResponse(tag=tag, similar=similar)


@router.patch("/tags/{tag_id}", response_model=TagResponse)
async def update_tag(
    tag_id: UUID,
    request: TagUpdate,
    admin: AdminPrincipal = Depends(require_admin),
    catalog: TagCatalog = Depends(get_tag_catalog),
    db: AsyncSession = Depends(get_db_session),
):
    tag = await catalog.update_tag(tag_id, name=request.name, is_suggested=request.is_suggested)
    await db.commit()
    return tag


@router.delete("/tags/{tag_id}", status_code=204)
async def delete_tag(
    tag_id: UUID,
    admin: AdminPrincipal = Depends(require_admin),
    catalog: TagCatalog = Depends(get_tag_catalog),
    db: AsyncSession = Depends(get_db_session),
):
    await catalog.delete_tag(tag_id)
    await db.commit()
    return Response(status_code=204)


# Stats


@router.get("/stats")
async def get_stats(
    admin: AdminPrincipal = Depends(require_admin),
    stats: CfpStatsService = Depends(get_cfp_stats_service),
):
    """Submission, speaker and review counters for the dashboard."""
    return await stats.cfp_stats()
