"""API Pydantic schemas for request/response validation"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from models.decision_record import Decision
from models.reviewer import ReviewerRole
from models.submission import SubmissionStatus, SubmissionType, TalkLevel


class HealthResponse(BaseModel):
    """Health check response"""

    status: str = Field(default="healthy")
    database_connected: bool = False
    database_error: str | None = None
    emails_due: int | None = Field(default=None, description="Pending notifications already due")
    version: str = Field(default="0.1.0")


# Authentication callbacks


class AuthCallbackRequest(BaseModel):
    """Identity asserted by the authentication provider after login"""

    email: str = Field(..., min_length=3, max_length=320)
    user_id: str | None = Field(default=None, max_length=100)


# Speakers


class SpeakerProfileUpdate(BaseModel):
    """Speaker profile changes; omitted fields are left unchanged"""

    model_config = ConfigDict(extra="forbid")

    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    job_title: str | None = Field(default=None, max_length=200)
    company: str | None = Field(default=None, max_length=200)
    bio: str | None = Field(default=None, max_length=2000)
    linkedin_url: str | None = Field(default=None, max_length=500)
    github_url: str | None = Field(default=None, max_length=500)
    twitter_handle: str | None = Field(default=None, max_length=100)
    bluesky_handle: str | None = Field(default=None, max_length=100)
    mastodon_handle: str | None = Field(default=None, max_length=100)
    profile_image_url: str | None = Field(default=None, max_length=500)


class SpeakerResponse(BaseModel):
    """Speaker profile as seen by the speaker"""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    first_name: str
    last_name: str
    job_title: str | None = None
    company: str | None = None
    bio: str | None = None
    linkedin_url: str | None = None
    github_url: str | None = None
    twitter_handle: str | None = None
    bluesky_handle: str | None = None
    mastodon_handle: str | None = None
    profile_image_url: str | None = None
    created_at: datetime
    updated_at: datetime


class SpeakerProfileResponse(BaseModel):
    speaker: SpeakerResponse
    is_profile_complete: bool
    missing_fields: list[str] = []
    submission_count: int
    submission_limit: int


# Tags


class TagResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    is_suggested: bool


class TagCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    is_suggested: bool = True


class TagUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=50)
    is_suggested: bool | None = None


class TagCreateResponse(BaseModel):
    tag: TagResponse
    similar: list[TagResponse] = []


# Submissions


class SubmissionCreate(BaseModel):
    """Draft submission"""

    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=5, max_length=200)
    abstract: str = Field(..., min_length=100, max_length=3000)
    submission_type: SubmissionType
    talk_level: TalkLevel
    tags: list[str] = Field(..., min_length=1, max_length=5)
    outline: str | None = Field(default=None, max_length=5000)
    additional_notes: str | None = Field(default=None, max_length=2000)
    slides_url: str | None = Field(default=None, max_length=500)
    previous_recording_url: str | None = Field(default=None, max_length=500)
    workshop_duration_hours: int | None = Field(default=None, ge=2, le=8)


class SubmissionUpdate(BaseModel):
    """Draft changes; omitted fields are left unchanged"""

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, min_length=5, max_length=200)
    abstract: str | None = Field(default=None, min_length=100, max_length=3000)
    submission_type: SubmissionType | None = None
    talk_level: TalkLevel | None = None
    tags: list[str] | None = Field(default=None, min_length=1, max_length=5)
    outline: str | None = Field(default=None, max_length=5000)
    additional_notes: str | None = Field(default=None, max_length=2000)
    slides_url: str | None = Field(default=None, max_length=500)
    previous_recording_url: str | None = Field(default=None, max_length=500)
    workshop_duration_hours: int | None = Field(default=None, ge=2, le=8)


class AdminSubmissionUpdate(BaseModel):
    """Admin content correction; status changes go through overrides and decisions"""

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, min_length=5, max_length=200)
    abstract: str | None = Field(default=None, min_length=100, max_length=3000)
    submission_type: SubmissionType | None = None
    talk_level: TalkLevel | None = None
    outline: str | None = Field(default=None, max_length=5000)
    workshop_duration_hours: int | None = Field(default=None, ge=2, le=8)


class SubmissionResponse(BaseModel):
    """Submission as seen by its owner"""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    speaker_id: UUID
    title: str
    abstract: str
    submission_type: str
    talk_level: str
    outline: str | None = None
    additional_notes: str | None = None
    slides_url: str | None = None
    previous_recording_url: str | None = None
    workshop_duration_hours: int | None = None
    tags: list[TagResponse] = []
    status: str
    submitted_at: datetime | None = None
    withdrawn_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class StatusOverrideRequest(BaseModel):
    status: SubmissionStatus
    reason: str = Field(..., min_length=1, max_length=2000)


# Reviews


class ReviewRequest(BaseModel):
    """Review scores; every score is optional"""

    model_config = ConfigDict(extra="forbid")

    score_overall: float | None = None
    score_relevance: float | None = None
    score_technical_depth: float | None = None
    score_clarity: float | None = None
    score_diversity: float | None = None
    private_notes: str | None = Field(default=None, max_length=5000)
    feedback_to_speaker: str | None = Field(default=None, max_length=2000)


class ReviewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    submission_id: UUID
    reviewer_id: UUID
    score_overall: float | None = None
    score_relevance: float | None = None
    score_technical_depth: float | None = None
    score_clarity: float | None = None
    score_diversity: float | None = None
    private_notes: str | None = None
    feedback_to_speaker: str | None = None
    created_at: datetime
    updated_at: datetime


class NextUnreviewedResponse(BaseModel):
    submission_id: UUID | None = None


# Reviewers


class ReviewerInvite(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    name: str | None = Field(default=None, max_length=200)
    role: ReviewerRole = ReviewerRole.REVIEWER
    can_see_speaker_identity: bool | None = None


class ReviewerUpdate(BaseModel):
    name: str | None = Field(default=None, max_length=200)
    role: ReviewerRole | None = None
    can_see_speaker_identity: bool | None = None


class ReviewerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    name: str | None = None
    role: str
    can_see_speaker_identity: bool
    invited_at: datetime
    invite_sent_count: int
    last_invited_at: datetime
    accepted_at: datetime | None = None
    is_active: bool


# Decisions and notifications


class DecisionRequest(BaseModel):
    decision: Decision
    notes: str | None = Field(default=None, max_length=5000)


class BulkDecisionRequest(BaseModel):
    submission_ids: list[UUID] = Field(..., min_length=1, max_length=200)
    decision: Decision
    notes: str | None = Field(default=None, max_length=5000)


class DecisionRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    submission_id: UUID
    decision: str
    previous_status: str
    notes: str | None = None
    decided_by: str
    decided_at: datetime
    sequence: int


class DecisionResponse(BaseModel):
    submission_id: UUID
    status: str
    previous_status: str
    decision: DecisionRecordResponse


class BulkDecisionResponse(BaseModel):
    succeeded: list[str]
    failed: list[str]
    errors: list[dict]


class ScheduleEmailRequest(BaseModel):
    fire_at: datetime | None = None
    personal_message: str | None = Field(default=None, max_length=5000)


class EmailFailureRequest(BaseModel):
    error: str = Field(..., min_length=1, max_length=2000)


class ScheduledEmailResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    submission_id: UUID | None = None
    template: str
    recipient: str
    fire_at: datetime
    payload: dict = {}
    personal_message: str | None = None
    scheduled_by: str | None = None
    state: str
    sent_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancelled_by: str | None = None
    attempt_count: int
    last_error: str | None = None
    last_attempt_at: datetime | None = None
    created_at: datetime
