"""Submission store: speaker-owned CRUD and the submission state machine."""

import logging
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import (
    InvalidTransition,
    NotFound,
    ProfileIncomplete,
    ValidationFailed,
)
from core.utils import is_blank, utcnow
from models.decision_record import StatusOverride
from models.review import Review
from models.scheduled_email import ScheduledEmail
from models.speaker import Speaker
from models.submission import (
    DECIDED_STATUSES,
    Submission,
    SubmissionStatus,
    SubmissionType,
    TalkLevel,
)
from services.scoring import compute_aggregates
from services.speaker_profile import SpeakerProfileService, missing_profile_fields
from services.tag_catalog import TagCatalog

logger = logging.getLogger(__name__)

TITLE_MIN_LENGTH = 5
TITLE_MAX_LENGTH = 200
ABSTRACT_MIN_LENGTH = 100
ABSTRACT_MAX_LENGTH = 3000
OUTLINE_MAX_LENGTH = 5000
NOTES_MAX_LENGTH = 2000
MIN_TAGS = 1
MAX_TAGS = 5
WORKSHOP_MIN_HOURS = 2
WORKSHOP_MAX_HOURS = 8

# Fields a speaker may set on a draft, besides tags
DRAFT_FIELDS = (
    "title",
    "abstract",
    "submission_type",
    "talk_level",
    "outline",
    "additional_notes",
    "slides_url",
    "previous_recording_url",
    "workshop_duration_hours",
)

WITHDRAWABLE_STATUSES = (
    SubmissionStatus.SUBMITTED,
    SubmissionStatus.UNDER_REVIEW,
    SubmissionStatus.SHORTLISTED,
    SubmissionStatus.WAITLISTED,
)

# Content fields an admin may correct on a submission in any status
ADMIN_EDITABLE_FIELDS = (
    "title",
    "abstract",
    "submission_type",
    "talk_level",
    "outline",
    "workshop_duration_hours",
)

DECISION_TEMPLATES = ("cfp_acceptance", "cfp_rejection")


@dataclass
class OverrideResult:
    submission: Submission
    override: StatusOverride
    cancelled_emails: int


def _check_length(
    errors: dict[str, str],
    name: str,
    value: str | None,
    min_length: int = 0,
    max_length: int | None = None,
) -> None:
    if value is None:
        if min_length:
            errors[name] = "is required"
        return
    length = len(value.strip())
    if length < min_length:
        errors[name] = f"must be at least {min_length} characters"
    elif max_length is not None and length > max_length:
        errors[name] = f"must be at most {max_length} characters"


def validate_submission_fields(data: dict[str, Any], partial: bool = False) -> None:
    """
    Validate submission fields.

    Args:
        data: Field values; for partial updates only the keys being changed
        partial: Skip required-field checks for keys not present

    Raises:
        ValidationFailed: with one message per offending field
    """
    errors: dict[str, str] = {}

    if not partial or "title" in data:
        _check_length(errors, "title", data.get("title"), TITLE_MIN_LENGTH, TITLE_MAX_LENGTH)
    if not partial or "abstract" in data:
        _check_length(
            errors, "abstract", data.get("abstract"), ABSTRACT_MIN_LENGTH, ABSTRACT_MAX_LENGTH
        )
    if "outline" in data:
        _check_length(errors, "outline", data["outline"], max_length=OUTLINE_MAX_LENGTH)
    if "additional_notes" in data:
        _check_length(
            errors, "additional_notes", data["additional_notes"], max_length=NOTES_MAX_LENGTH
        )

    if not partial or "submission_type" in data:
        try:
            SubmissionType(data.get("submission_type"))
        except ValueError:
            errors["submission_type"] = "must be one of lightning, standard, workshop"

    if not partial or "talk_level" in data:
        try:
            TalkLevel(data.get("talk_level"))
        except ValueError:
            errors["talk_level"] = "must be one of beginner, intermediate, advanced"

    if not partial or "tags" in data:
        tags = data.get("tags") or []
        if len(tags) < MIN_TAGS:
            errors["tags"] = "at least one tag is required"
        elif len(tags) > MAX_TAGS:
            errors["tags"] = f"at most {MAX_TAGS} tags allowed"

    if data.get("submission_type") == SubmissionType.WORKSHOP.value:
        hours = data.get("workshop_duration_hours")
        if hours is None:
            errors["workshop_duration_hours"] = "is required for workshops"
        elif not WORKSHOP_MIN_HOURS <= hours <= WORKSHOP_MAX_HOURS:
            errors["workshop_duration_hours"] = (
                f"must be between {WORKSHOP_MIN_HOURS} and {WORKSHOP_MAX_HOURS} hours"
            )

    if errors:
        raise ValidationFailed("Submission is invalid", fields=errors)


class SubmissionStore:
    """Service owning submissions and their lifecycle."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.tags = TagCatalog(session)
        self.profiles = SpeakerProfileService(session)

    async def _load(self, submission_id: UUID, for_update: bool = False) -> Submission | None:
        stmt = select(Submission).where(Submission.id == submission_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_own(self, speaker_id: UUID, submission_id: UUID) -> Submission:
        """
        Fetch a submission owned by the speaker.

        Missing and foreign submissions are indistinguishable to the caller;
        the real cause is logged.
        """
        submission = await self._load(submission_id)
        if submission is None:
            logger.warning(f"Speaker {speaker_id} requested missing submission {submission_id}")
            raise NotFound("Submission not found")
        if submission.speaker_id != speaker_id:
            logger.warning(
                f"Speaker {speaker_id} attempted to access submission {submission_id} "
                f"owned by {submission.speaker_id}"
            )
            raise NotFound("Submission not found")
        return submission

    async def list_own(self, speaker_id: UUID) -> list[Submission]:
        result = await self.session.execute(
            select(Submission)
            .where(Submission.speaker_id == speaker_id)
            .order_by(Submission.created_at.desc(), Submission.id)
        )
        return list(result.scalars().all())

    async def create_draft(self, speaker_id: UUID, payload: dict[str, Any]) -> Submission:
        """
        Create a draft submission for the speaker.

        The quota check reads current state inside this transaction, with the
        speaker row locked so concurrent creations are serialized.

        Raises:
            ValidationFailed: payload is malformed
            QuotaExceeded: speaker already holds the maximum active submissions
        """
        validate_submission_fields(payload)

        result = await self.session.execute(
            select(Speaker).where(Speaker.id == speaker_id).with_for_update()
        )
        speaker = result.scalar_one_or_none()
        if speaker is None or not speaker.is_active:
            raise NotFound("Speaker not found")

        await self.profiles.ensure_can_submit(speaker_id)

        tags = await self.tags.get_or_create_tags(payload.get("tags") or [])
        values = {name: payload.get(name) for name in DRAFT_FIELDS}
        values["title"] = values["title"].strip()
        values["abstract"] = values["abstract"].strip()
        if values["submission_type"] != SubmissionType.WORKSHOP.value:
            values["workshop_duration_hours"] = None

        submission = Submission(
            speaker_id=speaker_id,
            status=SubmissionStatus.DRAFT.value,
            tags=tags,
            **values,
        )
        self.session.add(submission)
        await self.session.flush()

        logger.info(f"Speaker {speaker_id} created draft submission {submission.id}")
        return submission

    async def update_draft(
        self,
        speaker_id: UUID,
        submission_id: UUID,
        payload: dict[str, Any],
    ) -> Submission:
        """Apply changes to a draft; non-draft submissions are read-only to their owner."""
        submission = await self.get_own(speaker_id, submission_id)
        if submission.status != SubmissionStatus.DRAFT.value:
            raise InvalidTransition(
                "Only drafts can be edited",
                details={"status": submission.status},
            )

        await self._apply_changes(submission, payload, DRAFT_FIELDS + ("tags",))
        await self.session.flush()
        return submission

    async def _apply_changes(
        self,
        submission: Submission,
        payload: dict[str, Any],
        allowed: tuple[str, ...],
    ) -> None:
        unknown = sorted(set(payload) - set(allowed))
        if unknown:
            raise ValidationFailed(
                "Unknown submission fields",
                fields={name: "not an editable field" for name in unknown},
            )

        # Workshop rules apply to the merged result, not just the delta
        merged_type = payload.get("submission_type", submission.submission_type)
        check = dict(payload)
        if merged_type == SubmissionType.WORKSHOP.value:
            check["submission_type"] = merged_type
            check.setdefault("workshop_duration_hours", submission.workshop_duration_hours)
        validate_submission_fields(check, partial=True)

        for name in DRAFT_FIELDS:
            if name in payload:
                value = payload[name]
                if name in ("title", "abstract") and value is not None:
                    value = value.strip()
                setattr(submission, name, value)
        if submission.submission_type != SubmissionType.WORKSHOP.value:
            submission.workshop_duration_hours = None

        if "tags" in payload:
            submission.tags = await self.tags.get_or_create_tags(payload["tags"] or [])

    async def delete_draft(self, speaker_id: UUID, submission_id: UUID) -> None:
        submission = await self.get_own(speaker_id, submission_id)
        if submission.status != SubmissionStatus.DRAFT.value:
            raise InvalidTransition(
                "Only drafts can be deleted; withdraw the submission instead",
                details={"status": submission.status},
            )
        await self.session.delete(submission)
        await self.session.flush()
        logger.info(f"Speaker {speaker_id} deleted draft {submission_id}")

    async def submit(self, speaker_id: UUID, submission_id: UUID) -> Submission:
        """
        Move a draft to ``submitted``.

        Raises:
            NotFound: missing or not owned by the speaker
            ProfileIncomplete: speaker profile lacks name or bio
            InvalidTransition: submission is not a draft (including double submit)
        """
        submission = await self.get_own(speaker_id, submission_id)

        speaker = await self.profiles.get_speaker(speaker_id)
        missing = missing_profile_fields(speaker)
        if missing:
            raise ProfileIncomplete(
                "Complete your profile before submitting",
                details={"missing_fields": missing},
            )

        if submission.status != SubmissionStatus.DRAFT.value:
            raise InvalidTransition(
                f"Cannot submit a submission in status '{submission.status}'",
                details={"status": submission.status},
            )

        submission.status = SubmissionStatus.SUBMITTED.value
        submission.submitted_at = utcnow()
        await self.session.flush()

        logger.info(f"Submission {submission_id} submitted by speaker {speaker_id}")
        return submission

    async def withdraw(self, speaker_id: UUID, submission_id: UUID) -> Submission:
        submission = await self.get_own(speaker_id, submission_id)
        if submission.status not in [s.value for s in WITHDRAWABLE_STATUSES]:
            raise InvalidTransition(
                f"Cannot withdraw a submission in status '{submission.status}'",
                details={"status": submission.status},
            )

        submission.status = SubmissionStatus.WITHDRAWN.value
        submission.withdrawn_at = utcnow()
        await self.session.flush()

        logger.info(f"Submission {submission_id} withdrawn by speaker {speaker_id}")
        return submission

    async def reopen(self, speaker_id: UUID, submission_id: UUID) -> Submission:
        """
        Turn a withdrawn submission back into an editable draft.

        The reopened draft counts against the quota again, so the check runs
        with the speaker row locked, as in ``create_draft``.

        Raises:
            NotFound: missing or not owned by the speaker
            InvalidTransition: submission is not withdrawn
            QuotaExceeded: speaker already holds the maximum active submissions
        """
        result = await self.session.execute(
            select(Speaker).where(Speaker.id == speaker_id).with_for_update()
        )
        speaker = result.scalar_one_or_none()
        if speaker is None or not speaker.is_active:
            raise NotFound("Speaker not found")

        submission = await self.get_own(speaker_id, submission_id)
        if submission.status != SubmissionStatus.WITHDRAWN.value:
            raise InvalidTransition(
                "Only withdrawn submissions can be reopened",
                details={"status": submission.status},
            )

        await self.profiles.ensure_can_submit(speaker_id)

        submission.status = SubmissionStatus.DRAFT.value
        submission.submitted_at = None
        submission.withdrawn_at = None
        await self.session.flush()

        logger.info(f"Submission {submission_id} reopened as draft by speaker {speaker_id}")
        return submission

    async def admin_override(
        self,
        submission_id: UUID,
        new_status: str,
        reason: str,
        changed_by: str,
    ) -> OverrideResult:
        """
        Free-form status change for correcting workflow mistakes.

        Bypasses the state machine but always writes a StatusOverride row in
        the same transaction. Accept/reject must go through the decision
        engine so that a DecisionRecord is written.

        Args:
            submission_id: Submission to change
            new_status: Target status
            reason: Mandatory explanation stored in the audit row
            changed_by: Admin identity

        Returns:
            OverrideResult with the audit row and count of cancelled emails
        """
        if is_blank(reason):
            raise ValidationFailed("A reason is required", fields={"reason": "must not be blank"})
        try:
            target = SubmissionStatus(new_status)
        except ValueError as exc:
            raise ValidationFailed(
                "Unknown status", fields={"status": f"'{new_status}' is not a status"}
            ) from exc
        if target in DECIDED_STATUSES:
            raise InvalidTransition(
                "Accept and reject must be recorded through a decision",
                details={"status": target.value},
            )

        submission = await self._load(submission_id, for_update=True)
        if submission is None:
            raise NotFound("Submission not found")

        previous = submission.status
        submission.status = target.value
        if target == SubmissionStatus.DRAFT:
            submission.submitted_at = None
            submission.withdrawn_at = None
        elif target == SubmissionStatus.WITHDRAWN and submission.withdrawn_at is None:
            submission.withdrawn_at = utcnow()

        cancelled = 0
        if previous in [s.value for s in DECIDED_STATUSES]:
            cancelled = await self._cancel_pending_decision_emails(submission_id, changed_by)

        override = StatusOverride(
            submission_id=submission_id,
            previous_status=previous,
            new_status=target.value,
            reason=reason.strip(),
            changed_by=changed_by,
        )
        self.session.add(override)
        await self.session.flush()

        logger.info(
            f"Status override on {submission_id}: {previous} -> {target.value} by {changed_by}"
        )
        return OverrideResult(submission=submission, override=override, cancelled_emails=cancelled)

    async def _cancel_pending_decision_emails(self, submission_id: UUID, cancelled_by: str) -> int:
        result = await self.session.execute(
            select(ScheduledEmail).where(
                ScheduledEmail.submission_id == submission_id,
                ScheduledEmail.template.in_(DECISION_TEMPLATES),
                ScheduledEmail.sent_at.is_(None),
                ScheduledEmail.cancelled_at.is_(None),
            )
        )
        now = utcnow()
        emails = result.scalars().all()
        for email in emails:
            email.cancelled_at = now
            email.cancelled_by = cancelled_by
        if emails:
            logger.info(f"Cancelled {len(emails)} pending decision email(s) for {submission_id}")
        return len(emails)

    async def _admin_projections(self, submissions: list[Submission]) -> list[dict[str, Any]]:
        ids = [s.id for s in submissions]
        speaker_ids = {s.speaker_id for s in submissions}
        speakers: dict[UUID, Speaker] = {}
        reviews: dict[UUID, list[Review]] = {sid: [] for sid in ids}
        if ids:
            result = await self.session.execute(select(Speaker).where(Speaker.id.in_(speaker_ids)))
            speakers = {speaker.id: speaker for speaker in result.scalars().all()}
            result = await self.session.execute(
                select(Review).where(Review.submission_id.in_(ids)).order_by(Review.created_at)
            )
            for review in result.scalars().all():
                reviews[review.submission_id].append(review)

        projections = []
        for submission in submissions:
            data = submission.to_dict()
            speaker = speakers.get(submission.speaker_id)
            data["speaker"] = speaker.to_dict() if speaker else None
            data["stats"] = compute_aggregates(reviews[submission.id]).to_dict()
            projections.append(data)
        return projections

    async def admin_get(self, submission_id: UUID) -> dict[str, Any]:
        """Admin view: submission, speaker, review aggregates and every review."""
        submission = await self._load(submission_id)
        if submission is None:
            raise NotFound("Submission not found")
        data = (await self._admin_projections([submission]))[0]
        result = await self.session.execute(
            select(Review)
            .where(Review.submission_id == submission_id)
            .order_by(Review.created_at.desc(), Review.id)
        )
        data["reviews"] = [review.to_dict() for review in result.scalars().all()]
        return data

    async def admin_update(
        self,
        submission_id: UUID,
        payload: dict[str, Any],
        changed_by: str,
    ) -> Submission:
        """Correct submission content regardless of status; status is untouched."""
        if not payload:
            raise ValidationFailed("No fields to update")

        submission = await self._load(submission_id, for_update=True)
        if submission is None:
            raise NotFound("Submission not found")

        await self._apply_changes(submission, payload, ADMIN_EDITABLE_FIELDS)
        await self.session.flush()

        logger.info(
            f"Submission {submission_id} content edited by {changed_by}: {sorted(payload)}"
        )
        return submission

    async def admin_list(
        self,
        status: str | None = None,
        submission_type: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        stmt = select(Submission)
        if status:
            stmt = stmt.where(Submission.status == status)
        if submission_type:
            stmt = stmt.where(Submission.submission_type == submission_type)
        stmt = stmt.order_by(Submission.created_at.desc(), Submission.id).limit(limit).offset(offset)
        result = await self.session.execute(stmt)
        return await self._admin_projections(list(result.scalars().all()))
