"""Speaker profile gate: profile completeness and submission quota."""

import logging
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import get_settings
from core.errors import Conflict, NotFound, QuotaExceeded, ValidationFailed
from core.utils import is_blank, normalize_email
from models.speaker import IDENTITY_FIELDS, Speaker
from models.submission import Submission, SubmissionStatus

logger = logging.getLogger(__name__)

REQUIRED_PROFILE_FIELDS = ("first_name", "last_name", "bio")

# Email is the login identity and is not editable through the profile
EDITABLE_PROFILE_FIELDS = tuple(f for f in IDENTITY_FIELDS if f != "email")


@dataclass
class QuotaCheck:
    """Result of a submission quota check."""

    allowed: bool
    count: int
    limit: int
    reason: str | None = None


@dataclass
class ProfileSummary:
    is_profile_complete: bool
    missing_fields: list[str] = field(default_factory=list)


def missing_profile_fields(speaker: Speaker) -> list[str]:
    return [name for name in REQUIRED_PROFILE_FIELDS if is_blank(getattr(speaker, name))]


def is_profile_complete(speaker: Speaker) -> bool:
    """True iff first name, last name and bio are all non-blank."""
    return not missing_profile_fields(speaker)


def profile_summary(speaker: Speaker) -> ProfileSummary:
    missing = missing_profile_fields(speaker)
    return ProfileSummary(is_profile_complete=not missing, missing_fields=missing)


def _apply_profile_fields(
    speaker: Speaker, fields: dict[str, Any], blank_as_null: bool = False
) -> None:
    for name, value in fields.items():
        if isinstance(value, str):
            value = value.strip()
        if name in ("first_name", "last_name"):
            value = value or ""
        elif blank_as_null and not value:
            value = None
        setattr(speaker, name, value)


class SpeakerProfileService:
    """Service for speaker accounts and the pre-submission gate."""

    def __init__(self, session: AsyncSession, quota_limit: int | None = None) -> None:
        """
        Initialize speaker profile service.

        Args:
            session: Database session
            quota_limit: Maximum non-withdrawn submissions per speaker
                (default: from config)
        """
        self.session = session
        self.quota_limit = (
            quota_limit
            if quota_limit is not None
            else get_settings().max_submissions_per_speaker
        )

    async def get_speaker(self, speaker_id: UUID) -> Speaker:
        speaker = await self.session.get(Speaker, speaker_id)
        if speaker is None or not speaker.is_active:
            raise NotFound("Speaker not found")
        return speaker

    async def get_or_create_speaker(self, email: str, user_id: str | None = None) -> Speaker:
        """
        Resolve a speaker on authentication callback, creating one on first login.

        Args:
            email: Verified email address from the identity provider
            user_id: Identity provider subject, linked on first sight

        Returns:
            Existing or new Speaker
        """
        if is_blank(email) or "@" not in email:
            raise ValidationFailed("A valid email is required", fields={"email": "invalid email"})

        normalized = normalize_email(email)
        result = await self.session.execute(select(Speaker).where(Speaker.email == normalized))
        speaker = result.scalar_one_or_none()

        if speaker is not None:
            if user_id and not speaker.user_id:
                speaker.user_id = user_id
                await self.session.flush()
            return speaker

        speaker = Speaker(email=normalized, user_id=user_id)
        self.session.add(speaker)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise Conflict("Speaker account already exists") from exc

        logger.info(f"Created speaker {speaker.id} on first login")
        return speaker

    async def update_profile(self, speaker_id: UUID, fields: dict[str, Any]) -> Speaker:
        """Apply profile field changes on behalf of the speaker."""
        self._check_profile_fields(fields)
        speaker = await self.get_speaker(speaker_id)
        _apply_profile_fields(speaker, fields)
        await self.session.flush()
        return speaker

    def _check_profile_fields(self, fields: dict[str, Any]) -> None:
        unknown = sorted(set(fields) - set(EDITABLE_PROFILE_FIELDS))
        if unknown:
            raise ValidationFailed(
                "Unknown profile fields",
                fields={name: "not an editable profile field" for name in unknown},
            )

    async def admin_get_speaker(self, speaker_id: UUID) -> dict[str, Any]:
        """
        Admin view of a speaker, including deactivated accounts.

        Returns:
            Dict with the speaker, their submission count and a short listing
            of their submissions, newest first
        """
        speaker = await self.session.get(Speaker, speaker_id)
        if speaker is None:
            raise NotFound("Speaker not found")

        result = await self.session.execute(
            select(
                Submission.id,
                Submission.title,
                Submission.status,
                Submission.submission_type,
            )
            .where(Submission.speaker_id == speaker_id)
            .order_by(Submission.created_at.desc(), Submission.id)
        )
        submissions = [
            {
                "id": str(row.id),
                "title": row.title,
                "status": row.status,
                "submission_type": row.submission_type,
            }
            for row in result.all()
        ]

        data = speaker.to_dict()
        data["is_active"] = speaker.is_active
        return {
            "speaker": data,
            "submission_count": len(submissions),
            "submissions": submissions,
        }

    async def admin_update_speaker(
        self,
        speaker_id: UUID,
        fields: dict[str, Any],
        changed_by: str,
    ) -> Speaker:
        """Edit a speaker profile as an admin. Blank optional fields are cleared."""
        if not fields:
            raise ValidationFailed("No fields to update")
        self._check_profile_fields(fields)

        speaker = await self.session.get(Speaker, speaker_id)
        if speaker is None:
            raise NotFound("Speaker not found")

        _apply_profile_fields(speaker, fields, blank_as_null=True)
        await self.session.flush()

        logger.info(f"Speaker {speaker_id} profile edited by {changed_by}: {sorted(fields)}")
        return speaker

    async def count_active_submissions(self, speaker_id: UUID) -> int:
        """Count submissions that occupy quota (anything not withdrawn)."""
        result = await self.session.execute(
            select(func.count(Submission.id)).where(
                Submission.speaker_id == speaker_id,
                Submission.status != SubmissionStatus.WITHDRAWN.value,
            )
        )
        return result.scalar_one()

    async def can_submit(self, speaker_id: UUID) -> QuotaCheck:
        """
        Check the submission quota against current persisted state.

        Callers creating a submission must run this in the same transaction as
        the insert.
        """
        count = await self.count_active_submissions(speaker_id)
        if count >= self.quota_limit:
            return QuotaCheck(
                allowed=False,
                count=count,
                limit=self.quota_limit,
                reason="quota_exceeded",
            )
        return QuotaCheck(allowed=True, count=count, limit=self.quota_limit)

    async def ensure_can_submit(self, speaker_id: UUID) -> QuotaCheck:
        check = await self.can_submit(speaker_id)
        if not check.allowed:
            logger.info(f"Speaker {speaker_id} hit submission quota ({check.count}/{check.limit})")
            raise QuotaExceeded(
                f"You can have at most {check.limit} active submissions",
                details={"count": check.count, "limit": check.limit},
            )
        return check
