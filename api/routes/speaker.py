"""Speaker account endpoints"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas import AuthCallbackRequest, SpeakerProfileResponse, SpeakerProfileUpdate
from app.auth import get_current_speaker
from app.dependencies import get_db_session, get_speaker_profile_service
from models.speaker import Speaker
from services.speaker_profile import SpeakerProfileService, profile_summary

router = APIRouter(prefix="/api/cfp/speaker", tags=["Speakers"])


async def _profile_response(
    service: SpeakerProfileService, speaker: Speaker
) -> SpeakerProfileResponse:
    summary = profile_summary(speaker)
    quota = await service.can_submit(speaker.id)
    return SpeakerProfileResponse(
        speaker=speaker,
        is_profile_complete=summary.is_profile_complete,
        missing_fields=summary.missing_fields,
        submission_count=quota.count,
        submission_limit=quota.limit,
    )


@router.post("/auth/callback", response_model=SpeakerProfileResponse)
async def speaker_auth_callback(
    request: AuthCallbackRequest,
    service: SpeakerProfileService = Depends(get_speaker_profile_service),
    db: AsyncSession = Depends(get_db_session),
):
    """
    Resolve the speaker for a completed login, creating the account on first login.

    Called by the authentication gateway.
    """
    speaker = await service.get_or_create_speaker(request.email, request.user_id)
    await db.commit()
    return await _profile_response(service, speaker)


@router.get("/profile", response_model=SpeakerProfileResponse)
async def get_profile(
    speaker: Speaker = Depends(get_current_speaker),
    service: SpeakerProfileService = Depends(get_speaker_profile_service),
):
    """Get the caller's profile with completeness and quota usage."""
    return await _profile_response(service, speaker)


@router.put("/profile", response_model=SpeakerProfileResponse)
async def update_profile(
    request: SpeakerProfileUpdate,
    speaker: Speaker = Depends(get_current_speaker),
    service: SpeakerProfileService = Depends(get_speaker_profile_service),
    db: AsyncSession = Depends(get_db_session),
):
    """Update the caller's profile. Omitted fields are left unchanged."""
    updated = await service.update_profile(speaker.id, request.model_dump(exclude_unset=True))
    await db.commit()
    return await _profile_response(service, updated)
