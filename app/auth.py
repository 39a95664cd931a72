"""
Caller identity.

Authentication happens upstream; the gateway forwards the authenticated
principal as trusted headers:

- ``X-Speaker-Id``: speaker id
- ``X-Reviewer-Id``: reviewer id
- ``X-Admin-Id``: opaque admin principal

These dependencies resolve the headers to accounts and enforce the role a
route needs.
"""

import logging
from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from app.dependencies import get_db_session
from core.errors import Forbidden, NotAuthorized
from core.utils import is_blank
from models.reviewer import Reviewer, ReviewerRole
from models.speaker import Speaker
from services.access_policy import load_active_reviewer

logger = logging.getLogger(__name__)


@dataclass
class AdminPrincipal:
    """An admin caller: a super_admin reviewer or a gateway-asserted admin."""

    label: str
    reviewer: Reviewer | None = None

    @property
    def reviewer_id(self) -> UUID | None:
        return self.reviewer.id if self.reviewer is not None else None


async def get_current_speaker(
    x_speaker_id: UUID | None = Header(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> Speaker:
    """Dependency resolving the calling speaker"""
    if x_speaker_id is None:
        raise NotAuthorized("Speaker session required")
    speaker = await db.get(Speaker, x_speaker_id)
    if speaker is None or not speaker.is_active:
        logger.warning(f"Unknown or inactive speaker id {x_speaker_id}")
        raise NotAuthorized("Speaker session required")
    return speaker


async def get_current_reviewer(
    x_reviewer_id: UUID | None = Header(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> Reviewer:
    """Dependency resolving the calling reviewer; must be active"""
    if x_reviewer_id is None:
        raise NotAuthorized("Reviewer session required")
    return await load_active_reviewer(db, x_reviewer_id)


async def require_admin(
    x_admin_id: str | None = Header(default=None),
    x_reviewer_id: UUID | None = Header(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> AdminPrincipal:
    """Dependency requiring an admin caller"""
    if not is_blank(x_admin_id):
        return AdminPrincipal(label=f"admin:{x_admin_id.strip()}")

    if x_reviewer_id is None:
        raise NotAuthorized("Admin session required")

    reviewer = await load_active_reviewer(db, x_reviewer_id)
    if reviewer.role != ReviewerRole.SUPER_ADMIN.value:
        logger.warning(f"Reviewer {reviewer.id} ({reviewer.role}) attempted an admin action")
        raise Forbidden("Admin access required")
    return AdminPrincipal(label=f"reviewer:{reviewer.id}", reviewer=reviewer)


async def require_authenticated(
    x_admin_id: str | None = Header(default=None),
    x_reviewer_id: UUID | None = Header(default=None),
    x_speaker_id: UUID | None = Header(default=None),
) -> str:
    """Dependency for routes open to any authenticated caller"""
    if not is_blank(x_admin_id):
        return f"admin:{x_admin_id.strip()}"
    if x_reviewer_id is not None:
        return f"reviewer:{x_reviewer_id}"
    if x_speaker_id is not None:
        return f"speaker:{x_speaker_id}"
    raise NotAuthorized("Authentication required")
