"""Dependency injection utilities"""

from collections.abc import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from services.access_policy import AccessPolicy
from services.cfp_stats import CfpStatsService
from services.analytics import AnalyticsClient
from services.decision_engine import DecisionEngine
from services.notification_queue import NotificationQueue
from services.review_ledger import ReviewLedger
from services.reviewer_registry import ReviewerRegistry
from services.speaker_profile import SpeakerProfileService
from services.submission_store import SubmissionStore
from services.tag_catalog import TagCatalog


async def get_db_session() -> AsyncGenerator[AsyncSession]:
    """Dependency for getting database session"""
    async for session in get_db():
        yield session


def get_analytics_client() -> AnalyticsClient:
    """Dependency for the analytics sink"""
    return AnalyticsClient()


def get_tag_catalog(db: AsyncSession = Depends(get_db_session)) -> TagCatalog:
    return TagCatalog(db)


def get_speaker_profile_service(
    db: AsyncSession = Depends(get_db_session),
) -> SpeakerProfileService:
    return SpeakerProfileService(db)


def get_submission_store(db: AsyncSession = Depends(get_db_session)) -> SubmissionStore:
    return SubmissionStore(db)


def get_cfp_stats_service(db: AsyncSession = Depends(get_db_session)) -> CfpStatsService:
    return CfpStatsService(db)


def get_access_policy(db: AsyncSession = Depends(get_db_session)) -> AccessPolicy:
    return AccessPolicy(db)


def get_reviewer_registry(db: AsyncSession = Depends(get_db_session)) -> ReviewerRegistry:
    return ReviewerRegistry(db)


def get_review_ledger(db: AsyncSession = Depends(get_db_session)) -> ReviewLedger:
    return ReviewLedger(db)


def get_notification_queue(db: AsyncSession = Depends(get_db_session)) -> NotificationQueue:
    return NotificationQueue(db)


def get_decision_engine(
    db: AsyncSession = Depends(get_db_session),
    analytics: AnalyticsClient = Depends(get_analytics_client),
) -> DecisionEngine:
    """Dependency for the decision engine"""
    return DecisionEngine(db, analytics=analytics)
