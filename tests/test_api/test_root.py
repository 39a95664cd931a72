"""Root, health and API info endpoints"""

from datetime import timedelta

from httpx import AsyncClient

from core.utils import utcnow
from models.scheduled_email import ScheduledEmail


class TestRootEndpoints:
    """Service metadata endpoints"""

    async def test_root(self, client: AsyncClient):
        """Root endpoint returns basic info"""
        response = await client.get("/")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "running"
        assert "version" in data

    async def test_health_counts_due_emails(self, client: AsyncClient, db_session):
        """Health reports notifications the worker has not picked up yet"""
        db_session.add_all(
            [
                ScheduledEmail(
                    template="reviewer_invitation",
                    recipient="due@example.com",
                    fire_at=utcnow() - timedelta(minutes=5),
                ),
                ScheduledEmail(
                    template="reviewer_invitation",
                    recipient="later@example.com",
                    fire_at=utcnow() + timedelta(hours=1),
                ),
            ]
        )
        await db_session.commit()

        response = await client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["database_connected"] is True
        assert data["emails_due"] == 1

    async def test_api_info_exposes_rules(self, client: AsyncClient):
        """Clients get the limits they need to render forms"""
        response = await client.get("/api")
        assert response.status_code == 200

        data = response.json()
        assert data["endpoints"]["admin"] == "/api/cfp/admin"
        assert data["rules"]["max_submissions_per_speaker"] == 5
        assert data["rules"]["review_score_max"] == 10
        assert data["rules"]["tags_per_submission"] == {"min": 1, "max": 5}
