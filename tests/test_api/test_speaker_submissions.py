"""Speaker and submission API tests"""

from unittest.mock import AsyncMock
from uuid import UUID

from httpx import AsyncClient
from sqlalchemy import select

from factories import SpeakerFactory, draft_payload
from models.submission import Submission
from services.analytics import AnalyticsClient


def _as(speaker) -> dict:
    return {"X-Speaker-Id": str(speaker.id)}


class TestSpeakerEndpoints:
    """Login callback and profile"""

    async def test_first_login_creates_incomplete_profile(self, client: AsyncClient):
        response = await client.post(
            "/api/cfp/speaker/auth/callback",
            json={"email": "New.Speaker@Example.com", "user_id": "auth|42"},
        )
        assert response.status_code == 200

        data = response.json()
        assert data["speaker"]["email"] == "new.speaker@example.com"
        assert data["is_profile_complete"] is False
        assert set(data["missing_fields"]) == {"first_name", "last_name", "bio"}
        assert data["submission_count"] == 0
        assert data["submission_limit"] == 5

        again = await client.post(
            "/api/cfp/speaker/auth/callback", json={"email": "new.speaker@example.com"}
        )
        assert again.json()["speaker"]["id"] == data["speaker"]["id"]

    async def test_update_profile_completes_it(self, client: AsyncClient, db_session):
        speaker = SpeakerFactory(first_name="", last_name="", bio=None)
        db_session.add(speaker)
        await db_session.commit()

        response = await client.put(
            "/api/cfp/speaker/profile",
            headers=_as(speaker),
            json={"first_name": "Ada", "last_name": "Lovelace", "bio": "Wrote the first program."},
        )

        assert response.status_code == 200
        assert response.json()["is_profile_complete"] is True

    async def test_profile_rejects_email_change(self, client: AsyncClient, speaker):
        response = await client.put(
            "/api/cfp/speaker/profile", headers=_as(speaker), json={"email": "x@example.com"}
        )

        assert response.status_code == 422
        assert response.json()["error"] == "validation_failed"

    async def test_profile_requires_speaker_session(self, client: AsyncClient):
        response = await client.get("/api/cfp/speaker/profile")

        assert response.status_code == 403
        assert response.json()["error"] == "not_authorized"


class TestSubmissionEndpoints:
    """Draft lifecycle over HTTP"""

    async def test_create_submit_withdraw(self, client: AsyncClient, speaker, db_session):
        created = await client.post(
            "/api/cfp/submissions", headers=_as(speaker), json=draft_payload()
        )
        assert created.status_code == 201
        submission_id = created.json()["id"]
        assert created.json()["status"] == "draft"
        assert sorted(t["name"] for t in created.json()["tags"]) == ["Performance", "Tooling"]

        submitted = await client.post(
            f"/api/cfp/submissions/{submission_id}/submit", headers=_as(speaker)
        )
        assert submitted.status_code == 200
        assert submitted.json()["status"] == "submitted"
        assert submitted.json()["submitted_at"] is not None

        again = await client.post(
            f"/api/cfp/submissions/{submission_id}/submit", headers=_as(speaker)
        )
        assert again.status_code == 409
        assert again.json()["error"] == "invalid_transition"

        edit = await client.put(
            f"/api/cfp/submissions/{submission_id}",
            headers=_as(speaker),
            json={"title": "A different title"},
        )
        assert edit.status_code == 409

        withdrawn = await client.post(
            f"/api/cfp/submissions/{submission_id}/withdraw", headers=_as(speaker)
        )
        assert withdrawn.status_code == 200
        assert withdrawn.json()["status"] == "withdrawn"

        stored = (
            await db_session.execute(select(Submission).where(Submission.id == UUID(submission_id)))
        ).scalar_one()
        assert stored.withdrawn_at is not None

    async def test_validation_errors_name_fields(self, client: AsyncClient, speaker):
        response = await client.post(
            "/api/cfp/submissions",
            headers=_as(speaker),
            json=draft_payload(title="Hi", tags=[]),
        )

        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "validation_failed"
        assert {"title", "tags"} <= set(body["details"]["fields"])

    async def test_workshop_requires_duration(self, client: AsyncClient, speaker):
        response = await client.post(
            "/api/cfp/submissions",
            headers=_as(speaker),
            json=draft_payload(submission_type="workshop"),
        )

        assert response.status_code == 422
        assert "workshop_duration_hours" in response.json()["details"]["fields"]

    async def test_quota_exceeded(self, client: AsyncClient, speaker, make_submission):
        for status in ("draft", "submitted", "under_review", "accepted", "rejected"):
            await make_submission(status=status)

        response = await client.post(
            "/api/cfp/submissions", headers=_as(speaker), json=draft_payload()
        )

        assert response.status_code == 422
        assert response.json()["error"] == "quota_exceeded"
        assert response.json()["details"] == {"count": 5, "limit": 5}

    async def test_reopen_withdrawn_submission(
        self, client: AsyncClient, speaker, make_submission
    ):
        withdrawn = await make_submission(status="withdrawn")
        submitted = await make_submission(status="submitted")

        reopened = await client.post(
            f"/api/cfp/submissions/{withdrawn.id}/reopen", headers=_as(speaker)
        )
        assert reopened.status_code == 200
        assert reopened.json()["status"] == "draft"
        assert reopened.json()["submitted_at"] is None
        assert reopened.json()["withdrawn_at"] is None

        not_withdrawn = await client.post(
            f"/api/cfp/submissions/{submitted.id}/reopen", headers=_as(speaker)
        )
        assert not_withdrawn.status_code == 409
        assert not_withdrawn.json()["error"] == "invalid_transition"

    async def test_reopen_reports_through_app_analytics_provider(
        self, client: AsyncClient, speaker, make_submission
    ):
        """Routes take their analytics client from the app-level dependency."""
        from app.dependencies import get_analytics_client
        from app.main import app

        analytics = AsyncMock(spec=AnalyticsClient)
        app.dependency_overrides[get_analytics_client] = lambda: analytics
        withdrawn = await make_submission(status="withdrawn")

        response = await client.post(
            f"/api/cfp/submissions/{withdrawn.id}/reopen", headers=_as(speaker)
        )

        assert response.status_code == 200
        analytics.track.assert_awaited_once_with(
            "cfp_submission_reopened", {"submission_id": str(withdrawn.id)}
        )

    async def test_reopen_respects_quota(self, client: AsyncClient, speaker, make_submission):
        for status in ("draft", "submitted", "under_review", "accepted", "rejected"):
            await make_submission(status=status)
        withdrawn = await make_submission(status="withdrawn")

        response = await client.post(
            f"/api/cfp/submissions/{withdrawn.id}/reopen", headers=_as(speaker)
        )

        assert response.status_code == 422
        assert response.json()["error"] == "quota_exceeded"

    async def test_incomplete_profile_cannot_submit(self, client: AsyncClient, db_session):
        speaker = SpeakerFactory(bio=None)
        db_session.add(speaker)
        await db_session.commit()
        created = await client.post(
            "/api/cfp/submissions", headers=_as(speaker), json=draft_payload()
        )

        response = await client.post(
            f"/api/cfp/submissions/{created.json()['id']}/submit", headers=_as(speaker)
        )

        assert response.status_code == 422
        assert response.json()["error"] == "profile_incomplete"
        assert response.json()["details"]["missing_fields"] == ["bio"]

    async def test_other_speakers_submission_is_not_found(
        self, client: AsyncClient, speaker, other_speaker, make_submission
    ):
        theirs = await make_submission(owner=other_speaker, status="draft")
        missing = "00000000-0000-0000-0000-000000000000"

        foreign = await client.get(f"/api/cfp/submissions/{theirs.id}", headers=_as(speaker))
        absent = await client.get(f"/api/cfp/submissions/{missing}", headers=_as(speaker))
        deleted = await client.delete(f"/api/cfp/submissions/{theirs.id}", headers=_as(speaker))

        assert foreign.status_code == absent.status_code == deleted.status_code == 404
        assert foreign.json() == absent.json()

    async def test_list_and_delete_draft(self, client: AsyncClient, speaker, make_submission):
        draft = await make_submission(status="draft")

        listed = await client.get("/api/cfp/submissions", headers=_as(speaker))
        assert [s["id"] for s in listed.json()] == [str(draft.id)]

        response = await client.delete(f"/api/cfp/submissions/{draft.id}", headers=_as(speaker))
        assert response.status_code == 204

        listed = await client.get("/api/cfp/submissions", headers=_as(speaker))
        assert listed.json() == []

    async def test_tag_search_requires_authentication(self, client: AsyncClient, speaker):
        await client.post("/api/cfp/submissions", headers=_as(speaker), json=draft_payload())

        anonymous = await client.get("/api/cfp/tags", params={"q": "tool"})
        found = await client.get("/api/cfp/tags", params={"q": "tool"}, headers=_as(speaker))

        assert anonymous.status_code == 403
        assert [t["name"] for t in found.json()] == ["Tooling"]
