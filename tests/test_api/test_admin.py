"""Admin API tests"""

from datetime import timedelta

from httpx import AsyncClient

from core.utils import utcnow


class TestAdminAuthentication:
    """Admin routes accept the admin header or a super_admin reviewer"""

    async def test_requires_identity(self, client: AsyncClient):
        response = await client.get("/api/cfp/admin/submissions")

        assert response.status_code == 403
        assert response.json()["error"] == "not_authorized"

    async def test_plain_reviewer_is_forbidden(self, client: AsyncClient, reviewer):
        response = await client.get(
            "/api/cfp/admin/submissions", headers={"X-Reviewer-Id": str(reviewer.id)}
        )

        assert response.status_code == 403
        assert response.json()["error"] == "forbidden"

    async def test_super_admin_reviewer_is_admitted(self, client: AsyncClient, super_admin):
        response = await client.get(
            "/api/cfp/admin/submissions", headers={"X-Reviewer-Id": str(super_admin.id)}
        )

        assert response.status_code == 200


class TestDecisionEndpoints:
    """Decisions, history and decision emails"""

    async def test_decision_schedules_nothing(
        self, client: AsyncClient, admin_headers, make_submission
    ):
        submission = await make_submission()
        url = f"/api/cfp/admin/submissions/{submission.id}"

        response = await client.post(
            f"{url}/decision", headers=admin_headers, json={"decision": "accepted"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "accepted"
        assert data["previous_status"] == "submitted"
        assert data["decision"]["decided_by"] == "admin:ops@example.com"

        status = await client.get(f"{url}/decision/status", headers=admin_headers)
        assert status.json()["decision_count"] == 1
        assert status.json()["pending_emails"] == []

    async def test_decision_on_draft_conflicts(
        self, client: AsyncClient, admin_headers, make_submission
    ):
        draft = await make_submission(status="draft")

        response = await client.post(
            f"/api/cfp/admin/submissions/{draft.id}/decision",
            headers=admin_headers,
            json={"decision": "rejected"},
        )

        assert response.status_code == 409
        assert response.json()["error"] == "invalid_transition"

    async def test_reversal_shows_in_history(
        self, client: AsyncClient, admin_headers, make_submission
    ):
        submission = await make_submission()
        url = f"/api/cfp/admin/submissions/{submission.id}/decision"

        await client.post(url, headers=admin_headers, json={"decision": "rejected"})
        await client.post(url, headers=admin_headers, json={"decision": "accepted"})
        history = await client.get(url, headers=admin_headers)

        data = history.json()
        assert data["status"] == "accepted"
        assert data["reversed"] is True
        assert [d["decision"] for d in data["decisions"]] == ["accepted", "rejected"]

    async def test_email_queue_lifecycle(
        self, client: AsyncClient, admin_headers, speaker, make_submission
    ):
        submission = await make_submission()
        url = f"/api/cfp/admin/submissions/{submission.id}"
        await client.post(f"{url}/decision", headers=admin_headers, json={"decision": "accepted"})

        scheduled = await client.post(
            f"{url}/schedule-email",
            headers=admin_headers,
            json={"personal_message": "See you there"},
        )
        assert scheduled.status_code == 201
        email = scheduled.json()
        assert email["template"] == "cfp_acceptance"
        assert email["recipient"] == speaker.email
        assert email["state"] == "pending"

        duplicate = await client.post(f"{url}/schedule-email", headers=admin_headers, json={})
        assert duplicate.status_code == 409
        assert duplicate.json()["error"] == "conflict"

        due_now = await client.get("/api/cfp/admin/emails/pending", headers=admin_headers)
        assert due_now.json() == []
        ahead = await client.get(
            "/api/cfp/admin/emails/pending",
            headers=admin_headers,
            params={"before": (utcnow() + timedelta(hours=1)).isoformat()},
        )
        assert [e["id"] for e in ahead.json()] == [email["id"]]

        failed = await client.post(
            f"/api/cfp/admin/emails/{email['id']}/failure",
            headers=admin_headers,
            json={"error": "mailbox full"},
        )
        assert failed.json()["state"] == "pending"
        assert failed.json()["attempt_count"] == 1

        sent = await client.post(f"/api/cfp/admin/emails/{email['id']}/sent", headers=admin_headers)
        assert sent.json()["state"] == "sent"

        cancelled = await client.post(
            f"/api/cfp/admin/emails/{email['id']}/cancel", headers=admin_headers
        )
        assert cancelled.status_code == 200
        assert cancelled.json()["state"] == "sent"

    async def test_bulk_decide_reports_failures(
        self, client: AsyncClient, admin_headers, make_submission
    ):
        ready = await make_submission()
        draft = await make_submission(status="draft")

        response = await client.post(
            "/api/cfp/admin/decisions/bulk",
            headers=admin_headers,
            json={"submission_ids": [str(ready.id), str(draft.id)], "decision": "rejected"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["succeeded"] == [str(ready.id)]
        assert data["failed"] == [str(draft.id)]
        assert data["errors"][0]["error"] == "invalid_transition"


class TestStatusOverride:
    """Audited status changes"""

    async def test_override_requires_reason(
        self, client: AsyncClient, admin_headers, make_submission
    ):
        submission = await make_submission()
        url = f"/api/cfp/admin/submissions/{submission.id}/status"

        missing = await client.post(url, headers=admin_headers, json={"status": "draft"})
        blank = await client.post(
            url, headers=admin_headers, json={"status": "draft", "reason": "   "}
        )

        assert missing.status_code == blank.status_code == 422
        assert "reason" in blank.json()["details"]["fields"]

    async def test_override_cannot_accept(
        self, client: AsyncClient, admin_headers, make_submission
    ):
        submission = await make_submission()

        response = await client.post(
            f"/api/cfp/admin/submissions/{submission.id}/status",
            headers=admin_headers,
            json={"status": "accepted", "reason": "Skip the panel"},
        )

        assert response.status_code == 409

    async def test_override_is_audited(
        self, client: AsyncClient, admin_headers, make_submission
    ):
        submission = await make_submission()
        url = f"/api/cfp/admin/submissions/{submission.id}"

        response = await client.post(
            f"{url}/status",
            headers=admin_headers,
            json={"status": "draft", "reason": "Speaker asked to edit"},
        )

        assert response.status_code == 200
        assert response.json()["status"] == "draft"
        assert response.json()["override"]["changed_by"] == "admin:ops@example.com"

        history = await client.get(f"{url}/decision", headers=admin_headers)
        assert [o["reason"] for o in history.json()["overrides"]] == ["Speaker asked to edit"]


class TestAdminSubmissions:
    """Full-detail views"""

    async def test_detail_includes_scoring(
        self, client: AsyncClient, admin_headers, speaker, reviewer, make_submission
    ):
        submission = await make_submission()
        await client.put(
            f"/api/cfp/reviewer/submissions/{submission.id}/review",
            headers={"X-Reviewer-Id": str(reviewer.id)},
            json={"score_overall": 9, "private_notes": "Strong"},
        )

        response = await client.get(
            f"/api/cfp/admin/submissions/{submission.id}", headers=admin_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["speaker"]["email"] == speaker.email
        assert data["scoring"]["review_count"] == 1
        assert data["scoring"]["avg_overall"] == 9
        assert data["reviews"][0]["private_notes"] == "Strong"

    async def test_list_filters_by_status(
        self, client: AsyncClient, admin_headers, make_submission
    ):
        await make_submission()
        under_review = await make_submission(status="under_review")

        response = await client.get(
            "/api/cfp/admin/submissions",
            headers=admin_headers,
            params={"status": "under_review"},
        )

        assert [s["id"] for s in response.json()] == [str(under_review.id)]


class TestAdminEdits:
    """Content corrections, speaker accounts and dashboard counters"""

    async def test_edit_submission_content(
        self, client: AsyncClient, admin_headers, make_submission
    ):
        submission = await make_submission(
            status="under_review", submission_type="workshop", workshop_duration_hours=4
        )
        url = f"/api/cfp/admin/submissions/{submission.id}"

        response = await client.put(
            url,
            headers=admin_headers,
            json={"title": "Corrected workshop title", "submission_type": "standard"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Corrected workshop title"
        assert data["submission_type"] == "standard"
        assert data["workshop_duration_hours"] is None
        assert data["status"] == "under_review"

        status_change = await client.put(url, headers=admin_headers, json={"status": "accepted"})
        assert status_change.status_code == 422

    async def test_speaker_detail_and_edit(
        self, client: AsyncClient, admin_headers, speaker, make_submission
    ):
        submission = await make_submission()
        url = f"/api/cfp/admin/speakers/{speaker.id}"

        detail = await client.get(url, headers=admin_headers)
        assert detail.status_code == 200
        assert detail.json()["submission_count"] == 1
        assert detail.json()["submissions"][0]["id"] == str(submission.id)

        edited = await client.put(
            url, headers=admin_headers, json={"company": "", "job_title": "CTO"}
        )
        assert edited.status_code == 200
        assert edited.json()["company"] is None
        assert edited.json()["job_title"] == "CTO"

        empty = await client.put(url, headers=admin_headers, json={})
        assert empty.status_code == 422

    async def test_speaker_routes_need_admin(self, client: AsyncClient, speaker, reviewer):
        response = await client.get(
            f"/api/cfp/admin/speakers/{speaker.id}",
            headers={"X-Reviewer-Id": str(reviewer.id)},
        )

        assert response.status_code == 403

    async def test_stats(self, client: AsyncClient, admin_headers, make_submission):
        await make_submission(status="accepted")
        await make_submission(status="draft")

        response = await client.get("/api/cfp/admin/stats", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total_submissions"] == 2
        assert data["submissions_by_status"]["accepted"] == 1
        assert data["accepted_count"] == 1
        assert data["total_speakers"] == 1


class TestReviewerManagement:
    """Invitations and account state"""

    async def test_invite_and_manage(self, client: AsyncClient, admin_headers):
        invited = await client.post(
            "/api/cfp/admin/reviewers",
            headers=admin_headers,
            json={"email": "Grace@Example.com", "name": "Grace"},
        )
        assert invited.status_code == 201
        reviewer = invited.json()
        assert reviewer["email"] == "grace@example.com"
        assert reviewer["can_see_speaker_identity"] is False
        assert reviewer["accepted_at"] is None

        duplicate = await client.post(
            "/api/cfp/admin/reviewers", headers=admin_headers, json={"email": "grace@example.com"}
        )
        assert duplicate.status_code == 409

        url = f"/api/cfp/admin/reviewers/{reviewer['id']}"
        resent = await client.post(f"{url}/resend-invite", headers=admin_headers)
        assert resent.json()["invite_sent_count"] == 2

        patched = await client.patch(
            url, headers=admin_headers, json={"role": "readonly", "can_see_speaker_identity": True}
        )
        assert patched.json()["role"] == "readonly"
        assert patched.json()["can_see_speaker_identity"] is True

        deactivated = await client.post(f"{url}/deactivate", headers=admin_headers)
        assert deactivated.json()["is_active"] is False
        reactivated = await client.post(f"{url}/reactivate", headers=admin_headers)
        assert reactivated.json()["is_active"] is True

        stats = await client.get(f"{url}/stats", headers=admin_headers)
        assert stats.json()["review_count"] == 0


class TestTagAdministration:
    """Tag CRUD with similarity warnings"""

    async def test_create_update_delete(self, client: AsyncClient, admin_headers):
        created = await client.post(
            "/api/cfp/admin/tags", headers=admin_headers, json={"name": "Node.js"}
        )
        assert created.status_code == 201
        tag = created.json()["tag"]
        assert tag["is_suggested"] is True
        assert created.json()["similar"] == []

        similar = await client.post(
            "/api/cfp/admin/tags", headers=admin_headers, json={"name": "Node"}
        )
        assert [t["name"] for t in similar.json()["similar"]] == ["Node.js"]

        clash = await client.post(
            "/api/cfp/admin/tags", headers=admin_headers, json={"name": "node.JS"}
        )
        assert clash.status_code == 409

        renamed = await client.patch(
            f"/api/cfp/admin/tags/{tag['id']}", headers=admin_headers, json={"name": "NodeJS"}
        )
        assert renamed.json()["name"] == "NodeJS"

        deleted = await client.delete(f"/api/cfp/admin/tags/{tag['id']}", headers=admin_headers)
        assert deleted.status_code == 204

        listed = await client.get("/api/cfp/admin/tags", headers=admin_headers)
        assert [t["name"] for t in listed.json()] == ["Node"]
