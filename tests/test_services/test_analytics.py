"""Analytics sink tests"""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx

from services.analytics import AnalyticsClient


def _mock_http_client(post):
    client = MagicMock()
    client.post = post
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    return client


class TestAnalyticsClient:
    """Delivery failures are logged, never raised."""

    async def test_without_webhook_only_logs(self):
        client = AnalyticsClient(webhook_url="")

        with patch("services.analytics.httpx.AsyncClient") as http_client:
            assert await client.track("cfp_decision_made", {"decision": "accepted"}) is True

        http_client.assert_not_called()

    async def test_posts_event(self):
        response = MagicMock()
        response.raise_for_status = MagicMock()
        post = AsyncMock(return_value=response)
        client = AnalyticsClient(webhook_url="https://analytics.example.com/hook", timeout=1.0)

        with patch(
            "services.analytics.httpx.AsyncClient", return_value=_mock_http_client(post)
        ):
            assert await client.track("cfp_submission_submitted", {"submission_id": "abc"}) is True

        url = post.await_args.args[0]
        body = post.await_args.kwargs["json"]
        assert url == "https://analytics.example.com/hook"
        assert body["event"] == "cfp_submission_submitted"
        assert body["properties"] == {"submission_id": "abc"}
        assert "timestamp" in body

    async def test_http_error_is_swallowed(self, caplog):
        post = AsyncMock(side_effect=httpx.ConnectError("connection refused"))
        client = AnalyticsClient(webhook_url="https://analytics.example.com/hook")

        with patch(
            "services.analytics.httpx.AsyncClient", return_value=_mock_http_client(post)
        ):
            assert await client.track("cfp_decision_made") is False

        assert "not delivered" in caplog.text
