"""Fire-and-forget analytics sink for CFP status changes and decisions."""

import logging
from typing import Any

import httpx

from core.config import get_settings
from core.utils import utcnow

logger = logging.getLogger(__name__)


class AnalyticsClient:
    """
    Inform an external analytics sink about CFP events.

    Call only after the originating transaction has committed. Failures are
    logged and never propagated, so they cannot roll back the core action.
    """

    def __init__(self, webhook_url: str | None = None, timeout: float | None = None) -> None:
        settings = get_settings()
        self.webhook_url = webhook_url if webhook_url is not None else settings.analytics_webhook_url
        self.timeout = timeout if timeout is not None else settings.analytics_timeout_seconds

    async def track(self, event: str, properties: dict[str, Any] | None = None) -> bool:
        """
        Send one event.

        Returns:
            True if the sink accepted the event (or no sink is configured and
            the event was logged), False if delivery failed
        """
        body = {
            "event": event,
            "properties": properties or {},
            "timestamp": utcnow().isoformat(),
        }

        if not self.webhook_url:
            logger.debug(f"Analytics event {event}: {body['properties']}")
            return True

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.webhook_url, json=body)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Analytics event {event} not delivered: {e}")
            return False

        return True