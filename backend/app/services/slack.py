from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

import httpx

from app.exceptions import NotificationNotConfigured, UpstreamLookupFailure

logger = logging.getLogger(__name__)


@runtime_checkable
class SlackService(Protocol):
    """Interface for posting messages to the team Slack channel."""

    async def send_notification(self, message: str) -> bool:
        """Post *message*. Returns False when Slack is not configured; raises on delivery failure."""
        ...

    async def send_test_notification(self, message: str) -> None:
        """Post *message*, raising if Slack is not configured or delivery fails."""
        ...


class InMemorySlackService:
    """In-memory stub that records every message it is asked to send."""

    def __init__(self, *, configured: bool = True) -> None:
        self.configured = configured
        self.messages: list[str] = []

    async def send_notification(self, message: str) -> bool:
        if not self.configured:
            return False
        self.messages.append(message)
        return True

    async def send_test_notification(self, message: str) -> None:
        if not self.configured:
            raise NotificationNotConfigured
        self.messages.append(message)


class HttpSlackService:
    """Slack Web API client (chat.postMessage)."""

    def __init__(
        self,
        bot_key: str,
        channel_id: str,
        *,
        env_name: str = "DEV",
        api_url: str = "https://slack.com/api/chat.postMessage",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._bot_key = bot_key
        self._channel_id = channel_id
        self._env_name = env_name
        self._api_url = api_url
        self._timeout = timeout
        self._transport = transport
        if not self.is_configured:
            logger.error("Slack configuration is incomplete: SLACK_BOT_KEY or SLACK_CHANNEL_ID is missing")

    @property
    def is_configured(self) -> bool:
        return bool(self._bot_key and self._channel_id)

    def _build_payload(self, message: str) -> dict[str, str]:
        return {"channel": self._channel_id, "text": f"[{self._env_name}] {message}"}

    async def _post_message(self, message: str) -> None:
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(
                    self._api_url,
                    json=self._build_payload(message),
                    headers={"Authorization": f"Bearer {self._bot_key}"},
                )
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPStatusError as exc:
            logger.error("Slack API responded %s: %s", exc.response.status_code, exc.response.text)
            raise UpstreamLookupFailure(f"Error sending Slack notification: {exc}") from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise UpstreamLookupFailure(f"Error sending Slack notification: {exc}") from exc

        if not isinstance(body, dict) or not body.get("ok"):
            error = body.get("error") if isinstance(body, dict) else None
            raise UpstreamLookupFailure(f"Slack API error: {error or 'unknown_error'}")

    async def send_notification(self, message: str) -> bool:
        if not self.is_configured:
            logger.warning("Slack is not configured; skipping notification")
            return False
        logger.debug("Sending Slack notification to channel %s", self._channel_id)
        await self._post_message(message)
        logger.info("Slack notification sent")
        return True

    async def send_test_notification(self, message: str) -> None:
        if not self.is_configured:
            raise NotificationNotConfigured
        await self._post_message(message)
        logger.info("Slack test notification sent")


_slack_service: SlackService = InMemorySlackService()


def get_slack_service() -> SlackService:
    """FastAPI dependency for the Slack service."""
    return _slack_service


def set_slack_service(service: SlackService) -> None:
    """Override the service (for testing or production wiring)."""
    global _slack_service
    _slack_service = service
