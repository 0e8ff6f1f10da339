from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import httpx

from app.exceptions import UpstreamLookupFailure

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

EMAIL_TOPIC = "external.action.email"
_ACCEPTED_STATUSES = frozenset({200, 202, 204})


@runtime_checkable
class EventBusService(Protocol):
    """Interface for the event bus used to send templated e-mail."""

    async def send_email(self, template_id: str, recipients: Sequence[str], data: dict[str, Any]) -> None:
        """Queue a templated e-mail. Raises UpstreamLookupFailure on failure."""
        ...


class InMemoryEventBusService:
    """In-memory stub that records e-mail payloads."""

    def __init__(self) -> None:
        self.emails: list[dict[str, Any]] = []

    async def send_email(self, template_id: str, recipients: Sequence[str], data: dict[str, Any]) -> None:
        self.emails.append({"sendgrid_template_id": template_id, "recipients": list(recipients), "data": data})


class HttpEventBusService:
    """Posts e-mail messages to the event bus API."""

    def __init__(
        self,
        url: str,
        token: str,
        *,
        originator: str = "leave-api",
        sender: str = "no-reply@topcoder.com",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._token = token
        self._originator = originator
        self._sender = sender
        self._timeout = timeout
        self._transport = transport

    def _build_message(self, topic: str, payload: dict[str, Any]) -> dict[str, Any]:
        return {
            "topic": topic,
            "originator": self._originator,
            "mime-type": "application/json",
            "timestamp": datetime.now(UTC).isoformat(),
            "payload": payload,
        }

    async def send_email(self, template_id: str, recipients: Sequence[str], data: dict[str, Any]) -> None:
        payload = {
            "data": data,
            "from": self._sender,
            "replyTo": self._sender,
            "version": "v3",
            "sendgrid_template_id": template_id,
            "recipients": list(recipients),
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(
                    self._url,
                    json=self._build_message(EMAIL_TOPIC, payload),
                    headers={"Authorization": f"Bearer {self._token}"},
                )
        except httpx.HTTPError as exc:
            logger.error("Event bus request failed: %s", exc)
            raise UpstreamLookupFailure("Sending message to event bus failed") from exc

        if response.status_code not in _ACCEPTED_STATUSES:
            logger.error("Event bus responded %s", response.status_code)
            raise UpstreamLookupFailure(f"Event bus status code: {response.status_code}")


_event_bus_service: EventBusService = InMemoryEventBusService()


def get_event_bus_service() -> EventBusService:
    """Return the configured event bus service."""
    return _event_bus_service


def set_event_bus_service(service: EventBusService) -> None:
    """Override the service (for testing or production wiring)."""
    global _event_bus_service
    _event_bus_service = service
