from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from app.services.event_bus import HttpEventBusService, set_event_bus_service
from app.services.identity import HttpIdentityService, set_identity_service
from app.services.lock import PostgresAdvisoryLockStore, set_lock_store
from app.services.slack import HttpSlackService, set_slack_service

if TYPE_CHECKING:
    from app.config import Settings

logger = logging.getLogger(__name__)


def configure_integrations(settings: Settings) -> None:
    """Swap the in-memory collaborator stubs for the real clients."""
    set_lock_store(PostgresAdvisoryLockStore(connect_timeout=settings.lock_connect_timeout_seconds))
    set_slack_service(
        HttpSlackService(
            settings.slack_bot_key,
            settings.slack_channel_id,
            env_name=settings.env_name,
            api_url=settings.slack_api_url,
        )
    )

    if settings.identity_api_token:
        set_identity_service(
            HttpIdentityService(
                settings.identity_api_url,
                settings.identity_api_token,
                timeout=settings.identity_timeout_seconds,
            )
        )
    else:
        logger.warning("IDENTITY_API_TOKEN is not set; display names fall back to record attribution")

    if settings.bus_api_token:
        set_event_bus_service(
            HttpEventBusService(settings.bus_api_url, settings.bus_api_token, originator=settings.bus_originator)
        )
    else:
        logger.warning("BUS_API_TOKEN is not set; reminder e-mails are not delivered")
