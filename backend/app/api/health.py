import logging
from typing import Literal

from fastapi import APIRouter
from pydantic import BaseModel

from app.config import get_settings
from app.db import SessionDep, ping_database

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Service status, database reachability and whether Slack is configured."""

    status: Literal["ok", "degraded"]
    version: str
    environment: str
    database: Literal["ok", "unreachable"]
    slack_configured: bool


@router.get("/health", response_model=HealthResponse)
async def health(session: SessionDep) -> HealthResponse:
    settings = get_settings()
    database_ok = await ping_database(session)
    if not database_ok:
        logger.warning("Health check: database is unreachable")

    return HealthResponse(
        status="ok" if database_ok else "degraded",
        version=settings.app_version,
        environment=settings.environment,
        database="ok" if database_ok else "unreachable",
        slack_configured=bool(settings.slack_bot_key and settings.slack_channel_id),
    )
