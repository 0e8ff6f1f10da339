# ruff: noqa: TC001
from __future__ import annotations

from fastapi import APIRouter

from app.api.deps import AdminDep
from app.schemas.leave import SlackTestMessageRequest, SlackTestMessageResponse
from app.services.slack import get_slack_service

notifications_router = APIRouter(prefix="/slack", tags=["notifications"])

_DEFAULT_TEST_MESSAGE = "Test notification from the Leave API."


@notifications_router.post("/test", response_model=SlackTestMessageResponse)
async def send_slack_test_message(
    payload: SlackTestMessageRequest,
    auth: AdminDep,
) -> SlackTestMessageResponse:
    """Send a test message to the Slack channel (admin only)."""
    message = (payload.message or "").strip() or _DEFAULT_TEST_MESSAGE
    await get_slack_service().send_test_notification(message)
    return SlackTestMessageResponse(message=message)
