# ruff: noqa: TC003
from __future__ import annotations

import datetime
import uuid

from pydantic import BaseModel, Field, field_validator

from app.models.enums import SETTABLE_STATUSES, LeaveStatus

# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class SetLeaveDatesRequest(BaseModel):
    """Request body for setting the caller's status on one or more dates."""

    dates: list[datetime.date] = Field(min_length=1)
    status: LeaveStatus

    @field_validator("status")
    @classmethod
    def _validate_status(cls, value: LeaveStatus) -> LeaveStatus:
        if value not in SETTABLE_STATUSES:
            msg = "status must be LEAVE, HOLIDAY, or AVAILABLE"
            raise ValueError(msg)
        return value


class CreateCompanyHolidaysRequest(BaseModel):
    """Request body for marking dates as company holidays."""

    dates: list[datetime.date] = Field(min_length=1)
    name: str | None = Field(default=None, max_length=255)


class SlackTestMessageRequest(BaseModel):
    """Request body for sending a test Slack message."""

    message: str | None = Field(default=None, max_length=2000)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class LeaveRecordResponse(BaseModel):
    """A stored per-user status for one date."""

    id: uuid.UUID
    user_id: str
    date: datetime.date
    status: LeaveStatus
    updated_by: str


class SetLeaveDatesResponse(BaseModel):
    """Result of a set-leave-dates call."""

    success: bool = True
    updated_dates: list[LeaveRecordResponse]


class DayStatusResponse(BaseModel):
    """Resolved status of one calendar day for the caller."""

    date: datetime.date
    status: LeaveStatus
    is_weekend: bool
    is_company_holiday: bool
    holiday_name: str | None = None


class TeamLeaveUserResponse(BaseModel):
    """A user away on a date, or the synthetic company-holiday entry."""

    user_id: str
    display_name: str
    status: LeaveStatus
    handle: str | None = None
    first_name: str | None = None
    last_name: str | None = None


class TeamLeaveResponse(BaseModel):
    """Everyone away on one date."""

    date: datetime.date
    users_on_leave: list[TeamLeaveUserResponse]


class CompanyHolidayResponse(BaseModel):
    """Response schema for a company holiday."""

    id: uuid.UUID
    date: datetime.date
    name: str | None


class CompanyHolidayListResponse(BaseModel):
    """Company holidays in a date range."""

    items: list[CompanyHolidayResponse]
    total: int


class SlackTestMessageResponse(BaseModel):
    """Result of a test Slack send."""

    success: bool = True
    message: str
