# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Query

from app.api.deps import AuthDep
from app.db import SessionDep
from app.schemas.leave import DayStatusResponse, SetLeaveDatesRequest, SetLeaveDatesResponse, TeamLeaveResponse
from app.services import leave as leave_service

leave_router = APIRouter(tags=["leave"])


@leave_router.post("/dates", response_model=SetLeaveDatesResponse)
async def set_leave_dates(
    payload: SetLeaveDatesRequest,
    session: SessionDep,
    auth: AuthDep,
) -> SetLeaveDatesResponse:
    """Set the caller's status on the given dates."""
    records = await leave_service.set_leave_dates(session, auth.user_id, payload.dates, payload.status, auth.actor)
    return SetLeaveDatesResponse(updated_dates=records)


@leave_router.patch("/dates", response_model=SetLeaveDatesResponse)
async def update_leave_dates(
    payload: SetLeaveDatesRequest,
    session: SessionDep,
    auth: AuthDep,
) -> SetLeaveDatesResponse:
    """Update the caller's status on the given dates."""
    records = await leave_service.set_leave_dates(session, auth.user_id, payload.dates, payload.status, auth.actor)
    return SetLeaveDatesResponse(updated_dates=records)


@leave_router.get("/dates", response_model=list[DayStatusResponse])
async def get_leave_dates(
    session: SessionDep,
    auth: AuthDep,
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
) -> list[DayStatusResponse]:
    """Get the caller's calendar; defaults to the current month."""
    return await leave_service.get_leave_dates(session, auth.user_id, start_date, end_date)


@leave_router.get("/team", response_model=list[TeamLeaveResponse])
async def get_team_leave(
    session: SessionDep,
    auth: AuthDep,
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
) -> list[TeamLeaveResponse]:
    """Get everyone away in the range, including company holidays."""
    return await leave_service.get_team_leave(session, start_date, end_date)
