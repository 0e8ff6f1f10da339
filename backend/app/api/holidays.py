# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Query

from app.api.deps import AdminDep, AuthDep
from app.db import SessionDep
from app.schemas.leave import CompanyHolidayListResponse, CompanyHolidayResponse, CreateCompanyHolidaysRequest
from app.services import leave as leave_service

holidays_router = APIRouter(prefix="/company-holidays", tags=["holidays"])


@holidays_router.post("", response_model=list[CompanyHolidayResponse], status_code=201)
async def create_company_holidays(
    payload: CreateCompanyHolidaysRequest,
    session: SessionDep,
    auth: AdminDep,
) -> list[CompanyHolidayResponse]:
    """Mark dates as company holidays (admin only)."""
    return await leave_service.create_company_holidays(session, payload.dates, payload.name, auth.actor)


@holidays_router.get("", response_model=CompanyHolidayListResponse)
async def list_company_holidays(
    session: SessionDep,
    auth: AuthDep,
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
) -> CompanyHolidayListResponse:
    """List company holidays; defaults to the current month."""
    return await leave_service.list_company_holidays(session, start_date, end_date)
