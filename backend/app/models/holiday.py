# ruff: noqa: TC003
from __future__ import annotations

import datetime

from sqlmodel import Field

from app.models.base import AttributionMixin, TimestampMixin, UUIDBase


class CompanyHoliday(UUIDBase, TimestampMixin, AttributionMixin, table=True):
    """An organization-wide non-working day."""

    __tablename__ = "company_holiday"

    date: datetime.date = Field(unique=True, index=True)
    name: str | None = Field(default=None, max_length=255)
