# ruff: noqa: TC003
from __future__ import annotations

import datetime

import sqlalchemy as sa
from sqlmodel import Field

from app.models.base import AttributionMixin, TimestampMixin, UpdatedAtMixin, UUIDBase


class UserLeaveDate(UUIDBase, TimestampMixin, UpdatedAtMixin, AttributionMixin, table=True):
    """A user's explicit status for one calendar day."""

    __tablename__ = "user_leave_date"
    __table_args__ = (sa.UniqueConstraint("user_id", "date", name="uq_user_leave_date_user_date"),)

    user_id: str = Field(max_length=64, index=True)
    date: datetime.date = Field(index=True)
    status: str = Field(max_length=32)

    @property
    def attribution_actor(self) -> str:
        """Whoever last wrote the record, falling back to the creator."""
        return self.updated_by or self.created_by
