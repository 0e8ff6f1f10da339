from sqlmodel import SQLModel

from app.models.base import AttributionMixin, TimestampMixin, UpdatedAtMixin, UUIDBase
from app.models.enums import AWAY_STATUSES, SETTABLE_STATUSES, LeaveStatus
from app.models.holiday import CompanyHoliday
from app.models.leave import UserLeaveDate

__all__ = [
    "AWAY_STATUSES",
    "SETTABLE_STATUSES",
    "AttributionMixin",
    "CompanyHoliday",
    "LeaveStatus",
    "SQLModel",
    "TimestampMixin",
    "UpdatedAtMixin",
    "UUIDBase",
    "UserLeaveDate",
]
