from __future__ import annotations

import enum


class LeaveStatus(enum.StrEnum):
    """Status of one calendar day for one user."""

    LEAVE = "LEAVE"
    HOLIDAY = "HOLIDAY"
    AVAILABLE = "AVAILABLE"
    WEEKEND = "WEEKEND"
    COMPANY_HOLIDAY = "COMPANY_HOLIDAY"


# Statuses a user may write for themselves.
SETTABLE_STATUSES = frozenset({LeaveStatus.LEAVE, LeaveStatus.HOLIDAY, LeaveStatus.AVAILABLE})

# Statuses that put a user on the team calendar and the daily digest.
AWAY_STATUSES = frozenset({LeaveStatus.LEAVE, LeaveStatus.HOLIDAY})
