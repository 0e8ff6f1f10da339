from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

import sqlalchemy as sa
from sqlmodel import Field, SQLModel


def _now_utc() -> datetime:
    return datetime.now(UTC)


def _timestamp_field() -> Any:
    return Field(
        default_factory=_now_utc,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
        sa_column_kwargs={"server_default": sa.func.now()},
    )


class UUIDBase(SQLModel):
    """Base model with a UUID v4 primary key."""

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, sa_type=sa.Uuid)


class TimestampMixin(SQLModel):
    """Adds created_at (UTC)."""

    created_at: datetime = _timestamp_field()


class UpdatedAtMixin(SQLModel):
    """Adds updated_at (UTC); writers set it explicitly on change."""

    updated_at: datetime = _timestamp_field()


class AttributionMixin(SQLModel):
    """Records who created and last wrote a row (handle or user id)."""

    created_by: str = Field(max_length=255)
    updated_by: str = Field(max_length=255)
