# ruff: noqa: B008
from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Header, status

from app.exceptions import AppError
from app.schemas.auth import AuthContext


async def get_auth_context(
    x_user_id: str = Header(min_length=1),
    x_handle: str | None = Header(default=None),
    x_role: str = Header(default="staff"),
) -> AuthContext:
    """Extract dev auth context from request headers."""
    return AuthContext(user_id=x_user_id, handle=x_handle, role=x_role)


AuthDep = Annotated[AuthContext, Depends(get_auth_context)]


async def require_admin(
    auth: AuthDep,
) -> AuthContext:
    """Require admin role for the request."""
    if auth.role.lower() != "admin":
        raise AppError("Only administrators can perform this action", status_code=status.HTTP_403_FORBIDDEN)
    return auth


AdminDep = Annotated[AuthContext, Depends(require_admin)]
