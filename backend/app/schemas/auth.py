from __future__ import annotations

from pydantic import BaseModel


class AuthContext(BaseModel):
    """Dev auth context extracted from request headers."""

    user_id: str
    handle: str | None = None
    role: str = "staff"

    @property
    def actor(self) -> str:
        """Identifier recorded as the writer of a row."""
        return self.handle or self.user_id
