from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import httpx
from pydantic import BaseModel, ConfigDict, Field

from app.exceptions import UpstreamLookupFailure

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)


class UserProfile(BaseModel):
    """User profile from the identity provider."""

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True, extra="ignore")

    user_id: str = Field(alias="userId")
    handle: str | None = None
    first_name: str | None = Field(default=None, alias="firstName")
    last_name: str | None = Field(default=None, alias="lastName")
    email: str | None = None


class RoleMember(BaseModel):
    """A subject holding an identity role."""

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True, extra="ignore")

    user_id: str = Field(alias="userId")
    handle: str | None = None
    email: str | None = None


@runtime_checkable
class IdentityService(Protocol):
    """Interface for the identity provider."""

    async def get_users_by_ids(self, user_ids: Sequence[str]) -> list[UserProfile]:
        """Fetch profiles for the given users. May return a subset."""
        ...

    async def list_role_members(self, role_name: str) -> list[RoleMember]:
        """List members of the named role. Returns [] if the role does not exist."""
        ...


class InMemoryIdentityService:
    """In-memory stub implementation for development."""

    def __init__(self) -> None:
        self._profiles: dict[str, UserProfile] = {}
        self._roles: dict[str, list[RoleMember]] = {}

    def seed(self, profile: UserProfile) -> None:
        """Seed a profile for testing."""
        self._profiles[profile.user_id] = profile

    def seed_role(self, role_name: str, members: list[RoleMember]) -> None:
        """Seed the members of a role for testing."""
        self._roles[role_name.lower()] = list(members)

    async def get_users_by_ids(self, user_ids: Sequence[str]) -> list[UserProfile]:
        return [self._profiles[uid] for uid in user_ids if uid in self._profiles]

    async def list_role_members(self, role_name: str) -> list[RoleMember]:
        return list(self._roles.get(role_name.lower(), []))


class HttpIdentityService:
    """Identity provider client over HTTP.

    Role membership is read from the first page only; paging through large
    roles is left to the provider's default page size.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        timeout: float = 10.0,
        page_size: int = 200,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._timeout = timeout
        self._page_size = page_size
        self._transport = transport

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                headers={"Authorization": f"Bearer {self._token}"},
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.get(path, params=params)
                response.raise_for_status()
                return response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise UpstreamLookupFailure(f"Identity request to {path} failed: {exc}") from exc

    async def get_users_by_ids(self, user_ids: Sequence[str]) -> list[UserProfile]:
        if not user_ids:
            return []
        data = await self._get_json("/users", {"userIds": ",".join(user_ids)})
        if not isinstance(data, list):
            return []
        return [UserProfile.model_validate(item) for item in data if isinstance(item, dict) and "userId" in item]

    async def _get_role_id(self, role_name: str) -> str | None:
        roles = await self._get_json("/roles", {"filter": f"roleName={role_name}"})
        if not isinstance(roles, list) or not roles:
            return None

        normalized = role_name.lower()
        matched = next((r for r in roles if str(r.get("roleName", "")).lower() == normalized), roles[0])
        if len(roles) > 1:
            logger.warning("Multiple roles matched %s; using role %s", role_name, matched.get("id"))
        role_id = matched.get("id")
        return str(role_id) if role_id is not None else None

    async def list_role_members(self, role_name: str) -> list[RoleMember]:
        role_id = await self._get_role_id(role_name)
        if role_id is None:
            logger.warning("Role not found: %s", role_name)
            return []
        data = await self._get_json(f"/roles/{role_id}/subjects", {"page": 1, "perPage": self._page_size})
        if not isinstance(data, list):
            return []
        return [RoleMember.model_validate(item) for item in data if isinstance(item, dict) and "userId" in item]


_identity_service: IdentityService = InMemoryIdentityService()


def get_identity_service() -> IdentityService:
    """FastAPI dependency for the identity provider."""
    return _identity_service


def set_identity_service(service: IdentityService) -> None:
    """Override the service (for testing or production wiring)."""
    global _identity_service
    _identity_service = service


async def fetch_profiles(user_ids: Sequence[str]) -> dict[str, UserProfile]:
    """Look up profiles keyed by user id, returning {} if the provider fails."""
    unique_ids = list(dict.fromkeys(uid for uid in user_ids if uid))
    if not unique_ids:
        return {}
    try:
        profiles = await get_identity_service().get_users_by_ids(unique_ids)
    except Exception:
        logger.warning("Failed to fetch user profiles for %d users", len(unique_ids), exc_info=True)
        return {}
    return {p.user_id: p for p in profiles}
