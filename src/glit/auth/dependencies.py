"""FastAPI authentication dependencies."""

from __future__ import annotations

from dataclasses import dataclass

import jwt
from fastapi import HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from glit.auth.jwt import verify_token
from glit.errors import ForbiddenError

_bearer = HTTPBearer()

STAFF_ROLES = frozenset({"teacher", "admin"})


@dataclass(frozen=True)
class CurrentUser:
    user_id: str
    tenant_id: str | None
    role: str

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Security(_bearer),
) -> CurrentUser:
    """Verify the bearer token and return the caller's identity. Raises 401 on failure."""
    try:
        payload = verify_token(credentials.credentials)
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e

    return CurrentUser(
        user_id=str(payload["sub"]),
        tenant_id=payload.get("tenant_id"),
        role=payload.get("role", "student"),
    )


def ensure_can_view(user: CurrentUser, user_id: str) -> None:
    """Users read their own data; teachers and admins may read other users."""
    if user.user_id != user_id and not user.is_staff:
        raise ForbiddenError("You can only access your own progress")


def ensure_staff(user: CurrentUser) -> None:
    if not user.is_staff:
        raise ForbiddenError("Teacher or admin role required")
