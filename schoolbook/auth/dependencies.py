"""FastAPI dependencies resolving the bearer token to a user and guarding roles."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from schoolbook.api.deps import get_settings, get_store
from schoolbook.auth.tokens import decode_access_token
from schoolbook.config import Settings
from schoolbook.models.enums import UserRole
from schoolbook.scheduling.storage import SqlSchedulingStore

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),  # noqa: B008
    store: SqlSchedulingStore = Depends(get_store),  # noqa: B008
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> Any:
    """Resolve ``Authorization: Bearer <token>`` to the user row, or 401."""
    if credentials is None:
        raise _unauthorized("Not authenticated")
    try:
        payload = decode_access_token(credentials.credentials, settings.security)
    except jwt.InvalidTokenError as exc:
        raise _unauthorized("Invalid token") from exc

    subject = payload.get("sub")
    if not subject or not str(subject).isdigit():
        raise _unauthorized("Invalid token subject")

    user = await store.get_user(int(subject))
    if user is None:
        raise _unauthorized("User not found")
    return user


def require_role(*roles: UserRole) -> Callable[..., Awaitable[Any]]:
    """Dependency factory: the current user must hold one of ``roles``."""
    allowed = {role.value for role in roles}

    async def dependency(user: Any = Depends(get_current_user)) -> Any:  # noqa: B008
        if user.role not in allowed:
            logger.info("User %s (%s) refused: requires %s", user.id, user.role, sorted(allowed))
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return user

    return dependency


require_manager = require_role(UserRole.MANAGER)
require_teacher = require_role(UserRole.TEACHER)
require_staff = require_role(UserRole.TEACHER, UserRole.MANAGER)
