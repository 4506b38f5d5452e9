"""Signed bearer tokens (PyJWT)."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from schoolbook.config import SecuritySettings


def create_access_token(user_id: int, role: str, security: SecuritySettings) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "role": role,
        "iat": now,
        "exp": now + timedelta(minutes=security.jwt_expires_minutes),
    }
    return jwt.encode(payload, security.jwt_secret, algorithm=security.jwt_algorithm)


def decode_access_token(token: str, security: SecuritySettings) -> dict[str, Any]:
    """Decode and verify a token. Raises ``jwt.InvalidTokenError`` on any problem."""
    return jwt.decode(token, security.jwt_secret, algorithms=[security.jwt_algorithm])
