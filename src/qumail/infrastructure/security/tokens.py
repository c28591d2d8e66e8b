"""Session tokens issued at login and checked on every mail endpoint."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from qumail.domain.entities.user import UserRecord
from qumail.infrastructure.settings import Settings, get_settings


class InvalidSessionToken(Exception):
    pass


def issue_token(user: UserRecord, settings: Settings | None = None) -> str:
    settings = settings or get_settings()
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user.id,
        "email": user.email,
        "iat": now,
        "exp": now + timedelta(minutes=settings.jwt_expiry_minutes),
    }
    return jwt.encode(payload, settings.jwt_secret.get_secret_value(), algorithm=settings.jwt_algorithm)


def verify_token(token: str, settings: Settings | None = None) -> dict[str, Any]:
    settings = settings or get_settings()
    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret.get_secret_value(),
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.PyJWTError as e:
        raise InvalidSessionToken(str(e)) from e
    return claims
