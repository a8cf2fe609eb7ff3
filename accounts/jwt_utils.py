from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
from django.conf import settings


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def _encode(payload: dict) -> str:
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def _issue(*, user_id: int, kind: str, ttl: timedelta) -> str:
    now = _now()
    payload = {
        "sub": str(user_id),
        "type": kind,
        "iat": int(now.timestamp()),
        "exp": int((now + ttl).timestamp()),
    }
    return _encode(payload)


def issue_access_token(*, user_id: int) -> str:
    return _issue(
        user_id=user_id,
        kind="access",
        ttl=timedelta(minutes=int(settings.JWT_ACCESS_TTL_MINUTES)),
    )


def issue_refresh_token(*, user_id: int) -> str:
    return _issue(
        user_id=user_id,
        kind="refresh",
        ttl=timedelta(days=int(settings.JWT_REFRESH_TTL_DAYS)),
    )


def decode_token(token: str) -> dict:
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])


def user_id_from_token(token: str, *, expected_type: str = "access") -> int | None:
    """Returns the subject of a valid token of the given type, else None."""
    try:
        payload = decode_token(token)
    except jwt.PyJWTError:
        return None

    if payload.get("type") != expected_type:
        return None

    sub = payload.get("sub")
    if not sub or not str(sub).isdigit():
        return None
    return int(sub)
