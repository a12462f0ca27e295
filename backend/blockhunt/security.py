from __future__ import annotations

from typing import Optional, Tuple

from flask import current_app
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

TOKEN_SALT = "blockhunt-auth"
DEFAULT_TOKEN_MAX_AGE = 60 * 60 * 24 * 30


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config.get("SECRET_KEY") or "change-me", salt=TOKEN_SALT)


def issue_token(user_id: int, role: str) -> str:
    """Sign ``{"id", "role"}`` for the ``Authorization: Bearer`` header."""
    return _serializer().dumps({"id": int(user_id), "role": role or "user"})


def verify_token(token: str) -> Tuple[Optional[int], Optional[str]]:
    """Return ``(user_id, role)`` for a valid token, else ``(None, None)``.

    Tokens older than AUTH_TOKEN_MAX_AGE seconds are rejected.
    """
    max_age = int(current_app.config.get("AUTH_TOKEN_MAX_AGE") or DEFAULT_TOKEN_MAX_AGE)
    try:
        claims = _serializer().loads(token, max_age=max_age)
    except (BadSignature, SignatureExpired):
        return (None, None)
    if not isinstance(claims, dict) or claims.get("id") is None:
        return (None, None)
    try:
        uid = int(claims["id"])
    except (TypeError, ValueError):
        return (None, None)
    role = claims.get("role")
    return (uid, str(role) if role is not None else None)
