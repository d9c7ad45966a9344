"""Password hashing and signed session tokens."""

from __future__ import annotations

import bcrypt
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from src.config import settings

AUTH_COOKIE = "auth_token"
VISITOR_COOKIE = "visitor_id"
FINGERPRINT_HEADER = "x-fingerprint"

AUTH_MAX_AGE = 60 * 60 * 24 * 30  # 30 days
VISITOR_MAX_AGE = 60 * 60 * 24 * 365  # 1 year

SALT_ROUNDS = 10
_TOKEN_SALT = "auth-token"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=SALT_ROUNDS)).decode(
        "utf-8"
    )


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def _serializer(secret: str | None = None) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(secret or settings.secret_key, salt=_TOKEN_SALT)


def create_token(user_id: str, secret: str | None = None) -> str:
    return _serializer(secret).dumps({"user_id": user_id})


def verify_token(
    token: str | None,
    secret: str | None = None,
    max_age: int = AUTH_MAX_AGE,
) -> str | None:
    """Return the user ID carried by *token*, or None if it is missing, forged, or expired."""
    if not token:
        return None
    try:
        payload = _serializer(secret).loads(token, max_age=max_age)
    except (SignatureExpired, BadSignature):
        return None
    user_id = payload.get("user_id") if isinstance(payload, dict) else None
    return str(user_id) if user_id else None
