"""Password hashing and bearer token helpers.

- bcrypt password hashes
- itsdangerous signed tokens carrying only the user id; expiry is enforced
  through the serializer's max_age
"""

from __future__ import annotations

import bcrypt
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from placer.core.config import settings

TOKEN_SALT = "placer-auth-token"


def hash_password(password: str) -> str:
    """Hash a password with bcrypt."""
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(secret_key=settings.secret_key, salt=TOKEN_SALT)


def create_access_token(user_id: str) -> str:
    return _serializer().dumps({"user_id": user_id})


def decode_access_token(token: str) -> str | None:
    """Return the user id of a valid token, or None.

    Expired, tampered and malformed tokens are indistinguishable to callers.
    """
    if not token:
        return None
    max_age = settings.token_expiry_days * 24 * 60 * 60
    try:
        data = _serializer().loads(token, max_age=max_age)
    except (SignatureExpired, BadSignature):
        return None
    if not isinstance(data, dict) or not isinstance(data.get("user_id"), str):
        return None
    return data["user_id"]
