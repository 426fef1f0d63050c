"""Auth token helpers for URL shortener.

Users are anonymous: a user id is a random UUID issued on first contact
and carried in a signed JWT cookie.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

AUTH_COOKIE_NAME = "auth_token"
AUTH_COOKIE_MAX_AGE = 60 * 60 * 24 * 30
JWT_ALGORITHM = "HS256"


class InvalidTokenError(Exception):
    """Token is malformed, has a bad signature, or lacks a user id."""


class TokenExpiredError(InvalidTokenError):
    """Token signature is valid but the token has expired."""


def new_user_id() -> str:
    return str(uuid.uuid4())


def build_token(user_id: str, secret: str, ttl_seconds: int) -> str:
    """Build a signed token carrying user_id."""
    payload = {
        "user_id": user_id,
        "exp": datetime.now(timezone.utc) + timedelta(seconds=ttl_seconds),
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def parse_token(token: str, secret: str) -> str:
    """Validate a token and return its user id.

    Raises:
        TokenExpiredError: If the token has expired
        InvalidTokenError: If the token is invalid
    """
    try:
        payload = jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError as e:
        raise TokenExpiredError("token expired") from e
    except jwt.InvalidTokenError as e:
        raise InvalidTokenError(f"invalid token: {e}") from e

    user_id: Optional[str] = payload.get("user_id")
    if not user_id:
        raise InvalidTokenError("token has no user id")
    return user_id
