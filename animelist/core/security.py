from __future__ import annotations

import hashlib
import secrets
from datetime import datetime, timezone
from typing import Any

from jose import jwt
from passlib.context import CryptContext

from animelist.core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.bcrypt_rounds)

_SESSION_TOKEN_TYPE = "session"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        # Unrecognised or malformed stored hash.
        return False


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def generate_token() -> str:
    """Return a url-safe token carrying 256 bits of randomness."""

    return secrets.token_urlsafe(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_session_cookie(session_id: str, user_id: int, expires_at: datetime) -> str:
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    payload = {
        "sub": str(user_id),
        "sid": session_id,
        "exp": int(expires_at.timestamp()),
        "type": _SESSION_TOKEN_TYPE,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def decode_session_cookie(token: str) -> dict[str, Any]:
    """Verify the cookie signature and return its claims.

    Expiry is enforced against the server-side record rather than the ``exp``
    claim, so callers can evaluate validity at an explicit instant.
    """

    claims = jwt.decode(
        token,
        settings.secret_key,
        algorithms=[settings.algorithm],
        options={"verify_exp": False},
    )
    if claims.get("type") != _SESSION_TOKEN_TYPE:
        raise ValueError("Invalid token type")
    return claims
