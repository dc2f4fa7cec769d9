"""Password recovery tokens.

Tokens are stored as SHA-256 digests. A token is valid while it is unused and
the current time is before ``expires_at``. Issuing a new token leaves earlier
outstanding tokens for the same email valid until they expire or are used.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from animelist.core.config import settings
from animelist.core.errors import InvalidOrExpiredToken, NotFound, StoreUnavailable
from animelist.core.security import generate_token, get_password_hash, hash_token
from animelist.models import PasswordResetToken, User, UserSession
from animelist.schemas.auth import PasswordResetConfirm
from animelist.schemas.common import parse_input
from animelist.schemas.user import normalize_email
from animelist.services import users as user_store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuedResetToken:
    token: str
    email: str
    expires_at: datetime


def _reset_lifetime() -> timedelta:
    return timedelta(minutes=settings.password_reset_expire_minutes)


def request_reset(session: Session, email: str, now: datetime | None = None) -> IssuedResetToken | None:
    """Create a reset token when ``email`` belongs to a user.

    Returns ``None`` for unknown addresses; callers must respond identically
    in both cases.
    """

    email = normalize_email(email)
    if not email:
        return None

    user = session.scalar(select(User).where(func.lower(User.email) == email))
    if user is None or user.email is None:
        logger.info("Password reset requested for an unknown email")
        return None

    now = now or datetime.utcnow()
    raw_token = generate_token()
    record = PasswordResetToken(
        token_hash=hash_token(raw_token),
        email=user.email,
        created_at=now,
        expires_at=now + _reset_lifetime(),
    )
    session.add(record)
    session.commit()

    logger.info("Password reset token issued for user id=%s", user.id)
    return IssuedResetToken(token=raw_token, email=user.email, expires_at=record.expires_at)


def validate_token(session: Session, token: str, now: datetime | None = None) -> str:
    """Return the email bound to ``token`` or raise ``InvalidOrExpiredToken``."""

    if not token:
        raise InvalidOrExpiredToken()

    record = session.scalar(
        select(PasswordResetToken)
        .where(PasswordResetToken.token_hash == hash_token(token))
        .execution_options(populate_existing=True)
    )
    if record is None:
        raise InvalidOrExpiredToken()

    now = now or datetime.utcnow()
    if record.used or record.expires_at <= now:
        raise InvalidOrExpiredToken()
    return record.email


def consume_token(session: Session, token: str, new_password: str, now: datetime | None = None) -> None:
    if not token:
        raise InvalidOrExpiredToken()
    payload = parse_input(PasswordResetConfirm, token=token, password=new_password)
    now = now or datetime.utcnow()

    validate_token(session, payload.token, now=now)
    hashed_password = get_password_hash(payload.password)
    token_hash = hash_token(payload.token)

    try:
        # Conditional update: only one concurrent consumer can flip ``used``.
        result = session.execute(
            update(PasswordResetToken)
            .where(PasswordResetToken.token_hash == token_hash)
            .where(PasswordResetToken.used.is_(False))
            .where(PasswordResetToken.expires_at > now)
            .values(used=True, used_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            session.rollback()
            raise InvalidOrExpiredToken()

        email = session.scalar(
            select(PasswordResetToken.email).where(PasswordResetToken.token_hash == token_hash)
        )
        user = user_store.update_password(session, email, hashed_password, commit=False)
        # Sign out every browser that was logged in with the old password.
        session.execute(delete(UserSession).where(UserSession.user_id == user.id))
        session.commit()
    except NotFound as exc:
        session.rollback()
        raise InvalidOrExpiredToken() from exc
    except OperationalError as exc:
        session.rollback()
        raise StoreUnavailable() from exc

    logger.info("Password reset completed for user id=%s", user.id)


def purge_stale_tokens(session: Session, now: datetime | None = None) -> int:
    """Delete tokens that are both used and past their expiry."""

    now = now or datetime.utcnow()
    result = session.execute(
        delete(PasswordResetToken)
        .where(PasswordResetToken.used.is_(True))
        .where(PasswordResetToken.expires_at <= now)
        .execution_options(synchronize_session=False)
    )
    session.commit()
    return result.rowcount or 0


__all__ = [
    "IssuedResetToken",
    "request_reset",
    "validate_token",
    "consume_token",
    "purge_stale_tokens",
]
