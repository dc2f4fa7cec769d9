"""Server-side login sessions.

A session is a random identifier whose SHA-256 digest is stored in
``user_sessions``. The browser receives the identifier inside a signed JWT so
tampered or foreign cookies are rejected before touching the database.

Sessions use a fixed window: ``expires_at`` is set once at login and is never
extended by activity.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from jose import JWTError
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from animelist.core.config import settings
from animelist.core.security import (
    create_session_cookie,
    decode_session_cookie,
    generate_token,
    hash_token,
)
from animelist.models import User, UserSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionTicket:
    token: str
    expires_at: datetime
    max_age: int


def _session_lifetime() -> timedelta:
    return timedelta(minutes=settings.session_expire_minutes)


def start_session(session: Session, user: User, now: datetime | None = None) -> SessionTicket:
    now = now or datetime.utcnow()
    lifetime = _session_lifetime()
    session_id = generate_token()

    record = UserSession(
        user_id=user.id,
        token_hash=hash_token(session_id),
        created_at=now,
        expires_at=now + lifetime,
    )
    session.add(record)
    session.commit()

    logger.info("Session started for user id=%s", user.id)
    return SessionTicket(
        token=create_session_cookie(session_id, user.id, record.expires_at),
        expires_at=record.expires_at,
        max_age=int(lifetime.total_seconds()),
    )


def _get_session_record(session: Session, token: str) -> UserSession | None:
    try:
        claims = decode_session_cookie(token)
    except (JWTError, ValueError):
        return None

    session_id = claims.get("sid")
    if not isinstance(session_id, str) or not session_id:
        return None

    record = session.scalar(select(UserSession).where(UserSession.token_hash == hash_token(session_id)))
    if record is None or str(record.user_id) != str(claims.get("sub")):
        return None
    return record


def resolve_session(session: Session, token: str | None, now: datetime | None = None) -> int | None:
    """Return the user id bound to ``token`` or ``None`` when it is not valid."""

    if not token:
        return None

    record = _get_session_record(session, token)
    if record is None:
        return None

    now = now or datetime.utcnow()
    if record.expires_at <= now:
        return None
    return record.user_id


def end_session(session: Session, token: str | None) -> None:
    if not token:
        return

    record = _get_session_record(session, token)
    if record is None:
        return

    user_id = record.user_id
    session.delete(record)
    session.commit()
    logger.info("Session ended for user id=%s", user_id)


def purge_expired_sessions(session: Session, now: datetime | None = None) -> int:
    now = now or datetime.utcnow()
    result = session.execute(
        delete(UserSession)
        .where(UserSession.expires_at <= now)
        .execution_options(synchronize_session=False)
    )
    session.commit()
    return result.rowcount or 0


__all__ = [
    "SessionTicket",
    "start_session",
    "resolve_session",
    "end_session",
    "purge_expired_sessions",
]
