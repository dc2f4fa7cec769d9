from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from animelist.core.errors import DuplicateEmail, DuplicateUsername, NotFound, StoreUnavailable
from animelist.models import User
from animelist.schemas.user import normalize_email

logger = logging.getLogger(__name__)


def get_user(session: Session, user_id: int) -> User | None:
    return session.get(User, user_id)


def _email_matches(email: str):
    return func.lower(User.email) == normalize_email(email)


def create_user(
    session: Session,
    username: str,
    hashed_password: str,
    email: str | None = None,
    newsletter_opt_in: bool = False,
) -> User:
    if email is not None:
        email = normalize_email(email)

    if session.scalar(select(User.id).where(User.username == username)) is not None:
        raise DuplicateUsername()
    if email is not None and session.scalar(select(User.id).where(_email_matches(email))) is not None:
        raise DuplicateEmail()

    user = User(
        username=username,
        email=email,
        hashed_password=hashed_password,
        newsletter_opt_in=newsletter_opt_in,
    )
    session.add(user)

    try:
        session.commit()
    except IntegrityError as exc:
        # A concurrent registration won the race past the pre-check.
        session.rollback()
        if email is not None and "email" in str(exc.orig).lower():
            raise DuplicateEmail() from exc
        raise DuplicateUsername() from exc
    except OperationalError as exc:
        session.rollback()
        raise StoreUnavailable() from exc

    session.refresh(user)
    logger.info("Registered user id=%s", user.id)
    return user


def find_by_username_or_email(session: Session, identifier: str) -> User:
    identifier = identifier.strip()
    if not identifier:
        raise NotFound("User not found")

    try:
        user = session.scalar(
            select(User).where(
                _email_matches(identifier) if "@" in identifier else User.username == identifier
            )
        )
    except OperationalError as exc:
        raise StoreUnavailable() from exc

    if user is None:
        raise NotFound("User not found")
    return user


def update_password(
    session: Session,
    user_id_or_email: int | str,
    hashed_password: str,
    commit: bool = True,
) -> User:
    """Replace a user's password hash.

    With ``commit=False`` the change is only flushed so the caller can commit
    it together with its own writes.
    """

    if isinstance(user_id_or_email, int):
        user = session.get(User, user_id_or_email)
    else:
        user = session.scalar(select(User).where(_email_matches(user_id_or_email)))
    if user is None:
        raise NotFound("User not found")

    user.hashed_password = hashed_password
    session.add(user)

    try:
        if commit:
            session.commit()
        else:
            session.flush()
    except OperationalError as exc:
        session.rollback()
        raise StoreUnavailable() from exc

    logger.info("Password updated for user id=%s", user.id)
    return user


__all__ = ["get_user", "create_user", "find_by_username_or_email", "update_password"]
