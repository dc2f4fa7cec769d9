from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from animelist.core.errors import NotFound
from animelist.core.security import get_password_hash, verify_password
from animelist.models import User
from animelist.schemas.user import UserCreate
from animelist.services import users as user_store

logger = logging.getLogger(__name__)

# Verified against when the identifier is unknown so both failure paths cost a
# bcrypt round.
_DUMMY_HASH = get_password_hash("animelist-dummy-password")


def register_user(session: Session, payload: UserCreate) -> User:
    return user_store.create_user(
        session,
        username=payload.username,
        hashed_password=get_password_hash(payload.password),
        email=str(payload.email) if payload.email else None,
        newsletter_opt_in=payload.newsletter_opt_in,
    )


def authenticate_user(session: Session, identifier: str, password: str) -> User | None:
    try:
        user = user_store.find_by_username_or_email(session, identifier)
    except NotFound:
        verify_password(password, _DUMMY_HASH)
        logger.info("Login failed for unknown identifier")
        return None

    if not verify_password(password, user.hashed_password):
        logger.info("Login failed for user id=%s", user.id)
        return None
    return user
