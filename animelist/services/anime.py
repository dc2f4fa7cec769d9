from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from animelist.core.errors import NotFoundOrForbidden, StoreUnavailable
from animelist.models import AnimeEntry
from animelist.schemas.anime import AnimeEntryInput
from animelist.services.storage import AssetStorage

logger = logging.getLogger(__name__)


def _commit(session: Session, pending_image: str | None, storage: AssetStorage | None) -> None:
    """Commit, discarding a freshly stored image if the write fails."""

    try:
        session.commit()
    except Exception as exc:
        session.rollback()
        if pending_image and storage is not None:
            storage.release(pending_image)
        if isinstance(exc, SQLAlchemyError):
            logger.exception("Failed to persist anime entry")
            raise StoreUnavailable() from exc
        raise


def add_entry(
    session: Session,
    owner_id: int,
    fields: AnimeEntryInput,
    image_path: str | None = None,
    storage: AssetStorage | None = None,
) -> AnimeEntry:
    entry = AnimeEntry(
        user_id=owner_id,
        title=fields.title,
        rating=fields.rating,
        episodes=fields.episodes,
        genre=fields.genre,
        image_path=image_path,
    )
    session.add(entry)
    _commit(session, image_path, storage)
    session.refresh(entry)

    logger.info("User id=%s added anime entry id=%s", owner_id, entry.id)
    return entry


def list_entries(session: Session, owner_id: int) -> list[AnimeEntry]:
    return list(
        session.scalars(
            select(AnimeEntry)
            .where(AnimeEntry.user_id == owner_id)
            .order_by(AnimeEntry.created_at.desc(), AnimeEntry.id.desc())
        )
    )


def get_entry(session: Session, owner_id: int, entry_id: int) -> AnimeEntry:
    entry = session.scalar(
        select(AnimeEntry)
        .where(AnimeEntry.id == entry_id)
        .where(AnimeEntry.user_id == owner_id)
    )
    if entry is None:
        raise NotFoundOrForbidden()
    return entry


def update_entry(
    session: Session,
    owner_id: int,
    entry_id: int,
    fields: AnimeEntryInput,
    storage: AssetStorage,
    image_path: str | None = None,
    remove_image: bool = False,
) -> AnimeEntry:
    """Update an owned entry.

    ``image_path`` replaces the current image; ``remove_image`` drops it. The
    previous file is released only after the row change is committed.
    """

    try:
        entry = get_entry(session, owner_id, entry_id)
    except NotFoundOrForbidden:
        if image_path:
            storage.release(image_path)
        raise

    previous_image = entry.image_path
    entry.title = fields.title
    entry.rating = fields.rating
    entry.episodes = fields.episodes
    entry.genre = fields.genre
    if image_path:
        entry.image_path = image_path
    elif remove_image:
        entry.image_path = None

    session.add(entry)
    _commit(session, image_path, storage)
    session.refresh(entry)

    if previous_image and previous_image != entry.image_path:
        storage.release(previous_image)

    logger.info("User id=%s updated anime entry id=%s", owner_id, entry.id)
    return entry


def delete_entry(session: Session, owner_id: int, entry_id: int, storage: AssetStorage) -> None:
    entry = get_entry(session, owner_id, entry_id)
    image_path = entry.image_path

    session.delete(entry)
    _commit(session, None, None)

    if image_path:
        storage.release(image_path)

    logger.info("User id=%s deleted anime entry id=%s", owner_id, entry_id)


__all__ = ["add_entry", "list_entries", "get_entry", "update_entry", "delete_entry"]
