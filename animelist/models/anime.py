from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from animelist.db.base import Base

if TYPE_CHECKING:  # pragma: no cover - typing helpers only
    from animelist.models.user import User


class AnimeEntry(Base):
    __tablename__ = "anime_entries"
    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 10", name="ck_anime_entries_rating_range"),
        CheckConstraint("episodes IS NULL OR episodes >= 0", name="ck_anime_entries_episodes_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    episodes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    genre: Mapped[str | None] = mapped_column(String(100), nullable=True)
    image_path: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    owner: Mapped[User] = relationship("User", back_populates="anime_entries")


__all__ = ["AnimeEntry"]
