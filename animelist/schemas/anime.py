from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, field_validator

RATING_MIN = 1
RATING_MAX = 10
# Largest value a 32-bit INTEGER column holds.
EPISODES_MAX = 2**31 - 1


def _parse_integer(value: Any, message: str) -> int:
    if isinstance(value, bool):
        raise ValueError(message)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if text.lstrip("+-").isdigit():
            try:
                return int(text)
            except ValueError:
                pass
    raise ValueError(message)


class AnimeEntryInput(BaseModel):
    """Entry fields parsed once from user input."""

    title: str
    rating: int
    episodes: Optional[int] = None
    genre: Optional[str] = None

    @field_validator("title", mode="before")
    @classmethod
    def validate_title(cls, value: Any) -> str:
        title = str(value or "").strip()
        if not title:
            raise ValueError("Title is required")
        return title

    @field_validator("rating", mode="before")
    @classmethod
    def validate_rating(cls, value: Any) -> int:
        message = f"Rating must be a whole number between {RATING_MIN} and {RATING_MAX}"
        rating = _parse_integer(value, message)
        if not RATING_MIN <= rating <= RATING_MAX:
            raise ValueError(message)
        return rating

    @field_validator("episodes", mode="before")
    @classmethod
    def validate_episodes(cls, value: Any) -> int | None:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        message = "Episodes must be a non-negative whole number"
        episodes = _parse_integer(value, message)
        if episodes < 0:
            raise ValueError(message)
        if episodes > EPISODES_MAX:
            raise ValueError(f"Episodes cannot exceed {EPISODES_MAX}")
        return episodes

    @field_validator("genre", mode="before")
    @classmethod
    def validate_genre(cls, value: Any) -> str | None:
        if value is None:
            return None
        genre = str(value).strip()
        return genre or None


__all__ = ["AnimeEntryInput", "RATING_MIN", "RATING_MAX", "EPISODES_MAX"]
