"""Domain error taxonomy shared by services and the web layer."""

from __future__ import annotations


class AnimeListError(Exception):
    """Base class for errors raised by the application services."""

    message = "Something went wrong"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)

    @property
    def detail(self) -> str:
        return str(self)


class ValidationError(AnimeListError, ValueError):
    message = "Invalid input"


class DuplicateError(AnimeListError):
    message = "Already exists"


class DuplicateUsername(DuplicateError):
    message = "Username is already taken"


class DuplicateEmail(DuplicateError):
    message = "Email is already registered"


class NotFound(AnimeListError):
    message = "Not found"


class NotFoundOrForbidden(AnimeListError):
    """Raised for resources that are missing or owned by someone else.

    Both cases share one message so callers cannot probe for existence.
    """

    message = "Entry not found"


class InvalidOrExpiredToken(AnimeListError):
    message = "Invalid or expired token"


class AuthenticationRequired(AnimeListError):
    message = "Authentication required"


class StoreUnavailable(AnimeListError):
    message = "Storage is temporarily unavailable"


class IOFailure(AnimeListError):
    message = "Could not store the uploaded file"


__all__ = [
    "AnimeListError",
    "ValidationError",
    "DuplicateError",
    "DuplicateUsername",
    "DuplicateEmail",
    "NotFound",
    "NotFoundOrForbidden",
    "InvalidOrExpiredToken",
    "AuthenticationRequired",
    "StoreUnavailable",
    "IOFailure",
]
