from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 30
PASSWORD_MIN_LENGTH = 6


def check_password_strength(value: str) -> str:
    if len(value) < PASSWORD_MIN_LENGTH:
        raise ValueError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
    return value


def normalize_email(value: str) -> str:
    """Emails are compared and stored in lower case."""

    return value.strip().lower()


class UserBase(BaseModel):
    username: str
    email: Optional[EmailStr] = None
    newsletter_opt_in: bool = False


class UserCreate(UserBase):
    password: str = Field(repr=False)

    @field_validator("username", mode="before")
    @classmethod
    def normalize_username(cls, value: object) -> str:
        username = str(value or "").strip()
        if not USERNAME_MIN_LENGTH <= len(username) <= USERNAME_MAX_LENGTH:
            raise ValueError(
                f"Username must be between {USERNAME_MIN_LENGTH} and {USERNAME_MAX_LENGTH} characters"
            )
        # Login treats identifiers containing "@" as email addresses.
        if "@" in username:
            raise ValueError("Username cannot contain @")
        return username

    @field_validator("email", mode="before")
    @classmethod
    def blank_email_is_absent(cls, value: object) -> object:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        return value.strip() if isinstance(value, str) else value

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: Optional[str]) -> Optional[str]:
        return normalize_email(value) if value is not None else None

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        return check_password_strength(value)


__all__ = ["UserBase", "UserCreate", "check_password_strength", "normalize_email"]
