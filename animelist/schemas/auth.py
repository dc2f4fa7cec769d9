from pydantic import BaseModel, EmailStr, Field, field_validator

from animelist.schemas.user import check_password_strength, normalize_email


class PasswordResetRequest(BaseModel):
    email: EmailStr

    @field_validator("email", mode="before")
    @classmethod
    def strip_email(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return normalize_email(value)


class PasswordResetConfirm(BaseModel):
    token: str = Field(min_length=1)
    password: str = Field(repr=False)

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        return check_password_strength(value)


__all__ = ["PasswordResetRequest", "PasswordResetConfirm"]
