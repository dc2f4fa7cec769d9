from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError as PydanticValidationError

from animelist.core.errors import ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


def first_error_message(exc: PydanticValidationError) -> str:
    """Return a user-facing message for the first failing field."""

    error = exc.errors()[0]
    context_error = (error.get("ctx") or {}).get("error")
    if isinstance(context_error, Exception):
        return str(context_error)
    field = ".".join(str(part) for part in error.get("loc", ()))
    message = error.get("msg", "Invalid value")
    return f"{field}: {message}" if field else message


def parse_input(model: type[ModelT], **fields: Any) -> ModelT:
    """Validate raw form values into ``model`` or raise a domain ``ValidationError``."""

    try:
        return model(**fields)
    except PydanticValidationError as exc:
        raise ValidationError(first_error_message(exc)) from exc


__all__ = ["first_error_message", "parse_input"]
