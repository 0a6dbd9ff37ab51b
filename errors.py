"""
Error kinds raised by services and guards.

Each one is an HTTPException so FastAPI routes it to the envelope handler in
main.py; the status code is fixed by the kind.
"""
from typing import Iterable, Optional

from fastapi import HTTPException, status
from pydantic import ValidationError as PydanticValidationError


class AppError(HTTPException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str, status_code: Optional[int] = None):
        super().__init__(status_code=status_code or type(self).status_code, detail=detail)


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST


class Unauthenticated(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED


class InvalidCredentials(Unauthenticated):
    pass


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(AppError):
    status_code = status.HTTP_400_BAD_REQUEST


class Internal(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def format_validation_errors(errors: Iterable[dict]) -> str:
    messages = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        field = ".".join(loc)
        messages.append(f"{field}: {err['msg']}" if field else err["msg"])
    return ", ".join(messages)


def from_pydantic(exc: PydanticValidationError) -> ValidationError:
    return ValidationError(format_validation_errors(exc.errors()))
