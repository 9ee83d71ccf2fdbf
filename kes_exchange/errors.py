"""Typed failures returned by the exchange operations."""
from __future__ import annotations


class ExchangeError(Exception):
    """Base class for every failure an operation can report.

    ``kind`` is the stable identifier exposed to callers; ``message`` is the
    human-readable explanation.
    """

    kind = "ExchangeError"
    default_message = "The request could not be completed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind, "message": self.message}


class EmptyFields(ExchangeError):
    kind = "EmptyFields"
    default_message = "All fields are required"


class InvalidEmail(ExchangeError):
    kind = "InvalidEmail"
    default_message = "Ensure the email address is of the correct format"


class InvalidPhoneNumber(ExchangeError):
    kind = "InvalidPhoneNumber"
    default_message = "Ensure the phone number is of the correct format"


class InvalidQuery(ExchangeError):
    kind = "InvalidQuery"
    default_message = "Query must be a valid email or phone number"


class InvalidRating(ExchangeError):
    kind = "InvalidRating"
    default_message = "Rating must be between 1 and 5"


class AlreadyExists(ExchangeError):
    kind = "AlreadyExists"
    default_message = "Email already exists"


class UserNotFound(ExchangeError):
    kind = "UserNotFound"
    default_message = "User does not exist"


class NotFound(ExchangeError):
    kind = "NotFound"
    default_message = "Record not found"


class Unauthorized(ExchangeError):
    kind = "Unauthorized"
    default_message = "Cannot create a swap request for your own item"


class AllocationFailed(ExchangeError):
    kind = "AllocationFailed"
    default_message = "Failed to increment the ID counter"


class RecordTooLarge(ExchangeError):
    kind = "RecordTooLarge"
    default_message = "Record exceeds the maximum serialised size"


class StorageFailed(ExchangeError):
    kind = "StorageFailed"
    default_message = "The record store could not be accessed"


__all__ = [
    "ExchangeError",
    "EmptyFields",
    "InvalidEmail",
    "InvalidPhoneNumber",
    "InvalidQuery",
    "InvalidRating",
    "AlreadyExists",
    "UserNotFound",
    "NotFound",
    "Unauthorized",
    "AllocationFailed",
    "RecordTooLarge",
    "StorageFailed",
]
