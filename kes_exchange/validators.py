"""Side-effect free checks applied to inbound payloads."""

from __future__ import annotations

import re

from .errors import EmptyFields, InvalidEmail, InvalidPhoneNumber, InvalidRating
from .models import FeedbackPayload, ListingPayload, UserPayload

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
PHONE_PATTERN = re.compile(r"^[0-9]{10}$")

MIN_RATING = 1
MAX_RATING = 5


def is_email(value: str) -> bool:
    return EMAIL_PATTERN.fullmatch(value) is not None


def is_phone_number(value: str) -> bool:
    return PHONE_PATTERN.fullmatch(value) is not None


def validate_user_payload(payload: UserPayload) -> None:
    """Check required fields, then the email shape, then the phone shape.

    Only the first violation is reported.
    """

    if not payload.name or not payload.phone_number or not payload.email:
        raise EmptyFields()
    if not is_email(payload.email):
        raise InvalidEmail()
    if not is_phone_number(payload.phone_number):
        raise InvalidPhoneNumber()


def validate_listing_payload(payload: ListingPayload) -> None:
    if not payload.title or not payload.author or not payload.description:
        raise EmptyFields("Title, author and description are required")


def validate_feedback_payload(payload: FeedbackPayload) -> None:
    if not MIN_RATING <= payload.rating <= MAX_RATING:
        raise InvalidRating(f"Rating must be between {MIN_RATING} and {MAX_RATING}")


__all__ = [
    "EMAIL_PATTERN",
    "PHONE_PATTERN",
    "is_email",
    "is_phone_number",
    "validate_user_payload",
    "validate_listing_payload",
    "validate_feedback_payload",
]
