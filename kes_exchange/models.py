"""Domain records and inbound payloads for the exchange."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict


class SwapStatus(str, Enum):
    """Lifecycle state of a swap request."""

    PENDING = "Pending"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"


@dataclass(frozen=True)
class User:
    """A registered participant of the exchange."""

    id: int
    name: str
    phone_number: str
    email: str
    created_at: int

    @staticmethod
    def from_dict(data: Dict[str, object]) -> "User":
        return User(
            id=int(data["id"]),
            name=str(data["name"]),
            phone_number=str(data["phone_number"]),
            email=str(data["email"]),
            created_at=int(data["created_at"]),
        )


@dataclass(frozen=True)
class Listing:
    """A tradeable item offered by a user (``KenyanShillings`` upstream)."""

    id: int
    user_id: int
    title: str
    author: str
    description: str
    created_at: int

    @staticmethod
    def from_dict(data: Dict[str, object]) -> "Listing":
        return Listing(
            id=int(data["id"]),
            user_id=int(data["user_id"]),
            title=str(data["title"]),
            author=str(data["author"]),
            description=str(data["description"]),
            created_at=int(data["created_at"]),
        )


@dataclass(frozen=True)
class SwapRequest:
    id: int
    listing_id: int
    requested_by_id: int
    status: SwapStatus
    created_at: int

    @staticmethod
    def from_dict(data: Dict[str, object]) -> "SwapRequest":
        return SwapRequest(
            id=int(data["id"]),
            listing_id=int(data["listing_id"]),
            requested_by_id=int(data["requested_by_id"]),
            status=SwapStatus(str(data["status"])),
            created_at=int(data["created_at"]),
        )


@dataclass(frozen=True)
class Feedback:
    id: int
    user_id: int
    swap_request_id: int
    rating: int
    comment: str
    created_at: int

    @staticmethod
    def from_dict(data: Dict[str, object]) -> "Feedback":
        return Feedback(
            id=int(data["id"]),
            user_id=int(data["user_id"]),
            swap_request_id=int(data["swap_request_id"]),
            rating=int(data["rating"]),
            comment=str(data["comment"]),
            created_at=int(data["created_at"]),
        )


@dataclass(frozen=True)
class UserPayload:
    name: str
    phone_number: str
    email: str


@dataclass(frozen=True)
class ListingPayload:
    user_id: int
    title: str
    author: str
    description: str


@dataclass(frozen=True)
class SwapRequestPayload:
    listing_id: int
    requested_by_id: int


@dataclass(frozen=True)
class FeedbackPayload:
    user_id: int
    swap_request_id: int
    rating: int
    comment: str


__all__ = [
    "SwapStatus",
    "User",
    "Listing",
    "SwapRequest",
    "Feedback",
    "UserPayload",
    "ListingPayload",
    "SwapRequestPayload",
    "FeedbackPayload",
]
