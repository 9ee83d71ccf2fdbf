"""Request-level operations composed from validators, checks and stores."""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from typing import List, Optional, Protocol

from .errors import (
    AlreadyExists,
    InvalidQuery,
    NotFound,
    StorageFailed,
    Unauthorized,
    UserNotFound,
)
from .models import (
    Feedback,
    FeedbackPayload,
    Listing,
    ListingPayload,
    SwapRequest,
    SwapRequestPayload,
    SwapStatus,
    User,
    UserPayload,
)
from .storage import EntityStore, Stores
from .validators import (
    is_email,
    is_phone_number,
    validate_feedback_payload,
    validate_listing_payload,
    validate_user_payload,
)

logger = logging.getLogger("kes_exchange.handlers")


class Clock(Protocol):
    def now(self) -> int:
        ...


class ExchangeService:
    """Entry point for every operation exposed to callers.

    Each operation reads and validates first; only on the success path does
    it allocate an identifier (creations) and write exactly one record. Calls
    are serialised so the counter and the stores always see one writer.
    """

    def __init__(self, stores: Stores, clock: Clock) -> None:
        self._stores = stores
        self._clock = clock
        self._lock = threading.RLock()

    @property
    def stores(self) -> Stores:
        return self._stores

    def _store_new(self, store: EntityStore, record_id: int, record: object) -> None:
        try:
            store.put(record_id, record)
        except StorageFailed:
            logger.error(
                "Identifier %s was allocated but its %s record was not stored",
                record_id,
                store.name,
            )
            raise

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------
    def email_in_use(self, email: str, exclude_id: Optional[int] = None) -> bool:
        """Return ``True`` if another user already holds ``email``.

        Comparison is exact and case-sensitive. This is a full scan of the
        user store.
        """

        with self._lock:
            return any(
                user.email == email and record_id != exclude_id
                for record_id, user in self._stores.users.scan()
            )

    def create_user_profile(self, payload: UserPayload) -> User:
        with self._lock:
            validate_user_payload(payload)
            if self.email_in_use(payload.email):
                raise AlreadyExists()

            user = User(
                id=0,
                name=payload.name,
                phone_number=payload.phone_number,
                email=payload.email,
                created_at=self._clock.now(),
            )
            self._stores.users.ensure_fits(user)

            user = replace(user, id=self._stores.ids.next_id())
            self._store_new(self._stores.users, user.id, user)

        logger.info("Created user profile %s", user.id)
        return user

    def get_user_profile(self, user_id: int) -> User:
        with self._lock:
            user = self._stores.users.get(user_id)
        if user is None:
            raise UserNotFound()
        return user

    def update_user_profile(self, user_id: int, payload: UserPayload) -> User:
        with self._lock:
            existing = self._stores.users.get(user_id)
            if existing is None:
                raise UserNotFound()

            validate_user_payload(payload)
            if self.email_in_use(payload.email, exclude_id=user_id):
                raise AlreadyExists()

            updated = replace(
                existing,
                name=payload.name,
                phone_number=payload.phone_number,
                email=payload.email,
            )
            self._stores.users.put(user_id, updated)

        logger.info("Updated user profile %s", user_id)
        return updated

    def search_user(self, query: str) -> List[User]:
        """Find users by exact email or, failing that shape, by phone number."""

        if is_email(query):
            field, label = "email", "email"
        elif is_phone_number(query):
            field, label = "phone_number", "phone number"
        else:
            raise InvalidQuery()

        with self._lock:
            matches = [
                user for _, user in self._stores.users.scan() if getattr(user, field) == query
            ]
        if not matches:
            raise UserNotFound(f"No user found with the provided {label}")
        return matches

    def list_users(self) -> List[User]:
        with self._lock:
            return [user for _, user in self._stores.users.scan()]

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------
    def create_listing(self, payload: ListingPayload) -> Listing:
        with self._lock:
            validate_listing_payload(payload)
            if self._stores.users.get(payload.user_id) is None:
                raise UserNotFound()

            listing = Listing(
                id=0,
                user_id=payload.user_id,
                title=payload.title,
                author=payload.author,
                description=payload.description,
                created_at=self._clock.now(),
            )
            self._stores.listings.ensure_fits(listing)

            listing = replace(listing, id=self._stores.ids.next_id())
            self._store_new(self._stores.listings, listing.id, listing)

        logger.info("User %s listed item %s", listing.user_id, listing.id)
        return listing

    def get_listing(self, listing_id: int) -> Listing:
        with self._lock:
            listing = self._stores.listings.get(listing_id)
        if listing is None:
            raise NotFound("Listing not found")
        return listing

    # ------------------------------------------------------------------
    # Swap requests
    # ------------------------------------------------------------------
    def create_swap_request(self, payload: SwapRequestPayload) -> SwapRequest:
        with self._lock:
            listing = self._stores.listings.get(payload.listing_id)
            if listing is None:
                raise NotFound("Listing not found")
            if listing.user_id == payload.requested_by_id:
                raise Unauthorized()
            if self._stores.users.get(payload.requested_by_id) is None:
                raise UserNotFound()

            swap_request = SwapRequest(
                id=0,
                listing_id=payload.listing_id,
                requested_by_id=payload.requested_by_id,
                status=SwapStatus.PENDING,
                created_at=self._clock.now(),
            )
            self._stores.swap_requests.ensure_fits(swap_request)

            swap_request = replace(swap_request, id=self._stores.ids.next_id())
            self._store_new(self._stores.swap_requests, swap_request.id, swap_request)

        logger.info(
            "User %s requested a swap for listing %s (request %s)",
            swap_request.requested_by_id,
            swap_request.listing_id,
            swap_request.id,
        )
        return swap_request

    def get_swap_request(self, swap_request_id: int) -> SwapRequest:
        with self._lock:
            swap_request = self._stores.swap_requests.get(swap_request_id)
        if swap_request is None:
            raise NotFound("Swap request not found")
        return swap_request

    # ------------------------------------------------------------------
    # Feedback
    # ------------------------------------------------------------------
    def create_feedback(self, payload: FeedbackPayload) -> Feedback:
        with self._lock:
            validate_feedback_payload(payload)
            if self._stores.users.get(payload.user_id) is None:
                raise UserNotFound()
            if self._stores.swap_requests.get(payload.swap_request_id) is None:
                raise NotFound("Swap request not found")

            feedback = Feedback(
                id=0,
                user_id=payload.user_id,
                swap_request_id=payload.swap_request_id,
                rating=payload.rating,
                comment=payload.comment,
                created_at=self._clock.now(),
            )
            self._stores.feedback.ensure_fits(feedback)

            feedback = replace(feedback, id=self._stores.ids.next_id())
            self._store_new(self._stores.feedback, feedback.id, feedback)

        logger.info(
            "User %s left feedback %s on swap request %s",
            feedback.user_id,
            feedback.id,
            feedback.swap_request_id,
        )
        return feedback

    def get_feedback(self, feedback_id: int) -> Feedback:
        with self._lock:
            feedback = self._stores.feedback.get(feedback_id)
        if feedback is None:
            raise NotFound("Feedback not found")
        return feedback


__all__ = ["Clock", "ExchangeService"]
