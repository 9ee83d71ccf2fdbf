"""Identifier allocation and typed entity stores on top of :mod:`database`."""

from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import asdict, dataclass, replace
from typing import Callable, Dict, Generic, Iterator, Optional, Tuple, TypeVar

from .database import (
    FEEDBACK_REGION,
    ID_COUNTER_REGION,
    LISTINGS_REGION,
    SWAP_REQUESTS_REGION,
    USERS_REGION,
    Database,
)
from .errors import AllocationFailed, RecordTooLarge, StorageFailed
from .models import Feedback, Listing, SwapRequest, User

logger = logging.getLogger("kes_exchange.storage")

# SQLite stores INTEGER as a signed 64-bit value.
ID_MAX = 2**63 - 1

USER_MAX_SIZE = 1024
LISTING_MAX_SIZE = 2048
SWAP_REQUEST_MAX_SIZE = 1024
FEEDBACK_MAX_SIZE = 1024

RecordT = TypeVar("RecordT")


class IdAllocator:
    """Hands out unique, strictly increasing identifiers shared by every store."""

    def __init__(self, database: Database, *, region: int = ID_COUNTER_REGION) -> None:
        self._database = database
        self._region = region

    def current(self) -> int:
        """Return the most recently issued identifier (0 before the first allocation)."""
        try:
            return self._database.read_counter(self._region)
        except sqlite3.Error as exc:
            raise StorageFailed("Failed to read the identifier counter") from exc

    def next_id(self) -> int:
        try:
            return self._database.increment_counter(self._region, limit=ID_MAX)
        except OverflowError as exc:
            logger.error("Identifier space exhausted in region %s", self._region)
            raise AllocationFailed("Identifier space is exhausted") from exc
        except sqlite3.Error as exc:
            logger.error("Failed to persist identifier counter: %s", exc)
            raise AllocationFailed() from exc


def _encode(record: object) -> str:
    return json.dumps(
        asdict(record), separators=(",", ":"), sort_keys=True, ensure_ascii=False
    )


class EntityStore(Generic[RecordT]):
    """Durable ``id -> record`` map for a single entity kind."""

    def __init__(
        self,
        database: Database,
        *,
        region: int,
        name: str,
        decoder: Callable[[Dict[str, object]], RecordT],
        max_size: int,
    ) -> None:
        self._database = database
        self._region = region
        self._decoder = decoder
        self.name = name
        self.max_size = max_size

    def encode(self, record: RecordT) -> str:
        payload = _encode(record)
        size = len(payload.encode("utf-8"))
        if size > self.max_size:
            raise RecordTooLarge(
                f"{self.name} record is {size} bytes; the limit is {self.max_size} bytes"
            )
        return payload

    def ensure_fits(self, record: RecordT) -> None:
        """Raise :class:`RecordTooLarge` unless ``record`` fits with any identifier.

        The widest identifier is substituted so the check holds regardless of
        which value the allocator hands out afterwards.
        """

        self.encode(replace(record, id=ID_MAX))  # type: ignore[type-var]

    def decode(self, payload: str) -> RecordT:
        return self._decoder(json.loads(payload))

    def get(self, record_id: int) -> Optional[RecordT]:
        try:
            payload = self._database.fetch_record(self._region, record_id)
        except sqlite3.Error as exc:
            logger.error("Failed to read %s record %s: %s", self.name, record_id, exc)
            raise StorageFailed(f"Failed to read {self.name} record") from exc
        if payload is None:
            return None
        return self.decode(payload)

    def put(self, record_id: int, record: RecordT) -> None:
        payload = self.encode(record)
        try:
            self._database.store_record(self._region, record_id, payload)
        except sqlite3.Error as exc:
            logger.error("Failed to write %s record %s: %s", self.name, record_id, exc)
            raise StorageFailed(f"Failed to write {self.name} record") from exc

    def scan(self) -> Iterator[Tuple[int, RecordT]]:
        try:
            for record_id, payload in self._database.iter_records(self._region):
                yield record_id, self.decode(payload)
        except sqlite3.Error as exc:
            logger.error("Failed to scan %s records: %s", self.name, exc)
            raise StorageFailed(f"Failed to scan {self.name} records") from exc

    def __len__(self) -> int:
        try:
            return self._database.count_records(self._region)
        except sqlite3.Error as exc:
            raise StorageFailed(f"Failed to count {self.name} records") from exc


@dataclass(frozen=True)
class Stores:
    """The allocator and the four entity stores bound to one database."""

    ids: IdAllocator
    users: EntityStore[User]
    listings: EntityStore[Listing]
    swap_requests: EntityStore[SwapRequest]
    feedback: EntityStore[Feedback]

    @classmethod
    def open(cls, database: Database) -> "Stores":
        return cls(
            ids=IdAllocator(database),
            users=EntityStore(
                database,
                region=USERS_REGION,
                name="User",
                decoder=User.from_dict,
                max_size=USER_MAX_SIZE,
            ),
            listings=EntityStore(
                database,
                region=LISTINGS_REGION,
                name="Listing",
                decoder=Listing.from_dict,
                max_size=LISTING_MAX_SIZE,
            ),
            swap_requests=EntityStore(
                database,
                region=SWAP_REQUESTS_REGION,
                name="SwapRequest",
                decoder=SwapRequest.from_dict,
                max_size=SWAP_REQUEST_MAX_SIZE,
            ),
            feedback=EntityStore(
                database,
                region=FEEDBACK_REGION,
                name="Feedback",
                decoder=Feedback.from_dict,
                max_size=FEEDBACK_MAX_SIZE,
            ),
        )


__all__ = [
    "ID_MAX",
    "IdAllocator",
    "EntityStore",
    "Stores",
]
