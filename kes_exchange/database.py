"""SQLite-backed durable segments for the exchange record store."""
from __future__ import annotations

import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Dict, Iterator, Optional, Tuple

ID_COUNTER_REGION = 0
USERS_REGION = 1
LISTINGS_REGION = 2
SWAP_REQUESTS_REGION = 3
FEEDBACK_REGION = 4

# Region identifiers are part of the on-disk format and must never be reused.
_SEGMENTS: Dict[int, str] = {
    ID_COUNTER_REGION: "id_counter",
    USERS_REGION: "users",
    LISTINGS_REGION: "listings",
    SWAP_REQUESTS_REGION: "swap_requests",
    FEEDBACK_REGION: "feedback",
}
_COUNTER_REGIONS = frozenset({ID_COUNTER_REGION})
_RECORD_REGIONS = frozenset(_SEGMENTS) - _COUNTER_REGIONS


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def resolve_database_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the exchange database."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return (base_dir / "exchange.sqlite3").resolve(strict=False)


def _record_table(region: int) -> str:
    if region not in _RECORD_REGIONS:
        raise ValueError(f"Region {region} is not a record region")
    return _SEGMENTS[region]


def _require_counter(region: int) -> None:
    if region not in _COUNTER_REGIONS:
        raise ValueError(f"Region {region} is not a counter region")


class Database:
    """Named, independently addressable persistent regions in one SQLite file.

    Region ``0`` holds the scalar identifier counter; regions ``1``-``4`` are
    keyed record maps storing one serialised record per identifier.
    """

    def __init__(self, path: Path) -> None:
        _ensure_directory(path)
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def initialize(self) -> None:
        """Create the persisted layout and verify existing region bindings."""

        with closing(self._connect()) as conn, conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS segments (
                    region_id INTEGER PRIMARY KEY,
                    name TEXT NOT NULL UNIQUE
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS counters (
                    region_id INTEGER PRIMARY KEY REFERENCES segments(region_id),
                    value INTEGER NOT NULL
                )
                """
            )
            for region in sorted(_RECORD_REGIONS):
                conn.execute(
                    f"""
                    CREATE TABLE IF NOT EXISTS {_SEGMENTS[region]} (
                        id INTEGER PRIMARY KEY,
                        record TEXT NOT NULL
                    )
                    """
                )

            bound = {
                int(row["region_id"]): str(row["name"])
                for row in conn.execute("SELECT region_id, name FROM segments").fetchall()
            }
            for region, name in _SEGMENTS.items():
                existing = bound.get(region)
                if existing is None:
                    conn.execute(
                        "INSERT INTO segments (region_id, name) VALUES (?, ?)",
                        (region, name),
                    )
                elif existing != name:
                    raise RuntimeError(
                        f"Region {region} is bound to '{existing}' but '{name}' was expected"
                    )

            for region in sorted(_COUNTER_REGIONS):
                conn.execute(
                    "INSERT OR IGNORE INTO counters (region_id, value) VALUES (?, 0)",
                    (region,),
                )

    # ------------------------------------------------------------------
    # Counter regions
    # ------------------------------------------------------------------
    def read_counter(self, region: int) -> int:
        _require_counter(region)
        with closing(self._connect()) as conn:
            row = conn.execute(
                "SELECT value FROM counters WHERE region_id = ?",
                (region,),
            ).fetchone()
        if row is None:
            raise RuntimeError(f"Counter region {region} has not been initialised")
        return int(row["value"])

    def increment_counter(self, region: int, *, limit: int) -> int:
        """Advance the counter by one and return the new value.

        The read and the write share a single transaction, so two callers can
        never observe the same value. ``OverflowError`` is raised without
        touching the counter once ``limit`` has been reached.
        """

        _require_counter(region)
        with closing(self._connect()) as conn, conn:
            conn.execute("BEGIN IMMEDIATE")
            row = conn.execute(
                "SELECT value FROM counters WHERE region_id = ?",
                (region,),
            ).fetchone()
            if row is None:
                raise RuntimeError(f"Counter region {region} has not been initialised")
            current = int(row["value"])
            if current >= limit:
                raise OverflowError(f"Counter region {region} is exhausted")
            conn.execute(
                "UPDATE counters SET value = ? WHERE region_id = ?",
                (current + 1, region),
            )
        return current + 1

    # ------------------------------------------------------------------
    # Record regions
    # ------------------------------------------------------------------
    def fetch_record(self, region: int, record_id: int) -> Optional[str]:
        table = _record_table(region)
        with closing(self._connect()) as conn:
            row = conn.execute(
                f"SELECT record FROM {table} WHERE id = ?",
                (record_id,),
            ).fetchone()
        if row is None:
            return None
        return str(row["record"])

    def store_record(self, region: int, record_id: int, payload: str) -> None:
        table = _record_table(region)
        with closing(self._connect()) as conn, conn:
            conn.execute(
                f"INSERT OR REPLACE INTO {table} (id, record) VALUES (?, ?)",
                (record_id, payload),
            )

    def iter_records(self, region: int) -> Iterator[Tuple[int, str]]:
        """Yield ``(id, payload)`` pairs in identifier order.

        Rows are pulled from the cursor lazily; the connection is closed when
        the traversal finishes or the generator is discarded.
        """

        table = _record_table(region)
        with closing(self._connect()) as conn:
            for row in conn.execute(f"SELECT id, record FROM {table} ORDER BY id"):
                yield int(row["id"]), str(row["record"])

    def count_records(self, region: int) -> int:
        table = _record_table(region)
        with closing(self._connect()) as conn:
            row = conn.execute(f"SELECT COUNT(*) AS total FROM {table}").fetchone()
        return int(row["total"])


__all__ = [
    "Database",
    "resolve_database_path",
    "ID_COUNTER_REGION",
    "USERS_REGION",
    "LISTINGS_REGION",
    "SWAP_REQUESTS_REGION",
    "FEEDBACK_REGION",
]
