from __future__ import annotations

from pathlib import Path

import pytest

from kes_exchange.database import Database
from kes_exchange.handlers import ExchangeService
from kes_exchange.storage import Stores


class FixedClock:
    """Clock returning a controllable timestamp."""

    def __init__(self, value: int = 1_700_000_000_000_000_000) -> None:
        self.value = value

    def now(self) -> int:
        return self.value


@pytest.fixture()
def database(tmp_path: Path) -> Database:
    db = Database(tmp_path / "exchange.sqlite3")
    db.initialize()
    return db


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture()
def service(database: Database, clock: FixedClock) -> ExchangeService:
    return ExchangeService(Stores.open(database), clock)
