"""Pytest configuration and fixtures for priceanalyzer tests.

Provides common fixtures for testing.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from priceanalyzer.config import AppConfig, DBConfig
from priceanalyzer.models import IngestionSummary, PriceRecord, summarize

SAMPLE_CSV = (
    b"id,name,category,price,create_date\n"
    b"1,Widget,Tools,9.99,2024-01-15\n"
    b"2,Gadget,Tools,19.99,2024-01-16\n"
)


class InMemoryPriceKeeper:
    """PriceKeeper test double with insert-if-absent semantics."""

    def __init__(self, healthy: bool = True):
        self.rows: dict[int, PriceRecord] = {}
        self.healthy = healthy
        self.insert_calls = 0
        self.close_calls = 0
        self.fail_with: Exception | None = None

    async def insert_records(self, records, timeout=None) -> IngestionSummary:
        self.insert_calls += 1
        if self.fail_with is not None:
            raise self.fail_with
        for record in records:
            self.rows.setdefault(record.id, record)
        return summarize(list(self.rows.values()))

    async def fetch_all(self, timeout=None) -> list[PriceRecord]:
        return [self.rows[key] for key in sorted(self.rows)]

    async def ping(self, timeout: float) -> bool:
        return self.healthy

    async def close(self) -> bool:
        self.close_calls += 1
        return self.close_calls == 1


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    """Keep developer .env values out of the tests."""
    for name in (
        "LOG_LEVEL",
        "LOG_FORMAT",
        "RUN_ADDRESS",
        "DB_POOL_SIZE",
        "DB_POOL_MAX_OVERFLOW",
        "DB_POOL_TIMEOUT",
        "DB_ECHO",
        "DB_AUTO_CREATE",
        "STATEMENT_TIMEOUT_SECONDS",
        "PING_TIMEOUT_SECONDS",
        "MAX_UPLOAD_BYTES",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def sample_csv() -> bytes:
    """Two-row price list with a header."""
    return SAMPLE_CSV


@pytest.fixture
def sample_record() -> PriceRecord:
    """Create a sample price record."""
    return PriceRecord(
        id=1,
        name="Widget",
        category="Tools",
        price=Decimal("9.99"),
        create_date=date(2024, 1, 15),
    )


@pytest.fixture
def fake_keeper() -> InMemoryPriceKeeper:
    return InMemoryPriceKeeper()


@pytest.fixture
def keeper_factory():
    """Build independent in-memory keepers within one test."""
    return InMemoryPriceKeeper


@pytest.fixture
def sqlite_url(tmp_path) -> str:
    """File-backed SQLite URL private to one test."""
    return f"sqlite+aiosqlite:///{tmp_path / 'prices.db'}"


@pytest.fixture
def app_config(sqlite_url) -> AppConfig:
    return AppConfig(db=DBConfig(url=sqlite_url), log_format="text")
