"""Integration tests for SQLPriceKeeper against a real SQLite database.

Verifies insert-if-absent semantics, all-or-nothing batches and store-wide
statistics.
"""

from __future__ import annotations

import asyncio
import io
from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio

from priceanalyzer.config import DBConfig
from priceanalyzer.core.errors import InvalidField, PersistenceError
from priceanalyzer.db import Database, SQLPriceKeeper
from priceanalyzer.ingestion import PriceIngestionService
from priceanalyzer.models import PriceRecord


def _record(id: int, category: str = "Tools", price: str = "1.00") -> PriceRecord:
    return PriceRecord(
        id=id,
        name=f"Item {id}",
        category=category,
        price=Decimal(price),
        create_date=date(2024, 1, 15),
    )


@pytest_asyncio.fixture()
async def keeper(sqlite_url):
    """Keeper over a freshly created schema."""
    database = Database(DBConfig(url=sqlite_url))
    await database.init_db()
    keeper = SQLPriceKeeper(database, statement_timeout=10)
    yield keeper
    await keeper.close()


@pytest.mark.asyncio
async def test_insert_returns_store_summary(keeper):
    summary = await keeper.insert_records(
        [_record(1, price="9.99"), _record(2, price="19.99")]
    )

    assert summary.total_items == 2
    assert summary.total_categories == 1
    assert summary.total_price == Decimal("29.98")


@pytest.mark.asyncio
async def test_reingest_leaves_existing_rows_untouched(keeper):
    await keeper.insert_records([_record(1, price="5.00")])

    changed = PriceRecord(
        id=1, name="Renamed", category="Other", price=Decimal("99.00"),
        create_date=date(2025, 1, 1),
    )
    summary = await keeper.insert_records([changed])

    assert summary.total_items == 1
    assert summary.total_price == Decimal("5.00")
    (stored,) = await keeper.fetch_all()
    assert stored.name == "Item 1"
    assert stored.category == "Tools"


@pytest.mark.asyncio
async def test_summary_covers_whole_store(keeper):
    await keeper.insert_records([_record(1, "Tools", "1.00"), _record(2, "Tools", "2.00")])

    summary = await keeper.insert_records(
        [_record(2, "Tools", "2.00"), _record(3, "Garden", "3.50")]
    )

    assert summary.total_items == 3
    assert summary.total_categories == 2
    assert summary.total_price == Decimal("6.50")


@pytest.mark.asyncio
async def test_failed_batch_is_rolled_back(keeper):
    """Test a row violating a constraint aborts the whole batch."""
    await keeper.insert_records([_record(1)])
    invalid = PriceRecord.model_construct(
        id=11, name="Bad", category="Tools", price=Decimal("-1"),
        create_date=date(2024, 1, 15),
    )

    with pytest.raises(PersistenceError):
        await keeper.insert_records([_record(10), invalid])

    assert [r.id for r in await keeper.fetch_all()] == [1]


@pytest.mark.asyncio
async def test_prices_round_trip_unchanged(keeper):
    prices = ["0.10", "9.99", "12345.67", "9999999999.99"]
    await keeper.insert_records([_record(i, price=p) for i, p in enumerate(prices, 1)])

    records = await keeper.fetch_all()

    assert [r.price for r in records] == [Decimal(p) for p in prices]


@pytest.mark.asyncio
async def test_insert_deadline_rolls_back(keeper, monkeypatch):
    """Test a batch stalled inside its transaction is rolled back on timeout."""

    async def stalled_summary(session):
        await asyncio.sleep(5)

    monkeypatch.setattr(keeper, "_compute_summary", stalled_summary)

    with pytest.raises(PersistenceError) as exc_info:
        await keeper.insert_records([_record(1), _record(2)], timeout=0.1)

    assert "deadline" in str(exc_info.value)
    assert await keeper.fetch_all() == []


@pytest.mark.asyncio
async def test_fetch_deadline(keeper, monkeypatch):
    async def stalled_fetch():
        await asyncio.sleep(5)

    monkeypatch.setattr(keeper, "_fetch_all", stalled_fetch)

    with pytest.raises(PersistenceError):
        await keeper.fetch_all(timeout=0.1)


@pytest.mark.asyncio
async def test_excess_precision_never_reaches_store(keeper):
    service = PriceIngestionService(keeper)
    data = b"id,name,category,price,create_date\n1,Widget,Tools,9.999,2024-01-15\n"

    with pytest.raises(InvalidField):
        await service.process_prices(io.BytesIO(data))

    assert await keeper.fetch_all() == []


@pytest.mark.asyncio
async def test_fetch_all_ordered_by_id(keeper):
    await keeper.insert_records([_record(3), _record(1), _record(2)])

    records = await keeper.fetch_all()

    assert [r.id for r in records] == [1, 2, 3]
    assert records[0].price == Decimal("1.00")


@pytest.mark.asyncio
async def test_empty_batch_does_not_touch_store(keeper):
    summary = await keeper.insert_records([])

    assert summary.total_items == 0


@pytest.mark.asyncio
async def test_ping_and_close(sqlite_url):
    database = Database(DBConfig(url=sqlite_url))
    keeper = SQLPriceKeeper(database)

    assert await keeper.ping(2.0) is True
    assert await keeper.close() is True
    assert await keeper.close() is False
    assert await keeper.ping(2.0) is False


@pytest.mark.asyncio
async def test_end_to_end_csv_ingestion(keeper, sample_csv):
    """Decode, persist and summarise through the service."""
    service = PriceIngestionService(keeper)

    summary = await service.process_prices(io.BytesIO(sample_csv))
    again = await service.process_prices(io.BytesIO(sample_csv))

    assert summary.total_items == 2
    assert summary.total_price == Decimal("29.98")
    assert again == summary
