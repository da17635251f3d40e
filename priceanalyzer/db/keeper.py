"""Price persistence behind a narrow capability interface.

The ingestion service only talks to a PriceKeeper; schema and connection
details stay here.
"""

from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import Protocol, Sequence

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from priceanalyzer.core.errors import ConfigurationError, PersistenceError
from priceanalyzer.db.connection import Database
from priceanalyzer.db.models import PriceModel
from priceanalyzer.models import IngestionSummary, PriceRecord


class PriceKeeper(Protocol):
    """Capability contract for the price store."""

    async def insert_records(
        self, records: Sequence[PriceRecord], timeout: float | None = None
    ) -> IngestionSummary:
        ...

    async def fetch_all(self, timeout: float | None = None) -> list[PriceRecord]:
        ...

    async def ping(self, timeout: float) -> bool:
        ...

    async def close(self) -> bool:
        ...


class SQLPriceKeeper:
    """PriceKeeper backed by SQLAlchemy (PostgreSQL or SQLite).

    Each batch is written in one transaction:

        BEGIN
        INSERT ... ON CONFLICT (id) DO NOTHING   -- one executemany for the batch
        SELECT count(*), count(DISTINCT category), sum(price) FROM prices
        COMMIT

    Any failure, deadline or cancellation rolls the transaction back. The
    returned summary describes the whole store as the ingesting transaction
    sees it just before commit.
    """

    def __init__(
        self,
        database: Database,
        statement_timeout: float = 30.0,
        logger: structlog.stdlib.BoundLogger | None = None,
    ):
        if database is None:
            raise ConfigurationError("SQLPriceKeeper requires a Database")
        self.database = database
        self.statement_timeout = statement_timeout
        self.log = logger or structlog.get_logger(__name__)
        self._insert_stmt = self._build_insert()

    def _build_insert(self):
        dialect = self.database.dialect_name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            raise ConfigurationError(f"Unsupported database dialect: {dialect}")

        return insert(PriceModel).on_conflict_do_nothing(index_elements=[PriceModel.id])

    async def insert_records(
        self, records: Sequence[PriceRecord], timeout: float | None = None
    ) -> IngestionSummary:
        """Insert a batch atomically; rows with an existing id are left untouched.

        Raises:
            PersistenceError: If any stage fails or the deadline passes
        """
        if not records:
            return IngestionSummary.empty()

        deadline = timeout if timeout is not None else self.statement_timeout
        try:
            return await asyncio.wait_for(self._insert(records), timeout=deadline)
        except asyncio.TimeoutError as e:
            self.log.error("ingestion_timed_out", records=len(records), timeout=deadline)
            raise PersistenceError(
                f"Price batch insert exceeded {deadline}s deadline; transaction rolled back"
            ) from e

    async def _insert(self, records: Sequence[PriceRecord]) -> IngestionSummary:
        params = [
            {
                "id": record.id,
                "name": record.name,
                "category": record.category,
                "price": record.price,
                "create_date": record.create_date,
            }
            for record in records
        ]

        async with self.database.session() as session:
            try:
                async with session.begin():
                    await session.execute(self._insert_stmt, params)
                    summary = await self._compute_summary(session)
                    self.log.info("committing_transaction", records=len(records))
            except SQLAlchemyError as e:
                self.log.error(
                    "ingestion_rolled_back",
                    records=len(records),
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise PersistenceError(f"Failed to insert price batch: {e}") from e

        self.log.info(
            "prices_inserted",
            records=len(records),
            total_items=summary.total_items,
        )
        return summary

    @staticmethod
    async def _compute_summary(session: AsyncSession) -> IngestionSummary:
        stmt = select(
            func.count(PriceModel.id),
            func.count(func.distinct(PriceModel.category)),
            func.coalesce(func.sum(PriceModel.price), 0),
        )
        total_items, total_categories, total_price = (await session.execute(stmt)).one()
        return IngestionSummary(
            total_items=total_items,
            total_categories=total_categories,
            total_price=Decimal(str(total_price)),
        )

    async def fetch_all(self, timeout: float | None = None) -> list[PriceRecord]:
        """Return every stored record ordered by id.

        Raises:
            PersistenceError: If the query fails or the deadline passes
        """
        deadline = timeout if timeout is not None else self.statement_timeout
        try:
            return await asyncio.wait_for(self._fetch_all(), timeout=deadline)
        except asyncio.TimeoutError as e:
            self.log.error("fetch_timed_out", timeout=deadline)
            raise PersistenceError(f"Fetching prices exceeded {deadline}s deadline") from e

    async def _fetch_all(self) -> list[PriceRecord]:
        stmt = select(PriceModel).order_by(PriceModel.id)
        async with self.database.session() as session:
            try:
                rows = (await session.execute(stmt)).scalars().all()
            except SQLAlchemyError as e:
                self.log.error("fetch_failed", error=str(e))
                raise PersistenceError(f"Failed to fetch prices: {e}") from e

        records = [
            PriceRecord(
                id=row.id,
                name=row.name,
                category=row.category,
                price=Decimal(str(row.price)),
                create_date=row.create_date,
            )
            for row in rows
        ]
        self.log.info("prices_fetched", count=len(records))
        return records

    async def ping(self, timeout: float) -> bool:
        return await self.database.ping(timeout)

    async def close(self) -> bool:
        return await self.database.close()
