"""Price ingestion service.

Connects the record decoder to the price store: decodes an upload, commits it
as one batch and reports the resulting statistics. A process-wide read/write
lock keeps ingestion exclusive while full-table reads share access.
"""

from __future__ import annotations

from typing import IO, Sequence

import structlog

from priceanalyzer.core.errors import ConfigurationError
from priceanalyzer.db.keeper import PriceKeeper
from priceanalyzer.ingestion.decoder import decode_records
from priceanalyzer.ingestion.locks import ReadWriteLock
from priceanalyzer.models import IngestionSummary, PriceRecord


class PriceIngestionService:
    """Ingestion and read paths over a PriceKeeper."""

    def __init__(
        self,
        keeper: PriceKeeper,
        logger: structlog.stdlib.BoundLogger | None = None,
        statement_timeout: float = 30.0,
        ping_timeout: float = 2.0,
    ):
        """Initialize service.

        Args:
            keeper: Persistence collaborator (required)
            logger: Bound structlog logger
            statement_timeout: Deadline in seconds for each store call
            ping_timeout: Deadline in seconds for connectivity probes

        Raises:
            ConfigurationError: If keeper is missing
        """
        if keeper is None:
            raise ConfigurationError("keeper is nil, cannot initialize ingestion service")
        self.keeper = keeper
        self.log = logger or structlog.get_logger(__name__)
        self.statement_timeout = statement_timeout
        self.ping_timeout = ping_timeout
        self._lock = ReadWriteLock()
        self._closed = False

    @property
    def lock(self) -> ReadWriteLock:
        return self._lock

    async def process_prices(self, stream: IO[bytes]) -> IngestionSummary:
        """Decode a CSV stream and ingest every record as one batch.

        Raises:
            ValidationError: If any row is malformed (nothing is persisted)
            PersistenceError: If the store rejects the batch (rolled back)
        """
        records = decode_records(stream)
        self.log.info("csv_decoded", records=len(records))
        return await self.ingest(records)

    async def ingest(self, records: Sequence[PriceRecord]) -> IngestionSummary:
        """Persist records atomically and return store statistics.

        An empty batch returns a zero summary without touching the store.
        """
        if not records:
            self.log.info("empty_batch_skipped")
            return IngestionSummary.empty()

        async with self._lock.write():
            summary = await self.keeper.insert_records(
                records, timeout=self.statement_timeout
            )

        self.log.info(
            "batch_ingested",
            records=len(records),
            total_items=summary.total_items,
            total_categories=summary.total_categories,
            total_price=str(summary.total_price),
        )
        return summary

    async def fetch_all(self) -> list[PriceRecord]:
        """Snapshot of every stored record, taken under the shared lock."""
        async with self._lock.read():
            return await self.keeper.fetch_all(timeout=self.statement_timeout)

    async def ping(self) -> bool:
        """Bounded connectivity probe."""
        return await self.keeper.ping(self.ping_timeout)

    async def close(self) -> bool:
        """Release the keeper. Safe to call more than once."""
        if self._closed:
            return False
        self._closed = True
        return await self.keeper.close()
