"""Price list ingestion: CSV decoding and the transactional ingestion service."""

from priceanalyzer.ingestion.decoder import decode_records
from priceanalyzer.ingestion.locks import ReadWriteLock
from priceanalyzer.ingestion.service import PriceIngestionService

__all__ = ["PriceIngestionService", "ReadWriteLock", "decode_records"]
