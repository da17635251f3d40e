"""priceanalyzer - archive-transparent price list ingestion service."""

__version__ = "1.0.0"
