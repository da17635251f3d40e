"""Database layer for priceanalyzer with async SQLAlchemy."""

from priceanalyzer.db.connection import Database
from priceanalyzer.db.keeper import PriceKeeper, SQLPriceKeeper
from priceanalyzer.db.models import Base, PriceModel

__all__ = [
    "Base",
    "Database",
    "PriceKeeper",
    "PriceModel",
    "SQLPriceKeeper",
]
