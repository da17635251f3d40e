"""priceanalyzer Pydantic models for type-safe data validation."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

CENTS = Decimal("0.01")

# Bounds of the prices table: INTEGER id, NUMERIC(12, 2) price.
ID_MIN = -(2**31)
ID_MAX = 2**31 - 1
PRICE_LIMIT = Decimal("1e10")


class PriceRecord(BaseModel):
    """One priced item from a price list."""

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "id": 1,
                "name": "Widget",
                "category": "Tools",
                "price": 9.99,
                "create_date": "2024-01-15",
            }
        },
    )

    id: int = Field(ge=ID_MIN, le=ID_MAX)
    name: str = Field(min_length=1)
    category: str = Field(min_length=1)
    price: Decimal
    create_date: date

    @field_validator("price")
    @classmethod
    def validate_price(cls, v: Decimal) -> Decimal:
        if not v.is_finite():
            raise ValueError("price must be a finite number")
        if v < 0:
            raise ValueError("price must be non-negative")
        if v >= PRICE_LIMIT or v != v.quantize(CENTS):
            raise ValueError("price must fit NUMERIC(12, 2)")
        return v

    @field_serializer("price")
    def serialize_price(self, v: Decimal) -> float:
        return float(v)


class IngestionSummary(BaseModel):
    """Aggregate statistics of the price store after an ingestion.

    Derived on demand, never persisted.
    """

    total_items: int = 0
    total_categories: int = 0
    total_price: Decimal = Decimal("0.00")

    @field_validator("total_price")
    @classmethod
    def quantize_total(cls, v: Decimal) -> Decimal:
        return Decimal(v).quantize(CENTS)

    @field_serializer("total_price")
    def serialize_total(self, v: Decimal) -> float:
        return float(v)

    @classmethod
    def empty(cls) -> IngestionSummary:
        return cls()


def summarize(records: list[PriceRecord]) -> IngestionSummary:
    """Compute statistics for a batch of records alone (no store involved)."""
    return IngestionSummary(
        total_items=len(records),
        total_categories=len({record.category for record in records}),
        total_price=sum((record.price for record in records), Decimal("0")),
    )
