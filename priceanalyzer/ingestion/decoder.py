"""CSV price list decoding.

Turns a CSV byte stream into typed PriceRecord objects. Decoding is strict and
all-or-nothing: the first invalid row rejects the whole input, and no partial
record list is ever returned.

Expected layout (header row is skipped without validation):

    id,name,category,price,create_date
    1,Widget,Tools,9.99,2024-01-15

Row numbers in errors are 1-based and count the header as row 1.
"""

from __future__ import annotations

import csv
import io
import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import IO

from priceanalyzer.core.errors import InvalidField, MalformedRow
from priceanalyzer.models import CENTS, ID_MAX, ID_MIN, PRICE_LIMIT, PriceRecord

EXPECTED_FIELDS = 5

_INTEGER = re.compile(r"[+-]?\d+")
_ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")


def decode_records(stream: IO[bytes]) -> list[PriceRecord]:
    """Decode every data row of a CSV stream.

    A zero-byte stream has no header and decodes to an empty list. Lines that
    are completely empty are ignored.

    Args:
        stream: Binary stream of UTF-8 CSV (a leading BOM is tolerated)

    Returns:
        Records in file order

    Raises:
        MalformedRow: Wrong field count, bad CSV quoting or undecodable bytes
        InvalidField: A field does not parse into its type
    """
    text = io.TextIOWrapper(stream, encoding="utf-8-sig", newline="")
    reader = csv.reader(text, strict=True)
    records: list[PriceRecord] = []
    row_index = 1

    try:
        try:
            header = next(reader, None)
        except (csv.Error, UnicodeDecodeError) as e:
            raise MalformedRow(row_index, None, f"unreadable header: {e}") from e
        if header is None:
            return []

        while True:
            row_index += 1
            try:
                row = next(reader)
            except StopIteration:
                break
            except (csv.Error, UnicodeDecodeError) as e:
                raise MalformedRow(row_index, None, str(e)) from e

            if not row:
                continue
            records.append(parse_row(row, row_index))
    finally:
        # Leave the caller's stream open; it owns the underlying buffer.
        text.detach()

    return records


def parse_row(row: list[str], row_index: int) -> PriceRecord:
    """Convert one CSV row into a PriceRecord.

    Raises:
        MalformedRow: If the row does not have exactly five fields
        InvalidField: If any field fails to parse
    """
    if len(row) != EXPECTED_FIELDS:
        raise MalformedRow(row_index, len(row))

    raw_id, name, category, raw_price, raw_date = (value.strip() for value in row)

    if not _INTEGER.fullmatch(raw_id):
        raise InvalidField(row_index, "id", raw_id, "not an integer")
    # int() refuses strings beyond the interpreter digit limit.
    record_id = int(raw_id) if len(raw_id) <= 32 else ID_MAX + 1
    if not ID_MIN <= record_id <= ID_MAX:
        raise InvalidField(row_index, "id", raw_id, "outside the 32-bit integer range")

    if not name:
        raise InvalidField(row_index, "name", name, "must not be empty")
    if not category:
        raise InvalidField(row_index, "category", category, "must not be empty")

    try:
        price = Decimal(raw_price)
    except InvalidOperation:
        raise InvalidField(row_index, "price", raw_price, "not a decimal number") from None
    if not price.is_finite():
        raise InvalidField(row_index, "price", raw_price, "not a finite number")
    if price < 0:
        raise InvalidField(row_index, "price", raw_price, "must be non-negative")
    if price >= PRICE_LIMIT:
        raise InvalidField(row_index, "price", raw_price, f"must be below {PRICE_LIMIT:f}")
    if price != price.quantize(CENTS):
        raise InvalidField(row_index, "price", raw_price, "more than two decimal places")

    if not _ISO_DATE.fullmatch(raw_date):
        raise InvalidField(row_index, "create_date", raw_date, "expected YYYY-MM-DD")
    try:
        create_date = date.fromisoformat(raw_date)
    except ValueError as e:
        raise InvalidField(row_index, "create_date", raw_date, str(e)) from None

    return PriceRecord(
        id=record_id,
        name=name,
        category=category,
        price=price,
        create_date=create_date,
    )
