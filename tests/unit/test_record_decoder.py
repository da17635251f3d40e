"""Unit tests for CSV price list decoding."""

from __future__ import annotations

import io
from datetime import date
from decimal import Decimal

import pytest

from priceanalyzer.core.errors import InvalidField, MalformedRow, ValidationError
from priceanalyzer.ingestion.decoder import decode_records, parse_row

HEADER = b"id,name,category,price,create_date\n"


def _decode(data: bytes):
    return decode_records(io.BytesIO(data))


class TestDecodeRecords:
    """Tests for decode_records()."""

    def test_decodes_rows_in_order(self, sample_csv):
        records = _decode(sample_csv)

        assert [r.id for r in records] == [1, 2]
        first = records[0]
        assert first.name == "Widget"
        assert first.category == "Tools"
        assert first.price == Decimal("9.99")
        assert first.create_date == date(2024, 1, 15)

    def test_empty_stream(self):
        assert _decode(b"") == []

    def test_header_only(self):
        assert _decode(HEADER) == []

    def test_header_is_not_validated(self):
        records = _decode(b"a,b\n7,Bolt,Hardware,0.10,2024-02-01\n")

        assert len(records) == 1
        assert records[0].id == 7

    def test_blank_lines_skipped(self):
        data = HEADER + b"\n1,Widget,Tools,9.99,2024-01-15\n\n"
        assert len(_decode(data)) == 1

    def test_crlf_and_bom(self):
        data = b"\xef\xbb\xbf" + HEADER.replace(b"\n", b"\r\n") + b"1,Widget,Tools,1.50,2024-01-15\r\n"

        records = _decode(data)

        assert records[0].price == Decimal("1.50")

    def test_quoted_fields(self):
        data = HEADER + b'1,"Widget, large","Tools ""Pro""",9.99,2024-01-15\n'

        record = _decode(data)[0]

        assert record.name == "Widget, large"
        assert record.category == 'Tools "Pro"'

    def test_wrong_field_count_rejects_batch(self):
        data = HEADER + b"1,Widget,Tools,9.99,2024-01-15\n2,Gadget,19.99\n"

        with pytest.raises(MalformedRow) as exc_info:
            _decode(data)

        err = exc_info.value
        assert err.row_index == 3
        assert err.observed == 3
        assert err.status_code == 422
        assert err.to_detail()["row"] == 3

    def test_extra_field(self):
        with pytest.raises(MalformedRow):
            _decode(HEADER + b"1,Widget,Tools,9.99,2024-01-15,extra\n")

    def test_invalid_utf8(self):
        with pytest.raises(MalformedRow) as exc_info:
            _decode(HEADER + b"1,Wid\xffget,Tools,9.99,2024-01-15\n")

        assert exc_info.value.observed is None

    def test_bad_quoting(self):
        with pytest.raises(MalformedRow):
            _decode(HEADER + b'1,"Wid"get,Tools,9.99,2024-01-15\n')

    def test_caller_stream_stays_open(self, sample_csv):
        stream = io.BytesIO(sample_csv)

        decode_records(stream)

        assert not stream.closed


class TestParseRow:
    """Tests for per-field parsing."""

    def test_whitespace_trimmed(self):
        record = parse_row([" 5 ", " Nut ", " Hardware ", " 0.05 ", " 2024-03-01 "], 2)

        assert record.id == 5
        assert record.name == "Nut"
        assert record.price == Decimal("0.05")

    @pytest.mark.parametrize(
        "row, field",
        [
            (["x", "Widget", "Tools", "9.99", "2024-01-15"], "id"),
            (["1.5", "Widget", "Tools", "9.99", "2024-01-15"], "id"),
            (["1", "", "Tools", "9.99", "2024-01-15"], "name"),
            (["1", "Widget", "  ", "9.99", "2024-01-15"], "category"),
            (["1", "Widget", "Tools", "abc", "2024-01-15"], "price"),
            (["1", "Widget", "Tools", "NaN", "2024-01-15"], "price"),
            (["1", "Widget", "Tools", "Infinity", "2024-01-15"], "price"),
            (["1", "Widget", "Tools", "-1.00", "2024-01-15"], "price"),
            (["1", "Widget", "Tools", "9.999", "2024-01-15"], "price"),
            (["1", "Widget", "Tools", "10000000000", "2024-01-15"], "price"),
            (["1", "Widget", "Tools", "1E+30", "2024-01-15"], "price"),
            (["2147483648", "Widget", "Tools", "9.99", "2024-01-15"], "id"),
            (["-2147483649", "Widget", "Tools", "9.99", "2024-01-15"], "id"),
            (["9" * 5000, "Widget", "Tools", "9.99", "2024-01-15"], "id"),
            (["1", "Widget", "Tools", "9.99", "15/01/2024"], "create_date"),
            (["1", "Widget", "Tools", "9.99", "2024-02-30"], "create_date"),
            (["1", "Widget", "Tools", "9.99", "2024-01-15T10:00:00"], "create_date"),
        ],
    )
    def test_invalid_field(self, row, field):
        with pytest.raises(InvalidField) as exc_info:
            parse_row(row, 4)

        err = exc_info.value
        assert err.field == field
        assert err.row_index == 4
        assert isinstance(err, ValidationError)

    def test_zero_price_allowed(self):
        assert parse_row(["1", "Free", "Promo", "0", "2024-01-15"], 2).price == 0

    def test_negative_id_accepted(self):
        assert parse_row(["-3", "Widget", "Tools", "1", "2024-01-15"], 2).id == -3

    def test_storage_bounds_accepted(self):
        record = parse_row(["2147483647", "Max", "Tools", "9999999999.99", "2024-01-15"], 2)

        assert record.id == 2147483647
        assert record.price == Decimal("9999999999.99")

    def test_trailing_zeros_accepted(self):
        assert parse_row(["1", "Widget", "Tools", "9.990", "2024-01-15"], 2).price == Decimal("9.99")

    def test_excess_precision_rejects_batch(self):
        data = HEADER + b"1,Widget,Tools,9.99,2024-01-15\n2,Gadget,Tools,9.999,2024-01-16\n"

        with pytest.raises(InvalidField) as exc_info:
            _decode(data)

        assert exc_info.value.row_index == 3
        assert exc_info.value.status_code == 422
