"""Unit tests for the priceanalyzer CLI."""

from __future__ import annotations

import io
import json
import zipfile

from typer.testing import CliRunner

from priceanalyzer.archive import wrap
from priceanalyzer.cli import app

runner = CliRunner()


def test_ingest_dry_run_needs_no_database(tmp_path, sample_csv, monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    upload = tmp_path / "prices.zip"
    upload.write_bytes(wrap(sample_csv, "zip"))

    result = runner.invoke(app, ["ingest", str(upload), "--dry-run"])

    assert result.exit_code == 0, result.output
    assert "29.98" in result.output


def test_ingest_then_export(tmp_path, sample_csv, sqlite_url, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", sqlite_url)
    upload = tmp_path / "prices.csv"
    upload.write_bytes(sample_csv)
    out = tmp_path / "export.zip"

    ingested = runner.invoke(app, ["ingest", str(upload)])
    exported = runner.invoke(app, ["export", "--out", str(out), "--archive", "zip"])

    assert ingested.exit_code == 0, ingested.output
    assert "Batch committed" in ingested.output
    assert exported.exit_code == 0, exported.output
    with zipfile.ZipFile(io.BytesIO(out.read_bytes())) as archive:
        records = json.loads(archive.read("prices.json"))
    assert [r["id"] for r in records] == [1, 2]


def test_ingest_invalid_csv_fails(tmp_path, monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    upload = tmp_path / "bad.csv"
    upload.write_bytes(b"id,name,category,price,create_date\n1,Widget\n")

    result = runner.invoke(app, ["ingest", str(upload), "--dry-run"])

    assert result.exit_code == 1


def test_ping_without_database_url(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)

    result = runner.invoke(app, ["ping"])

    assert result.exit_code == 2
