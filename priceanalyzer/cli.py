"""priceanalyzer CLI.

Commands:
- init: Initialize database schema
- serve: Run the HTTP API
- ingest: Ingest a local price list (CSV, ZIP or TAR)
- export: Write all stored prices as JSON, optionally archived
- ping: Check database connectivity
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from priceanalyzer.archive import ArchiveKind
from priceanalyzer.config import AppConfig
from priceanalyzer.core.errors import PriceAnalyzerError
from priceanalyzer.core.logging import configure_logging
from priceanalyzer.db.connection import Database
from priceanalyzer.ingestion.decoder import decode_records
from priceanalyzer.models import IngestionSummary, summarize
from priceanalyzer.transport.negotiator import TransportNegotiator
from priceanalyzer.web.app import build_service
from priceanalyzer.web.routes.prices import EXPORT_MEMBER_NAME, records_adapter

app = typer.Typer(
    name="priceanalyzer",
    help="Price Analyzer - archive-transparent price list ingestion",
    no_args_is_help=True,
)

console = Console()

_SUFFIX_KINDS = {
    ".zip": "zip",
    ".tar": "tar",
    ".tgz": "tar",
    ".gz": "tar",
    ".csv": "csv",
}


def _load_config() -> AppConfig:
    try:
        return AppConfig.from_env()
    except KeyError as e:
        console.print(f"[red]✗[/red] {e.args[0]}")
        raise typer.Exit(code=2) from e


def _print_summary(summary: IngestionSummary, title: str) -> None:
    table = Table(title=title)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right", style="green")

    table.add_row("Total items", str(summary.total_items))
    table.add_row("Total categories", str(summary.total_categories))
    table.add_row("Total price", f"{summary.total_price:,.2f}")

    console.print(table)


@app.command()
def init(
    drop: bool = typer.Option(False, "--drop", help="Drop existing tables"),
):
    """Initialize database schema."""
    config = _load_config()
    logger = configure_logging(config.log_level, "text")
    console.print(f"[bold]Initializing database:[/bold] {config.db.url}")

    async def _init():
        database = Database(config.db, logger=logger)
        try:
            if drop:
                console.print("[yellow]Dropping existing tables...[/yellow]")
            await database.init_db(drop=drop)
        finally:
            await database.close()

    asyncio.run(_init())
    console.print("[bold green]✓[/bold green] Database initialized")


@app.command()
def serve(
    host: str | None = typer.Option(None, help="Host to bind (default: RUN_ADDRESS)"),
    port: int | None = typer.Option(None, help="Port to bind (default: RUN_ADDRESS)"),
    reload: bool = typer.Option(False, help="Enable autoreload (dev only)"),
):
    """Run the HTTP API."""
    import uvicorn

    config = _load_config()
    host = host or config.server.host
    port = port or config.server.port

    typer.echo(f"Starting price analyzer on http://{host}:{port}")
    uvicorn.run(
        "priceanalyzer.web.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        workers=1,
    )


@app.command()
def ingest(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Price list file"),
    archive_type: str | None = typer.Option(
        None, "--type", help="zip, tar or csv (default: from file suffix)"
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Decode and summarise without touching the database"
    ),
):
    """Ingest a local price list into the database."""
    kind_name = (archive_type or _SUFFIX_KINDS.get(file.suffix.lower(), "zip")).lower()
    try:
        kind = None if kind_name == "csv" else ArchiveKind.parse(kind_name)
    except PriceAnalyzerError as e:
        raise typer.BadParameter(str(e)) from e

    config = None if dry_run else _load_config()

    console.print(f"[bold]Ingesting:[/bold] {file} ({kind_name})")
    negotiator = TransportNegotiator()

    try:
        body = negotiator.decode_inbound(file.read_bytes(), kind)
    except PriceAnalyzerError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1) from e

    if dry_run:
        try:
            records = decode_records(body.stream)
        except PriceAnalyzerError as e:
            console.print(f"[red]✗[/red] {e}")
            raise typer.Exit(code=1) from e
        finally:
            body.close()
        _print_summary(summarize(records), "Batch summary (dry run)")
        return

    logger = configure_logging(config.log_level, "text")

    async def _ingest() -> IngestionSummary:
        service = await build_service(config, logger)
        try:
            return await service.process_prices(body.stream)
        finally:
            body.close()
            await service.close()

    try:
        summary = asyncio.run(_ingest())
    except PriceAnalyzerError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1) from e

    console.print("[bold green]✓[/bold green] Batch committed")
    _print_summary(summary, "Store summary")


@app.command()
def export(
    output: Path | None = typer.Option(None, "--out", "-o", help="Output file (default: stdout)"),
    archive: str | None = typer.Option(None, "--archive", help="Wrap output in zip or tar"),
):
    """Export every stored price record as JSON."""
    try:
        kind = ArchiveKind.parse(archive) if archive else None
    except PriceAnalyzerError as e:
        raise typer.BadParameter(str(e)) from e
    if kind is not None and output is None:
        raise typer.BadParameter("--archive requires --out")

    config = _load_config()
    logger = configure_logging(config.log_level, "text")

    async def _export() -> bytes:
        service = await build_service(config, logger)
        try:
            records = await service.fetch_all()
        finally:
            await service.close()
        console.print(f"Fetched {len(records)} records", style="dim")
        return records_adapter.dump_json(records)

    try:
        payload = asyncio.run(_export())
    except PriceAnalyzerError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1) from e

    encoded = TransportNegotiator().encode_outbound(
        payload, status_code=200, kind=kind, member_name=EXPORT_MEMBER_NAME
    )
    if output is None:
        typer.echo(encoded.body.decode("utf-8"))
        return

    output.write_bytes(encoded.body)
    console.print(f"[green]✓[/green] Export saved to: {output}")


@app.command()
def ping():
    """Check database connectivity."""
    config = _load_config()
    logger = configure_logging(config.log_level, "text")

    async def _ping() -> bool:
        database = Database(config.db, logger=logger)
        try:
            return await database.ping(config.limits.ping_timeout_seconds)
        finally:
            await database.close()

    if asyncio.run(_ping()):
        console.print("[bold green]✓[/bold green] Database reachable")
    else:
        console.print("[red]✗[/red] Database unreachable")
        raise typer.Exit(code=1)


def main():
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
