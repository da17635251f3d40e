"""FastAPI application factory for priceanalyzer.

Run with uvicorn's factory mode:

    uvicorn priceanalyzer.web.app:create_app --factory
"""

from __future__ import annotations

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import CollectorRegistry
from prometheus_fastapi_instrumentator import Instrumentator

from priceanalyzer import __version__
from priceanalyzer.config import AppConfig
from priceanalyzer.core.errors import PriceAnalyzerError
from priceanalyzer.core.logging import configure_logging
from priceanalyzer.db.connection import Database
from priceanalyzer.db.keeper import PriceKeeper, SQLPriceKeeper
from priceanalyzer.ingestion.service import PriceIngestionService
from priceanalyzer.transport.negotiator import TransportNegotiator
from priceanalyzer.web.middleware import RequestLoggingMiddleware
from priceanalyzer.web.routes import health, prices


async def build_service(
    config: AppConfig,
    logger: structlog.stdlib.BoundLogger,
    keeper: PriceKeeper | None = None,
) -> PriceIngestionService:
    """Wire the keeper and ingestion service for one process.

    When no keeper is supplied, a SQL keeper is built from ``config.db`` and
    tables are created if ``config.db.auto_create`` is set.
    """
    if keeper is None:
        database = Database(config.db, logger=logger.bind(component="database"))
        if config.db.auto_create:
            await database.init_db()
        keeper = SQLPriceKeeper(
            database,
            statement_timeout=config.limits.statement_timeout_seconds,
            logger=logger.bind(component="keeper"),
        )

    return PriceIngestionService(
        keeper,
        logger=logger.bind(component="ingestion"),
        statement_timeout=config.limits.statement_timeout_seconds,
        ping_timeout=config.limits.ping_timeout_seconds,
    )


def create_app(config: AppConfig | None = None, keeper: PriceKeeper | None = None) -> FastAPI:
    """Create the priceanalyzer API.

    Args:
        config: Application configuration (default: loaded from environment)
        keeper: Persistence collaborator to use instead of the SQL keeper

    Returns:
        Configured FastAPI application
    """
    config = config or AppConfig.from_env()
    logger = configure_logging(config.log_level, config.log_format)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        service = await build_service(config, logger, keeper)
        app.state.ingestion_service = service
        logger.info("service_started", host=config.server.host, port=config.server.port)
        try:
            yield
        finally:
            await service.close()
            app.state.ingestion_service = None
            logger.info("service_stopped")

    app = FastAPI(
        title="Price Analyzer",
        description="Archive-transparent price list ingestion API",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.negotiator = TransportNegotiator(logger.bind(component="transport"))
    app.state.ingestion_service = None

    app.add_middleware(RequestLoggingMiddleware, logger=logger)

    # Prometheus Metrics
    Instrumentator(registry=CollectorRegistry()).instrument(app).expose(app)

    @app.exception_handler(PriceAnalyzerError)
    async def price_analyzer_error_handler(request: Request, exc: PriceAnalyzerError):
        """Map the error taxonomy onto HTTP status codes."""
        if exc.status_code >= 500:
            logger.error("request_error", path=request.url.path, **exc.to_detail())
        else:
            logger.warning("request_rejected", path=request.url.path, **exc.to_detail())
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.to_detail()},
        )

    app.include_router(health.router)
    app.include_router(prices.router)

    return app
