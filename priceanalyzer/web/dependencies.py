"""Shared dependencies for priceanalyzer web routes.

Components are created once by the application factory and stored on
``app.state``; these functions hand them to route handlers through FastAPI's
Depends() system.

Usage:
    from fastapi import Depends
    from priceanalyzer.web.dependencies import get_ingestion_service

    @router.get("/prices")
    async def prices(service = Depends(get_ingestion_service)):
        return await service.fetch_all()
"""

from __future__ import annotations

from fastapi import Request

from priceanalyzer.config import LimitsConfig
from priceanalyzer.core.errors import ConfigurationError
from priceanalyzer.ingestion.service import PriceIngestionService
from priceanalyzer.transport.negotiator import TransportNegotiator


def get_limits(request: Request) -> LimitsConfig:
    return request.app.state.config.limits


def get_negotiator(request: Request) -> TransportNegotiator:
    return request.app.state.negotiator


def get_ingestion_service(request: Request) -> PriceIngestionService:
    """Get the ingestion service wired up during application startup.

    Raises:
        ConfigurationError: If the application lifespan has not run
    """
    service = getattr(request.app.state, "ingestion_service", None)
    if service is None:
        raise ConfigurationError("Ingestion service is not initialised")
    return service
