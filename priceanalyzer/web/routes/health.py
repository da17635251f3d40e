"""Health check API routes.

Provides endpoints for monitoring application health and connectivity.
"""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from priceanalyzer.ingestion.service import PriceIngestionService
from priceanalyzer.web.dependencies import get_ingestion_service

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("", status_code=status.HTTP_200_OK)
async def health_check(service: PriceIngestionService = Depends(get_ingestion_service)):
    """Check application health.

    Verifies database connectivity within the configured ping deadline.
    """
    if await service.ping():
        return {"status": "ok", "database": "connected"}
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "error", "database": "disconnected"},
    )
