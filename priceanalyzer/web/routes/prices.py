"""Price list routes.

Routes:
- POST /api/v0/prices - Upload a price list (ZIP, TAR or plain CSV) and ingest it
- GET  /api/v0/prices - Return every stored record as JSON, optionally archived
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import Response
from pydantic import TypeAdapter
from starlette.datastructures import UploadFile

from priceanalyzer.config import LimitsConfig
from priceanalyzer.core.errors import BadRequestFormat
from priceanalyzer.ingestion.service import PriceIngestionService
from priceanalyzer.models import IngestionSummary, PriceRecord
from priceanalyzer.transport.negotiator import TransportNegotiator
from priceanalyzer.web.dependencies import get_ingestion_service, get_limits, get_negotiator

router = APIRouter(prefix="/api/v0", tags=["prices"])

EXPORT_MEMBER_NAME = "prices.json"

records_adapter = TypeAdapter(list[PriceRecord])


def _raise_too_large(limit: int) -> None:
    raise HTTPException(
        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
        detail=f"Upload exceeds {limit} bytes",
    )


@router.post("/prices", response_model=IngestionSummary)
async def post_prices(
    request: Request,
    archive_type: str | None = Query(default=None, alias="type"),
    service: PriceIngestionService = Depends(get_ingestion_service),
    negotiator: TransportNegotiator = Depends(get_negotiator),
    limits: LimitsConfig = Depends(get_limits),
):
    """Upload and ingest a price list.

    Expects a multipart form with a single ``file`` field. The ``type`` query
    parameter (zip or tar) selects the container; without it the part's
    declared media type decides and ZIP is assumed.

    Returns:
        Store statistics after the batch was committed
    """
    negotiator.ensure_multipart(request.headers.get("content-type"))

    form = await request.form(max_files=1)
    upload = form.get("file")
    if not isinstance(upload, UploadFile):
        raise BadRequestFormat("Failed to retrieve file from form: missing 'file' field")

    try:
        # Size is known once the form is parsed; reject before buffering.
        if upload.size is not None and upload.size > limits.max_upload_bytes:
            _raise_too_large(limits.max_upload_bytes)
        payload = await upload.read(limits.max_upload_bytes + 1)
    finally:
        await upload.close()

    if len(payload) > limits.max_upload_bytes:
        _raise_too_large(limits.max_upload_bytes)

    kind = negotiator.resolve_inbound_kind(archive_type, upload.content_type)
    body = negotiator.decode_inbound(payload, kind)
    try:
        return await service.process_prices(body.stream)
    finally:
        body.close()


@router.get("/prices")
async def get_prices(
    request: Request,
    archive: str | None = Query(default=None),
    service: PriceIngestionService = Depends(get_ingestion_service),
    negotiator: TransportNegotiator = Depends(get_negotiator),
):
    """Return all stored price records.

    Pass ``archive=zip`` (or ``tar``), or send an ``Accept: application/zip``
    header, to receive the JSON body packaged as a downloadable container.
    """
    kind = negotiator.resolve_outbound_kind(archive, request.headers.get("accept"))
    records = await service.fetch_all()

    encoded = negotiator.encode_outbound(
        records_adapter.dump_json(records),
        status_code=status.HTTP_200_OK,
        kind=kind,
        member_name=EXPORT_MEMBER_NAME,
    )
    return Response(
        content=encoded.body,
        status_code=encoded.status_code,
        headers=encoded.headers,
    )
