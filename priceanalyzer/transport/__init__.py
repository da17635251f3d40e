"""Transport negotiation for archive-wrapped request and response bodies."""

from priceanalyzer.transport.negotiator import (
    CSV_MEDIA_TYPE,
    DecodedBody,
    EncodedBody,
    TransportNegotiator,
)

__all__ = ["CSV_MEDIA_TYPE", "DecodedBody", "EncodedBody", "TransportNegotiator"]
