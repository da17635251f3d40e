"""Transport negotiation between HTTP bodies and the archive codec.

Inbound, the negotiator decides whether an uploaded file is a ZIP container,
a TAR container or plain CSV, and hands downstream stages a plain CSV stream.
Outbound, it optionally packages a fully buffered response body into a
container and produces the headers to send with it.
"""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from typing import IO

import structlog

from priceanalyzer.archive import ArchiveKind, open_writer, unwrap
from priceanalyzer.archive.kinds import CSV_MEDIA_TYPES, TAR_MEDIA_TYPES
from priceanalyzer.core.errors import BadRequestFormat

CSV_MEDIA_TYPE = "text/csv"
MULTIPART_FORM_DATA = "multipart/form-data"


def _base_media_type(value: str | None) -> str:
    """Strip parameters (charset, boundary) and normalise case."""
    if not value:
        return ""
    return value.split(";", 1)[0].strip().lower()


@dataclass
class DecodedBody:
    """Plain CSV request body as seen by the record decoder.

    ``content_length`` is None whenever the body was unwrapped from a
    container, since the member length is not the length of the request.
    """

    stream: IO[bytes]
    content_type: str = CSV_MEDIA_TYPE
    content_length: int | None = None
    kind: ArchiveKind | None = None
    member_name: str | None = None

    def close(self) -> None:
        self.stream.close()


@dataclass
class EncodedBody:
    """Fully assembled response ready to be emitted in one piece."""

    body: bytes
    status_code: int
    headers: dict[str, str] = field(default_factory=dict)


class TransportNegotiator:
    """Selects an archive codec (or passthrough) for request and response bodies."""

    def __init__(self, logger: structlog.stdlib.BoundLogger | None = None):
        self.log = logger or structlog.get_logger(__name__)

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    @staticmethod
    def ensure_multipart(content_type: str | None) -> None:
        """Reject requests that are not multipart uploads.

        Raises:
            BadRequestFormat: If the request content type is not multipart/form-data
        """
        if _base_media_type(content_type) != MULTIPART_FORM_DATA:
            raise BadRequestFormat("Content-Type must be multipart/form-data")

    @staticmethod
    def resolve_inbound_kind(
        query_type: str | None, declared_type: str | None = None
    ) -> ArchiveKind | None:
        """Pick the codec for an uploaded file.

        The explicit ``type`` query hint always wins; values other than zip or
        tar fall back to zip. Without a hint the media type declared for the
        uploaded part decides, and anything unrecognised is treated as zip.

        Returns:
            ArchiveKind to unwrap with, or None for plain CSV passthrough
        """
        if query_type is not None:
            hint = query_type.strip().lower()
            return ArchiveKind.TAR if hint == ArchiveKind.TAR.value else ArchiveKind.ZIP

        declared = _base_media_type(declared_type)
        if declared in TAR_MEDIA_TYPES:
            return ArchiveKind.TAR
        if declared in CSV_MEDIA_TYPES:
            return None
        return ArchiveKind.ZIP

    def decode_inbound(self, payload: bytes, kind: ArchiveKind | None) -> DecodedBody:
        """Substitute the uploaded bytes with a plain CSV stream.

        Raises:
            UnsupportedFormat, MemberNotFound, CorruptArchive: From the codec
        """
        if kind is None:
            self.log.debug("upload_passthrough", bytes=len(payload))
            return DecodedBody(stream=io.BytesIO(payload), content_length=len(payload))

        member = unwrap(payload, kind)
        self.log.info(
            "upload_unwrapped",
            kind=kind.value,
            member=member.name,
            member_size=member.size,
            container_bytes=len(payload),
        )
        return DecodedBody(
            stream=member,
            content_length=None,
            kind=kind,
            member_name=member.name,
        )

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    @staticmethod
    def resolve_outbound_kind(
        archive_param: str | None, accept: str | None = None
    ) -> ArchiveKind | None:
        """Decide whether the response should be archived.

        Archiving is opt-in: an ``archive`` query parameter or an Accept
        header naming an archive media type engages it.

        Raises:
            UnsupportedFormat: If archive_param names an unknown container
        """
        if archive_param:
            return ArchiveKind.parse(archive_param)

        accepted = {_base_media_type(part) for part in (accept or "").split(",")}
        for kind in ArchiveKind:
            if kind.media_type in accepted:
                return kind
        return None

    def encode_outbound(
        self,
        body: bytes,
        status_code: int,
        kind: ArchiveKind | None,
        member_name: str,
        media_type: str = "application/json",
        filename: str | None = None,
    ) -> EncodedBody:
        """Produce the final response bytes and headers.

        The archive is assembled completely before any header value is
        produced, so a failure leaves nothing half-sent.

        Raises:
            ArchiveWriteError: If the container cannot be assembled
        """
        if kind is None:
            return EncodedBody(
                body=body,
                status_code=status_code,
                headers={"Content-Type": media_type},
            )

        with open_writer(kind, member_name) as writer:
            writer.write(body)
        archive = writer.getvalue()

        stem = member_name.rsplit(".", 1)[0] or "data"
        filename = filename or f"{stem}{kind.extension}"
        self.log.info(
            "response_archived",
            kind=kind.value,
            payload_bytes=len(body),
            archive_bytes=len(archive),
        )
        return EncodedBody(
            body=archive,
            status_code=status_code,
            headers={
                "Content-Type": kind.media_type,
                "Content-Disposition": f'attachment; filename="{filename}"',
            },
        )
