"""Error taxonomy for priceanalyzer.

Every failure raised by the core belongs to one of four families:

- TransportError: the upload envelope or archive is unusable (client error)
- ValidationError: the CSV content is malformed (client error)
- PersistenceError: the store failed while handling a batch (server error)
- ConfigurationError: the service was wired incorrectly (fatal at startup)

Lower layers never retry; the HTTP layer maps each family to a status code.
"""

from __future__ import annotations


class PriceAnalyzerError(Exception):
    """Base class for all priceanalyzer errors."""

    status_code: int = 500

    def to_detail(self) -> dict:
        """JSON-serialisable description used in HTTP error bodies."""
        return {"error": type(self).__name__, "message": str(self)}


# ============================================================================
# Transport
# ============================================================================


class TransportError(PriceAnalyzerError):
    """Upload envelope, archive format or archive content is unusable."""

    status_code = 400


class UnsupportedFormat(TransportError):
    """Archive kind is not one of the supported containers."""

    def __init__(self, kind: object):
        self.kind = kind
        super().__init__(f"Unsupported archive format: {kind!r} (expected 'zip' or 'tar')")


class MemberNotFound(TransportError):
    """Container holds no member with a .csv suffix."""

    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(f"CSV file not found in the {kind.upper()} archive")


class CorruptArchive(TransportError):
    """Container or member bytes cannot be read."""


class BadRequestFormat(TransportError):
    """Request is not a multipart upload carrying a single file."""


class ArchiveWriteError(TransportError):
    """Outbound archive could not be assembled."""

    status_code = 500


# ============================================================================
# Validation
# ============================================================================


class ValidationError(PriceAnalyzerError):
    """CSV content failed strict decoding; the whole batch is rejected."""

    status_code = 422

    def __init__(self, message: str, row_index: int):
        self.row_index = row_index
        super().__init__(message)

    def to_detail(self) -> dict:
        detail = super().to_detail()
        detail["row"] = self.row_index
        return detail


class MalformedRow(ValidationError):
    """Row has the wrong number of fields or is not valid CSV."""

    def __init__(self, row_index: int, observed: int | None, reason: str | None = None):
        self.observed = observed
        if reason is None:
            reason = f"expected 5 fields, got {observed}"
        super().__init__(f"Malformed row {row_index}: {reason}", row_index)

    def to_detail(self) -> dict:
        detail = super().to_detail()
        detail["observed"] = self.observed
        return detail


class InvalidField(ValidationError):
    """A single field failed to parse into its declared type."""

    def __init__(self, row_index: int, field: str, value: str, reason: str):
        self.field = field
        self.value = value
        super().__init__(
            f"Invalid {field} in row {row_index}: {value!r} ({reason})", row_index
        )

    def to_detail(self) -> dict:
        detail = super().to_detail()
        detail["field"] = self.field
        return detail


# ============================================================================
# Persistence & configuration
# ============================================================================


class PersistenceError(PriceAnalyzerError):
    """Transaction begin, execute or commit failed; the batch was rolled back."""

    status_code = 500


class ConfigurationError(PriceAnalyzerError):
    """Service components were wired incorrectly."""
