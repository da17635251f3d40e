"""Archive container kinds."""

from __future__ import annotations

from enum import Enum

from priceanalyzer.core.errors import UnsupportedFormat


class ArchiveKind(str, Enum):
    """Supported container formats."""

    ZIP = "zip"
    TAR = "tar"

    @classmethod
    def parse(cls, value: str | ArchiveKind) -> ArchiveKind:
        """Return the kind named by ``value`` (case-insensitive).

        Raises:
            UnsupportedFormat: If ``value`` is not a supported container tag
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise UnsupportedFormat(value) from None

    @property
    def media_type(self) -> str:
        return _MEDIA_TYPES[self]

    @property
    def extension(self) -> str:
        return f".{self.value}"


_MEDIA_TYPES = {
    ArchiveKind.ZIP: "application/zip",
    ArchiveKind.TAR: "application/x-tar",
}

# Media types clients use when declaring an uploaded container.
TAR_MEDIA_TYPES = frozenset(
    {"application/x-tar", "application/tar", "application/x-gtar", "application/x-gzip",
     "application/gzip"}
)
CSV_MEDIA_TYPES = frozenset(
    {"text/csv", "application/csv", "text/comma-separated-values"}
)
