"""Archive member readers.

Each reader fully buffers its container, selects the first regular member
whose name ends in ``.csv`` (case-insensitive) and exposes that member as a
bounded binary stream. Remaining members are ignored.
"""

from __future__ import annotations

import io
import logging
import tarfile
import zipfile
import zlib
from typing import IO, Iterable

from priceanalyzer.archive.kinds import ArchiveKind
from priceanalyzer.core.errors import CorruptArchive, MemberNotFound

logger = logging.getLogger(__name__)

_READ_ERRORS = (OSError, EOFError, zlib.error, zipfile.BadZipFile, tarfile.TarError)


def is_csv_member(name: str) -> bool:
    """Check whether an archive entry name carries the .csv suffix."""
    return name.lower().endswith(".csv")


class MemberReader(io.RawIOBase):
    """Read-only stream over a single archive member.

    ``size`` is the member size advertised by the container and bounds every
    read: the reader never returns more bytes than advertised, and a member
    that ends early is reported as CorruptArchive rather than as end-of-stream.
    Once ``size`` bytes have been delivered, reads return ``b""``.
    """

    kind: ArchiveKind

    def __init__(self, name: str, size: int, source: IO[bytes], resources: Iterable = ()):
        self.name = name
        self.size = size
        self._source = source
        self._remaining = size
        self._resources = [source, *resources]

    def readable(self) -> bool:
        return True

    @property
    def at_eof(self) -> bool:
        return self._remaining <= 0

    def readinto(self, buffer) -> int:
        if self.closed:
            raise ValueError("I/O operation on closed archive member")
        if self._remaining <= 0 or len(buffer) == 0:
            return 0

        want = min(len(buffer), self._remaining)
        try:
            chunk = self._source.read(want)
        except _READ_ERRORS as e:
            raise CorruptArchive(f"Failed to read member {self.name!r}: {e}") from e

        if not chunk:
            raise CorruptArchive(
                f"Member {self.name!r} ended after {self.size - self._remaining} "
                f"of {self.size} advertised bytes"
            )

        n = len(chunk)
        buffer[:n] = chunk
        self._remaining -= n
        return n

    def close(self) -> None:
        # Safe on partially constructed readers and on repeated calls.
        if not self.closed:
            for resource in getattr(self, "_resources", ()):
                try:
                    resource.close()
                except _READ_ERRORS as e:
                    logger.debug(f"Ignoring error while releasing archive resource: {e}")
            self._resources = []
        super().close()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r} size={self.size}>"


class ZipMemberReader(MemberReader):
    """First CSV member of a ZIP container."""

    kind = ArchiveKind.ZIP

    @classmethod
    def from_bytes(cls, data: bytes) -> ZipMemberReader:
        try:
            archive = zipfile.ZipFile(io.BytesIO(data))
        except _READ_ERRORS as e:
            raise CorruptArchive(f"Error processing ZIP archive: {e}") from e

        try:
            for info in archive.infolist():
                if info.is_dir() or not is_csv_member(info.filename):
                    continue
                member = archive.open(info)
                return cls(info.filename, info.file_size, member, resources=(archive,))
        except _READ_ERRORS as e:
            archive.close()
            raise CorruptArchive(f"Error processing ZIP archive: {e}") from e

        archive.close()
        raise MemberNotFound(ArchiveKind.ZIP.value)


class TarMemberReader(MemberReader):
    """First CSV member of a TAR container (plain or compressed)."""

    kind = ArchiveKind.TAR

    @classmethod
    def from_bytes(cls, data: bytes) -> TarMemberReader:
        try:
            archive = tarfile.open(fileobj=io.BytesIO(data), mode="r:*")
        except _READ_ERRORS as e:
            raise CorruptArchive(f"Error processing TAR archive: {e}") from e

        try:
            for info in archive:
                if not info.isreg() or not is_csv_member(info.name):
                    continue
                member = archive.extractfile(info)
                if member is None:
                    continue
                return cls(info.name, info.size, member, resources=(archive,))
        except _READ_ERRORS as e:
            archive.close()
            raise CorruptArchive(f"Error processing TAR archive: {e}") from e

        archive.close()
        raise MemberNotFound(ArchiveKind.TAR.value)
