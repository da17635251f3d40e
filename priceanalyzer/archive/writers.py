"""Single-member archive writers.

A writer accepts payload bytes through ``write`` and produces a complete
container from ``getvalue``. The container is only finished on ``close``,
because both formats need information that is known only once the payload is
complete (the ZIP central directory, the TAR member size header).
"""

from __future__ import annotations

import io
import tarfile
import time
import zipfile
from abc import ABC, abstractmethod

from priceanalyzer.archive.kinds import ArchiveKind
from priceanalyzer.core.errors import ArchiveWriteError


class ArchiveWriter(ABC):
    """Write-only adapter that packages one member into a container."""

    kind: ArchiveKind

    def __init__(self, member_name: str):
        if not member_name:
            raise ArchiveWriteError("Archive member name must not be empty")
        self.member_name = member_name
        self._sink = io.BytesIO()
        self._closed = False
        self._open()

    @abstractmethod
    def _open(self) -> None:
        """Prepare the container for payload writes."""

    @abstractmethod
    def _write(self, data: bytes) -> None:
        """Append payload bytes to the member."""

    @abstractmethod
    def _finish(self) -> None:
        """Write trailing container structures into the sink."""

    @abstractmethod
    def _abort(self) -> None:
        """Release resources after a failed write."""

    @property
    def closed(self) -> bool:
        return getattr(self, "_closed", True)

    def write(self, data: bytes) -> int:
        if self.closed:
            raise ArchiveWriteError("Write to a closed archive writer")
        try:
            self._write(bytes(data))
        except (OSError, ValueError, zipfile.LargeZipFile, tarfile.TarError) as e:
            self._fail()
            raise ArchiveWriteError(f"Failed to write to {self.kind.value} archive: {e}") from e
        return len(data)

    def close(self) -> None:
        """Finish the container. Safe to call repeatedly."""
        if self.closed:
            return
        self._closed = True
        try:
            self._finish()
        except (OSError, ValueError, zipfile.LargeZipFile, tarfile.TarError) as e:
            self._abort()
            raise ArchiveWriteError(f"Failed to finalize {self.kind.value} archive: {e}") from e

    def getvalue(self) -> bytes:
        """Close the container (if still open) and return its bytes."""
        self.close()
        return self._sink.getvalue()

    def _fail(self) -> None:
        self._closed = True
        self._abort()

    def __enter__(self) -> ArchiveWriter:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()
        elif not self.closed:
            self._fail()


class ZipMemberWriter(ArchiveWriter):
    """Streams the payload into a deflated ZIP member."""

    kind = ArchiveKind.ZIP

    def _open(self) -> None:
        self._archive = zipfile.ZipFile(self._sink, "w", zipfile.ZIP_DEFLATED)
        self._member = self._archive.open(self.member_name, "w", force_zip64=False)

    def _write(self, data: bytes) -> None:
        self._member.write(data)

    def _finish(self) -> None:
        self._member.close()
        self._archive.close()

    def _abort(self) -> None:
        for resource in (getattr(self, "_member", None), getattr(self, "_archive", None)):
            if resource is None:
                continue
            try:
                resource.close()
            except (OSError, ValueError):
                pass


class TarMemberWriter(ArchiveWriter):
    """Buffers the payload, then emits a ustar/pax member with its final size."""

    kind = ArchiveKind.TAR

    def _open(self) -> None:
        self._payload = io.BytesIO()

    def _write(self, data: bytes) -> None:
        self._payload.write(data)

    def _finish(self) -> None:
        info = tarfile.TarInfo(name=self.member_name)
        info.size = self._payload.tell()
        info.mtime = int(time.time())
        info.mode = 0o644
        self._payload.seek(0)
        with tarfile.open(fileobj=self._sink, mode="w") as archive:
            archive.addfile(info, self._payload)

    def _abort(self) -> None:
        payload = getattr(self, "_payload", None)
        if payload is not None:
            payload.close()
