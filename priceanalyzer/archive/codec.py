"""Archive codec entry points.

Readers and writers are looked up by ArchiveKind tag; nothing here inspects
the runtime type of a stream.

Usage:
    from priceanalyzer.archive import ArchiveKind, unwrap, wrap

    blob = wrap(b"id,name\\n", ArchiveKind.ZIP, "data.csv")
    with unwrap(blob, "zip") as member:
        payload = member.read()
"""

from __future__ import annotations

from typing import IO

from priceanalyzer.archive.kinds import ArchiveKind
from priceanalyzer.archive.readers import MemberReader, TarMemberReader, ZipMemberReader
from priceanalyzer.archive.writers import ArchiveWriter, TarMemberWriter, ZipMemberWriter
from priceanalyzer.core.errors import CorruptArchive

DEFAULT_MEMBER_NAME = "data.csv"

_READERS: dict[ArchiveKind, type[MemberReader]] = {
    ArchiveKind.ZIP: ZipMemberReader,
    ArchiveKind.TAR: TarMemberReader,
}

_WRITERS: dict[ArchiveKind, type[ArchiveWriter]] = {
    ArchiveKind.ZIP: ZipMemberWriter,
    ArchiveKind.TAR: TarMemberWriter,
}


def open_reader(kind: str | ArchiveKind, data: bytes) -> MemberReader:
    """Build the member reader registered for ``kind`` over container bytes."""
    return _READERS[ArchiveKind.parse(kind)].from_bytes(data)


def open_writer(kind: str | ArchiveKind, member_name: str = DEFAULT_MEMBER_NAME) -> ArchiveWriter:
    """Build the single-member writer registered for ``kind``."""
    return _WRITERS[ArchiveKind.parse(kind)](member_name)


def unwrap(container: bytes | IO[bytes], kind: str | ArchiveKind) -> MemberReader:
    """Return a stream over the first CSV member of a container.

    The container is read fully into memory first: ZIP keeps its index at the
    tail, so no member can be located before the last byte has arrived.

    Args:
        container: Container bytes, or a binary stream holding them
        kind: "zip" or "tar"

    Returns:
        MemberReader positioned at the start of the CSV member

    Raises:
        UnsupportedFormat: If kind is not zip or tar
        MemberNotFound: If no .csv member exists
        CorruptArchive: If the container cannot be parsed
    """
    kind = ArchiveKind.parse(kind)
    if isinstance(container, (bytes, bytearray, memoryview)):
        data = bytes(container)
    else:
        try:
            data = container.read()
        except OSError as e:
            raise CorruptArchive(f"Failed to buffer {kind.value} archive: {e}") from e
    return open_reader(kind, data)


def wrap(payload: bytes, kind: str | ArchiveKind, member_name: str = DEFAULT_MEMBER_NAME) -> bytes:
    """Package ``payload`` as the only member of a new container.

    An empty payload still yields a valid container holding one empty member.

    Raises:
        UnsupportedFormat: If kind is not zip or tar
        ArchiveWriteError: If the container cannot be assembled
    """
    with open_writer(kind, member_name) as writer:
        writer.write(payload)
    return writer.getvalue()
