"""Archive codec: unwrap one CSV member from ZIP/TAR, wrap bytes into one."""

from priceanalyzer.archive.codec import (
    DEFAULT_MEMBER_NAME,
    open_reader,
    open_writer,
    unwrap,
    wrap,
)
from priceanalyzer.archive.kinds import ArchiveKind
from priceanalyzer.archive.readers import MemberReader, TarMemberReader, ZipMemberReader
from priceanalyzer.archive.writers import ArchiveWriter, TarMemberWriter, ZipMemberWriter

__all__ = [
    "ArchiveKind",
    "ArchiveWriter",
    "DEFAULT_MEMBER_NAME",
    "MemberReader",
    "TarMemberReader",
    "TarMemberWriter",
    "ZipMemberReader",
    "ZipMemberWriter",
    "open_reader",
    "open_writer",
    "unwrap",
    "wrap",
]
