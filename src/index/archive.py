"""Demultiplexing of index archives into entries."""
from __future__ import annotations

import io
import tarfile
from dataclasses import dataclass
from typing import List, Optional


class ArchiveError(RuntimeError):
    """The archive cannot be split into entries."""


@dataclass(frozen=True)
class ArchiveEntry:
    """One archive member.

    ``payload`` is None when the member is not a regular file.
    """
    path: str
    payload: Optional[bytes]
    mtime: int


def read_entries(data: bytes) -> List[ArchiveEntry]:
    """Split tar (optionally compressed) bytes into entries, in archive order.

    The whole archive is read before returning so a corrupt member fails
    the load instead of yielding a truncated list.

    Raises:
        ArchiveError: if the archive is structurally corrupt.
    """
    entries: List[ArchiveEntry] = []
    try:
        with tarfile.open(fileobj=io.BytesIO(data), mode="r:*") as tar:
            for member in tar:
                payload = None
                if member.isfile():
                    handle = tar.extractfile(member)
                    payload = handle.read() if handle is not None else b""
                entries.append(ArchiveEntry(member.name, payload, int(member.mtime)))
            _check_end_of_archive(tar)
    except (tarfile.TarError, EOFError, OSError) as e:
        raise ArchiveError(f"Corrupt index archive: {e}") from e
    return entries


def _check_end_of_archive(tar: tarfile.TarFile) -> None:
    # tarfile stops quietly at a bad header past the first member, so
    # anything after the last member must be zero padding.
    tar.fileobj.seek(tar.offset)
    while True:
        block = tar.fileobj.read(tarfile.RECORDSIZE)
        if not block:
            return
        if block.strip(b"\0"):
            raise ArchiveError(
                f"Corrupt index archive: invalid member header at offset {tar.offset}"
            )
