"""Archive tool - pack a finished working area into a zip stream."""

import logging
import os
import zipfile
from collections.abc import Iterator
from pathlib import Path
from typing import BinaryIO

from ..errors import ArchiveError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


def iter_files(root: Path) -> Iterator[tuple[Path, str]]:
    """Yield (path, archive name) for every file under root, sorted."""
    root = Path(root)
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for name in sorted(filenames):
            path = Path(dirpath) / name
            yield path, path.relative_to(root).as_posix()


def write_archive(root: Path, sink: BinaryIO, compression_level: int = 9) -> int:
    """
    Write every file under root into a deflate-compressed zip on sink.
    The sink only needs write(); unseekable streams work.
    Returns the number of files archived.
    """
    count = 0
    try:
        with zipfile.ZipFile(
            sink, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=compression_level
        ) as zf:
            for path, arcname in iter_files(root):
                zf.write(path, arcname)
                count += 1
        flush = getattr(sink, "flush", None)
        if flush is not None:
            flush()
    except OSError as e:
        raise ArchiveError(f"Archive write failed: {e}") from e
    logger.info("Archived %d files from %s", count, root)
    return count


class _ChunkSink:
    """Write-only buffer drained by iter_archive between files."""

    def __init__(self):
        self._parts: list[bytes] = []
        self.size = 0

    def write(self, data: bytes) -> int:
        self._parts.append(bytes(data))
        self.size += len(data)
        return len(data)

    def flush(self) -> None:
        pass

    def drain(self) -> bytes:
        data = b"".join(self._parts)
        self._parts.clear()
        return data


def iter_archive(root: Path, compression_level: int = 9) -> Iterator[bytes]:
    """Yield the zip archive of root chunk by chunk, one file at a time."""
    sink = _ChunkSink()
    count = 0
    with zipfile.ZipFile(
        sink, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=compression_level
    ) as zf:
        for path, arcname in iter_files(root):
            zf.write(path, arcname)
            count += 1
            data = sink.drain()
            for i in range(0, len(data), CHUNK_SIZE):
                yield data[i : i + CHUNK_SIZE]
    tail = sink.drain()
    if tail:
        yield tail
    logger.info("Streamed %d files (%d bytes) from %s", count, sink.size, root)
