"""Tar packing of build contexts and unwrapping of copy-out envelopes."""

import io
import logging
import tarfile
import time
from pathlib import PurePosixPath

from grader.errors import ArchivePackingError, ArtifactNotFoundError
from grader.sandbox.vfs import VirtualFilesystem

logger = logging.getLogger("grader.sandbox.archive")

ROOT_ENTRY = "."
DIR_MODE = 0o755


def _walk_order(fs: VirtualFilesystem) -> list[tuple[str, bool]]:
    """(path, is_dir) pairs with every directory ahead of its descendants."""
    entries = [(path, True) for path in fs.directories()]
    entries.extend((path, False) for path in fs)
    # sorting on path components puts "a" before "a/b" and before "a-b"
    entries.sort(key=lambda item: PurePosixPath(item[0]).parts)
    return entries


def pack(fs: VirtualFilesystem, mtime: float | None = None) -> io.BytesIO:
    """Serialize a filesystem into an uncompressed tar stream positioned at 0.

    Every entry carries the packing time as mtime. Raises ArchivePackingError
    on any failure; no partially written archive is ever returned.
    """
    mtime = int(time.time() if mtime is None else mtime)
    buffer = io.BytesIO()
    try:
        with tarfile.open(fileobj=buffer, mode="w", format=tarfile.PAX_FORMAT) as tar:
            root = tarfile.TarInfo(ROOT_ENTRY)
            root.type = tarfile.DIRTYPE
            root.mode = DIR_MODE
            root.mtime = mtime
            tar.addfile(root)

            for path, is_dir in _walk_order(fs):
                info = tarfile.TarInfo(path)
                info.mtime = mtime
                if is_dir:
                    info.type = tarfile.DIRTYPE
                    info.mode = DIR_MODE
                    tar.addfile(info)
                    continue
                entry = fs[path]
                info.mode = entry.mode
                info.size = len(entry.content)
                tar.addfile(info, io.BytesIO(entry.content))
    except (OSError, tarfile.TarError, ValueError) as exc:
        logger.error("Packing failed: %r", exc)
        raise ArchivePackingError(f"failed to pack build context: {exc}") from exc

    buffer.seek(0)
    return buffer


def unpack(stream: io.IOBase | bytes) -> VirtualFilesystem:
    """Replay a tar stream back into a VirtualFilesystem of its regular files."""
    if isinstance(stream, (bytes, bytearray)):
        stream = io.BytesIO(stream)
    fs = VirtualFilesystem()
    with tarfile.open(fileobj=stream, mode="r:*") as tar:
        for member in tar:
            if not member.isfile():
                continue
            extracted = tar.extractfile(member)
            content = extracted.read() if extracted is not None else b""
            fs.add(member.name, content, member.mode)
    return fs


def unwrap_single(envelope: bytes) -> bytes:
    """Return the content of the only regular file inside a copy-out envelope."""
    try:
        with tarfile.open(fileobj=io.BytesIO(envelope), mode="r:*") as tar:
            files = [member for member in tar.getmembers() if member.isfile()]
            if len(files) != 1:
                raise ArtifactNotFoundError(
                    f"expected exactly one file in envelope, found {len(files)}"
                )
            extracted = tar.extractfile(files[0])
            return extracted.read() if extracted is not None else b""
    except tarfile.TarError as exc:
        raise ArtifactNotFoundError(f"unreadable envelope: {exc}") from exc
