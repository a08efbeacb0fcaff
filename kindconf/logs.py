"""Unpacking tar streams of node logs onto the host."""

from __future__ import annotations

import logging
import os
import shutil
import tarfile
from typing import BinaryIO

__all__ = ["untar"]

_CHUNK = 64 * 1024


def _write_regular(archive: tarfile.TarFile, member: tarfile.TarInfo, target: str) -> None:
    source = archive.extractfile(member)
    if source is None:
        raise OSError(f"could not read tar entry {member.name}")
    fd = os.open(target, os.O_CREAT | os.O_RDWR, member.mode)
    written = 0
    try:
        with os.fdopen(fd, "wb") as handle:
            while chunk := source.read(_CHUNK):
                handle.write(chunk)
                written += len(chunk)
    except OSError as exc:
        raise OSError(f"error writing to {target}: {exc}") from exc
    if written != member.size:
        raise OSError(f"only wrote {written} bytes to {target}; expected {member.size}")


def untar(
    stream: BinaryIO,
    directory: str | os.PathLike[str],
    logger: logging.Logger | None = None,
) -> None:
    """Unpack the tar archive read from stream into directory.

    Regular files and directories are written; other entry types are
    reported through logger and skipped. The stream is drained afterwards.
    Raises tarfile.TarError on a malformed archive and OSError on write errors.
    """
    logger = logger or logging.getLogger(__name__)
    directory = os.fspath(directory)
    with tarfile.open(fileobj=stream, mode="r|") as archive:
        for member in archive:
            target = os.path.join(directory, *member.name.split("/"))
            if member.isreg():
                _write_regular(archive, member, target)
            elif member.isdir():
                if not os.path.exists(target):
                    os.makedirs(target, 0o755, exist_ok=True)
            else:
                logger.warning(
                    "tar file entry %s contained unsupported file type %r",
                    member.name,
                    member.type,
                )
    # drain trailing padding so the writer is not left hanging
    shutil.copyfileobj(stream, _Discard(), _CHUNK)


class _Discard:
    def write(self, data: bytes) -> int:
        return len(data)