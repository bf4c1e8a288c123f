"""Filesystem helpers for build outputs and the manifest backup/restore cycle."""

from __future__ import annotations

import os
import shutil
import tempfile
from contextlib import suppress
from pathlib import Path

PathLike = str | os.PathLike[str]

__all__ = [
    "atomic_write",
    "copy_file",
    "ensure_directory",
]


def atomic_write(path: PathLike, data: bytes | str, *, encoding: str = "utf-8") -> None:
    """Replace ``path`` with ``data`` so readers see either the old or the new bytes.

    The data goes to a synced sibling temp file that is then renamed over
    ``path``; the parent directory must already exist.
    """

    target = Path(path)
    payload = data.encode(encoding) if isinstance(data, str) else data
    fd, staged = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(payload)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(staged, target)
    except BaseException:
        with suppress(OSError):
            os.unlink(staged)
        raise


def copy_file(source: PathLike, destination: PathLike) -> None:
    """Copy the bytes of ``source`` over ``destination``."""

    shutil.copyfile(source, destination)


def ensure_directory(path: PathLike) -> Path:
    """Create ``path`` and its parents if missing, and return it as a ``Path``."""

    directory = Path(path)
    directory.mkdir(parents=True, exist_ok=True)
    return directory
