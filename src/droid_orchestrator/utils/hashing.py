"""
droid-orchestrator: hashing utilities

File: src/droid_orchestrator/utils/hashing.py

Purpose
- Deterministic SHA-256 helpers for text and for build-input fingerprints.
"""

from __future__ import annotations

import hashlib
import json
import os
from collections.abc import Iterable
from pathlib import Path

PathLike = str | os.PathLike[str]

__all__ = [
    "path_fingerprint",
    "sha256_text",
]


def sha256_text(text: str, *, encoding: str = "utf-8") -> str:
    """Return SHA-256 hex digest for text encoded with ``encoding``."""

    return hashlib.sha256(text.encode(encoding)).hexdigest()


def path_fingerprint(paths: Iterable[PathLike], *, extra: Iterable[str] = ()) -> str:
    """
    Fingerprint a set of filesystem inputs by path, size and mtime.

    Directories contribute every file beneath them. Missing paths contribute
    their name only, so they still change the fingerprint when they appear.
    """

    records: list[list[object]] = []
    for raw in paths:
        root = Path(raw)
        if root.is_dir():
            for item in sorted(root.rglob("*")):
                if item.is_file():
                    records.append(_stat_record(item))
        elif root.exists():
            records.append(_stat_record(root))
        else:
            records.append([root.as_posix(), None, None])
    payload = json.dumps(
        {"paths": records, "extra": list(extra)}, sort_keys=True, separators=(",", ":")
    )
    return sha256_text(payload)


def _stat_record(path: Path) -> list[object]:
    stat_result = path.stat()
    return [path.as_posix(), stat_result.st_size, stat_result.st_mtime_ns]
