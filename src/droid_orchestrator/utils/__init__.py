"""Filesystem and hashing helpers."""

from droid_orchestrator.utils.fs import atomic_write, copy_file, ensure_directory
from droid_orchestrator.utils.hashing import path_fingerprint, sha256_text

__all__ = [
    "atomic_write",
    "copy_file",
    "ensure_directory",
    "path_fingerprint",
    "sha256_text",
]
