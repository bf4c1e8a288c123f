"""Discover Clojure namespaces declared in classpath directories and archives."""

from __future__ import annotations

import re
import zipfile
from collections.abc import Iterable
from pathlib import Path
from typing import Final

import structlog

_SOURCE_SUFFIXES: Final[tuple[str, ...]] = (".clj", ".cljc")
_NS_DECLARATION_RE: Final[re.Pattern[str]] = re.compile(
    r"^\s*\(\s*ns\s+(?:\^(?:\{[^}]*\}|:\S+)\s+)*(?P<name>[^\s()\[\]{}\"^;]+)",
    re.MULTILINE,
)
_COMMENT_RE: Final[re.Pattern[str]] = re.compile(r";.*$", re.MULTILINE)

_logger = structlog.get_logger(__name__)


def namespace_of(source: str) -> str | None:
    """Return the namespace declared by the first ``(ns ...)`` form in ``source``."""

    match = _NS_DECLARATION_RE.search(_COMMENT_RE.sub("", source))
    if match is None:
        return None
    return match.group("name")


def namespaces_on_classpath(entries: Iterable[str | Path]) -> list[str]:
    """Sorted, unique namespaces found in every directory and archive in ``entries``."""

    found: set[str] = set()
    for entry in entries:
        path = Path(entry)
        if path.is_dir():
            found.update(_namespaces_in_directory(path))
        elif path.is_file() and zipfile.is_zipfile(path):
            found.update(_namespaces_in_archive(path))
    return sorted(found)


def _namespaces_in_directory(root: Path) -> set[str]:
    found: set[str] = set()
    for source in sorted(root.rglob("*")):
        if source.suffix not in _SOURCE_SUFFIXES or not source.is_file():
            continue
        name = namespace_of(source.read_text(encoding="utf-8", errors="replace"))
        if name is not None:
            found.add(name)
    return found


def _namespaces_in_archive(archive: Path) -> set[str]:
    found: set[str] = set()
    try:
        with zipfile.ZipFile(archive) as handle:
            for member in handle.namelist():
                if not member.endswith(_SOURCE_SUFFIXES):
                    continue
                text = handle.read(member).decode("utf-8", errors="replace")
                name = namespace_of(text)
                if name is not None:
                    found.add(name)
    except zipfile.BadZipFile:
        _logger.warning("namespace_scan_skipped", archive=archive, reason="corrupt archive")
    return found


__all__ = ["namespace_of", "namespaces_on_classpath"]
