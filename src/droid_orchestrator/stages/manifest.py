"""
Scoped patching of ``AndroidManifest.xml`` for development builds.

A development APK must be able to open a network REPL, so packaging runs
against a manifest that requests ``android.permission.INTERNET``. The user's
manifest is copied to ``<manifest>.backup`` first and copied back when the
packaging block exits, whether it returned or raised.
"""

from __future__ import annotations

import os
import xml.etree.ElementTree as ET
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import structlog

from droid_orchestrator.constants import (
    ANDROID_XML_NAMESPACE,
    INTERNET_PERMISSION,
    MANIFEST_BACKUP_SUFFIX,
)
from droid_orchestrator.errors import StaleBackupError
from droid_orchestrator.utils.fs import atomic_write, copy_file

_NAME_ATTRIBUTE = f"{{{ANDROID_XML_NAMESPACE}}}name"
_USES_PERMISSION = "uses-permission"

_logger = structlog.get_logger(__name__)


def has_permission(root: ET.Element, permission: str) -> bool:
    return any(
        element.get(_NAME_ATTRIBUTE) == permission for element in root.iter(_USES_PERMISSION)
    )


def with_internet_permission(document: bytes) -> bytes:
    """Return ``document`` with an INTERNET ``uses-permission`` appended.

    A manifest that already requests the permission is returned unchanged.
    """

    ET.register_namespace("android", ANDROID_XML_NAMESPACE)
    parser = ET.XMLParser(target=ET.TreeBuilder(insert_comments=True))
    root = ET.fromstring(document, parser=parser)
    if root.tag != "manifest":
        raise ValueError(f"expected a <manifest> root element, found <{root.tag}>")
    if has_permission(root, INTERNET_PERMISSION):
        return document

    permission = ET.SubElement(root, _USES_PERMISSION)
    permission.set(_NAME_ATTRIBUTE, INTERNET_PERMISSION)
    ET.indent(root)
    return ET.tostring(root, encoding="utf-8", xml_declaration=True) + b"\n"


def backup_path(manifest: str | os.PathLike[str]) -> Path:
    path = Path(manifest)
    return path.with_name(path.name + MANIFEST_BACKUP_SUFFIX)


@contextmanager
def patched_manifest(manifest: str | os.PathLike[str], *, enabled: bool = True) -> Iterator[Path]:
    """Temporarily add the INTERNET permission to ``manifest``.

    With ``enabled=False`` the manifest is left alone. An existing backup is
    never overwritten; ``StaleBackupError`` is raised instead.
    """

    path = Path(manifest)
    if not enabled:
        yield path
        return

    backup = backup_path(path)
    if backup.exists():
        raise StaleBackupError(backup, manifest=path)
    copy_file(path, backup)
    _logger.debug("manifest_backed_up", manifest=path, backup=backup)
    try:
        atomic_write(path, with_internet_permission(backup.read_bytes()))
        yield path
    finally:
        copy_file(backup, path)
        backup.unlink()
        _logger.debug("manifest_restored", manifest=path)


__all__ = ["backup_path", "has_permission", "patched_manifest", "with_internet_permission"]
