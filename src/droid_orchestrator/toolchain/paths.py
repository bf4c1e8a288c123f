"""
Path resolution and existence guards for the Android SDK toolchain.

Every stage calls ``ensure_paths`` with the paths it depends on before it
spawns a process or touches the filesystem, so a misconfigured project fails
with the name of the missing path instead of an opaque tool error.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path

from droid_orchestrator.constants import (
    ANNOTATIONS_JAR,
    PLATFORM_DIR_PREFIX,
    PLATFORM_JAR_NAME,
    PLATFORM_TOOLS_DIR,
    PLATFORMS_DIR,
    TOOLS_DIR,
)
from droid_orchestrator.errors import MissingPathError, ToolchainNotFoundError

PathLike = str | os.PathLike[str]

_SUFFIXED_NAME_RE = re.compile(r"^(?P<stem>.+?)(?P<ext>\.\w+)?$")


@dataclass(frozen=True, slots=True)
class ToolchainLayout:
    """Locations of the SDK binaries the pipeline drives."""

    sdk_path: Path
    dx: Path
    aapt: Path
    adb: Path
    apkbuilder: Path
    zipalign: Path
    annotations_jar: Path

    @classmethod
    def from_sdk(cls, sdk_path: PathLike) -> ToolchainLayout:
        root = Path(sdk_path)
        platform_tools = root / PLATFORM_TOOLS_DIR
        tools = root / TOOLS_DIR
        return cls(
            sdk_path=root,
            dx=platform_tools / "dx",
            aapt=platform_tools / "aapt",
            adb=platform_tools / "adb",
            apkbuilder=tools / "apkbuilder",
            zipalign=tools / "zipalign",
            annotations_jar=root / ANNOTATIONS_JAR,
        )


def sdk_android_jar(sdk_path: PathLike, target_version: str) -> Path:
    """Return ``<sdk>/platforms/android-<version>/android.jar``.

    Raises ``ToolchainNotFoundError`` if the SDK root or the platform archive
    for ``target_version`` does not exist.
    """

    root = Path(sdk_path)
    if not root.is_dir():
        raise ToolchainNotFoundError(root, what="Android SDK")

    version = target_version.strip()
    if version.startswith(PLATFORM_DIR_PREFIX):
        version = version[len(PLATFORM_DIR_PREFIX) :]
    jar = root / PLATFORMS_DIR / f"{PLATFORM_DIR_PREFIX}{version}" / PLATFORM_JAR_NAME
    if not jar.is_file():
        raise ToolchainNotFoundError(jar, what=f"platform library for target {version}")
    return jar


def sdk_annotations_jar(sdk_path: PathLike) -> Path:
    """Return the SDK support annotations archive path.

    Existence is checked by ``create_dex``, which hands the archive to ``dx``.
    """

    return Path(sdk_path) / ANNOTATIONS_JAR


def ensure_paths(*paths: PathLike | None) -> None:
    """Fail with ``MissingPathError`` naming the first path that does not exist."""

    for path in paths:
        if path is None:
            raise MissingPathError(None)
        if not Path(path).exists():
            raise MissingPathError(path)


def append_suffix(path: PathLike, suffix: str) -> Path:
    """Insert ``-suffix`` before the extension: ``app.apk`` -> ``app-debug.apk``."""

    target = Path(path)
    match = _SUFFIXED_NAME_RE.match(target.name)
    if match is None:
        return target.with_name(f"{target.name}-{suffix}")
    ext = match.group("ext") or ""
    return target.with_name(f"{match.group('stem')}-{suffix}{ext}")


__all__ = [
    "ToolchainLayout",
    "append_suffix",
    "ensure_paths",
    "sdk_android_jar",
    "sdk_annotations_jar",
]
