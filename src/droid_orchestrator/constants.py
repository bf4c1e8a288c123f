"""Stable constants describing the Android toolchain layout and build artifacts."""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Final

# Toolchain layout relative to the SDK root.
PLATFORM_TOOLS_DIR: Final[PurePosixPath] = PurePosixPath("platform-tools")
TOOLS_DIR: Final[PurePosixPath] = PurePosixPath("tools")
PLATFORMS_DIR: Final[PurePosixPath] = PurePosixPath("platforms")
ANNOTATIONS_JAR: Final[PurePosixPath] = PurePosixPath("tools/support/annotations.jar")
PLATFORM_JAR_NAME: Final[str] = "android.jar"
PLATFORM_DIR_PREFIX: Final[str] = "android-"

# Artifact naming.
UNALIGNED_SUFFIX: Final[str] = "debug-unaligned"
ALIGNED_SUFFIX: Final[str] = "debug"
MANIFEST_BACKUP_SUFFIX: Final[str] = ".backup"
AOT_STAMP_NAME: Final[str] = ".droid-aot-stamp"
ARCHIVE_SUFFIX: Final[str] = ".jar"

# Fixed debug signing identity.
DEBUG_KEY_ALIAS: Final[str] = "androiddebugkey"
DEBUG_STORE_PASS: Final[str] = "android"
DEBUG_KEY_PASS: Final[str] = "android"

ZIPALIGN_BOUNDARY: Final[str] = "4"
INTERNET_PERMISSION: Final[str] = "android.permission.INTERNET"
ANDROID_XML_NAMESPACE: Final[str] = "http://schemas.android.com/apk/res/android"

__all__ = [
    "ALIGNED_SUFFIX",
    "ANDROID_XML_NAMESPACE",
    "ANNOTATIONS_JAR",
    "AOT_STAMP_NAME",
    "ARCHIVE_SUFFIX",
    "DEBUG_KEY_ALIAS",
    "DEBUG_KEY_PASS",
    "DEBUG_STORE_PASS",
    "INTERNET_PERMISSION",
    "MANIFEST_BACKUP_SUFFIX",
    "PLATFORMS_DIR",
    "PLATFORM_DIR_PREFIX",
    "PLATFORM_JAR_NAME",
    "PLATFORM_TOOLS_DIR",
    "TOOLS_DIR",
    "UNALIGNED_SUFFIX",
    "ZIPALIGN_BOUNDARY",
]
