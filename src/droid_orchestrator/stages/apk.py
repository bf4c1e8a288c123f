"""Assembly, signing, alignment and installation of the APK."""

from __future__ import annotations

from pathlib import Path

from droid_orchestrator.config.project import ProjectConfig
from droid_orchestrator.constants import (
    ALIGNED_SUFFIX,
    DEBUG_KEY_ALIAS,
    DEBUG_KEY_PASS,
    DEBUG_STORE_PASS,
    UNALIGNED_SUFFIX,
    ZIPALIGN_BOUNDARY,
)
from droid_orchestrator.toolchain.paths import ToolchainLayout, append_suffix, ensure_paths
from droid_orchestrator.toolchain.process import ToolRunner
from droid_orchestrator.utils.fs import ensure_directory


def unaligned_apk_path(config: ProjectConfig) -> Path:
    return append_suffix(config.out_apk_path, UNALIGNED_SUFFIX)


def aligned_apk_path(config: ProjectConfig) -> Path:
    return append_suffix(config.out_apk_path, ALIGNED_SUFFIX)


def create_apk(config: ProjectConfig, *, runner: ToolRunner) -> Path:
    """Build the unsigned, unaligned APK from the resource package and dex file."""

    apkbuilder = ToolchainLayout.from_sdk(config.sdk_path).apkbuilder
    ensure_paths(config.sdk_path, apkbuilder, config.out_res_pkg_path, config.out_dex_path)
    unaligned = unaligned_apk_path(config)
    ensure_directory(unaligned.parent)
    argv = [
        str(apkbuilder),
        unaligned.as_posix(),
        "-u",
        "-z",
        config.out_res_pkg_path.as_posix(),
        "-f",
        config.out_dex_path.as_posix(),
    ]
    for root in (*config.source_paths, *config.java_source_paths):
        argv += ["-rf", root.as_posix()]
    runner.run(argv, tool="apkbuilder")
    return unaligned


def sign_apk(config: ProjectConfig, *, runner: ToolRunner) -> Path:
    """Sign the unaligned APK in place with the debug key."""

    unaligned = unaligned_apk_path(config)
    ensure_paths(unaligned, config.keystore_path)
    runner.run(
        [
            config.tools.jarsigner,
            "-keystore",
            config.keystore_path.as_posix(),
            "-storepass",
            DEBUG_STORE_PASS,
            "-keypass",
            DEBUG_KEY_PASS,
            unaligned.as_posix(),
            DEBUG_KEY_ALIAS,
        ],
        tool="jarsigner",
    )
    return unaligned


def zipalign_apk(config: ProjectConfig, *, runner: ToolRunner) -> Path:
    unaligned = unaligned_apk_path(config)
    zipalign = ToolchainLayout.from_sdk(config.sdk_path).zipalign
    ensure_paths(config.sdk_path, zipalign, unaligned)
    aligned = aligned_apk_path(config)
    runner.run(
        [
            str(zipalign),
            ZIPALIGN_BOUNDARY,
            unaligned.as_posix(),
            aligned.as_posix(),
        ],
        tool="zipalign",
    )
    return aligned


def install(config: ProjectConfig, *, runner: ToolRunner) -> Path:
    """Reinstall the aligned APK on the single attached USB device."""

    aligned = aligned_apk_path(config)
    adb = ToolchainLayout.from_sdk(config.sdk_path).adb
    ensure_paths(config.sdk_path, adb, aligned)
    runner.run(
        [
            str(adb),
            "-d",
            "install",
            "-r",
            aligned.as_posix(),
        ],
        tool="adb",
    )
    return aligned


__all__ = [
    "aligned_apk_path",
    "create_apk",
    "install",
    "sign_apk",
    "unaligned_apk_path",
    "zipalign_apk",
]
