"""aapt-driven resource crunching and packaging."""

from __future__ import annotations

from pathlib import Path

import structlog

from droid_orchestrator.config.project import ProjectConfig
from droid_orchestrator.constants import INTERNET_PERMISSION
from droid_orchestrator.stages.manifest import patched_manifest
from droid_orchestrator.toolchain.paths import ToolchainLayout, ensure_paths, sdk_android_jar
from droid_orchestrator.toolchain.process import ToolRunner
from droid_orchestrator.utils.fs import ensure_directory

_logger = structlog.get_logger(__name__)


def _aapt(config: ProjectConfig) -> Path:
    return ToolchainLayout.from_sdk(config.sdk_path).aapt


def crunch_command(config: ProjectConfig) -> list[str]:
    return [
        str(_aapt(config)),
        "crunch",
        "-v",
        "-S",
        config.res_path.as_posix(),
        "-C",
        config.out_res_path.as_posix(),
    ]


def crunch_resources(config: ProjectConfig, *, runner: ToolRunner) -> Path:
    """Pre-process PNG resources into ``out_res_path``."""

    ensure_paths(config.sdk_path, _aapt(config), config.res_path)
    ensure_directory(config.out_res_path)
    runner.run(crunch_command(config), tool="aapt")
    return config.out_res_path


def package_command(config: ProjectConfig) -> list[str]:
    argv = [
        str(_aapt(config)),
        "package",
        "--no-crunch",
        "-f",
        "--debug-mode",
        "-M",
        config.manifest_path.as_posix(),
        "-S",
        config.out_res_path.as_posix(),
        "-S",
        config.res_path.as_posix(),
    ]
    if config.assets_path.is_dir():
        argv += ["-A", config.assets_path.as_posix()]
    argv += [
        "-I",
        sdk_android_jar(config.sdk_path, config.target_version).as_posix(),
        "-F",
        config.out_res_pkg_path.as_posix(),
        "--generate-dependencies",
    ]
    return argv


def package_resources(config: ProjectConfig, *, runner: ToolRunner) -> Path:
    """Package manifest, resources and assets into ``out_res_pkg_path``.

    Development builds package against a manifest carrying the INTERNET
    permission; the original file is back in place when this returns.
    """

    ensure_paths(config.sdk_path, _aapt(config), config.manifest_path, config.res_path)
    argv = package_command(config)
    ensure_directory(config.out_res_pkg_path.parent)
    if config.is_dev_build:
        _logger.info("manifest_patch", permission=INTERNET_PERMISSION)
    with patched_manifest(config.manifest_path, enabled=config.is_dev_build):
        runner.run(argv, tool="aapt")
    return config.out_res_pkg_path


__all__ = ["crunch_command", "crunch_resources", "package_command", "package_resources"]
