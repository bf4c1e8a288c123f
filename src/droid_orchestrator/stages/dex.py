"""Conversion of compiled classes and dependencies into a Dalvik executable."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from pathlib import Path, PurePath

import structlog

from droid_orchestrator.config.project import ProjectConfig
from droid_orchestrator.errors import BuildCancelledError
from droid_orchestrator.toolchain.classpath import is_archive
from droid_orchestrator.toolchain.paths import ToolchainLayout, ensure_paths
from droid_orchestrator.toolchain.process import CancellationToken, ToolRunner
from droid_orchestrator.utils.fs import ensure_directory

DependencyResolver = Callable[[ProjectConfig], list[str]]

_logger = structlog.get_logger(__name__)


def dex_inputs(entries: Iterable[str]) -> list[str]:
    """Drop repeated archives by base name; directories keep their position."""

    seen: set[str] = set()
    inputs: list[str] = []
    for entry in entries:
        if is_archive(entry):
            base_name = PurePath(entry).name
            if base_name in seen:
                continue
            seen.add(base_name)
        inputs.append(entry)
    return inputs


def dex_command(config: ProjectConfig, dependencies: Iterable[str]) -> list[str]:
    layout = ToolchainLayout.from_sdk(config.sdk_path)
    inputs = dex_inputs(
        [
            config.compile_path.as_posix(),
            layout.annotations_jar.as_posix(),
            *dependencies,
        ]
    )
    return [str(layout.dx), "--dex", "--output", config.out_dex_path.as_posix(), *inputs]


def create_dex(
    config: ProjectConfig,
    *,
    dependency_resolver: DependencyResolver,
    runner: ToolRunner,
    cancellation: CancellationToken,
) -> Path:
    """Run ``dx`` over the compiled classes; the process dies with ``cancellation``.

    A cancelled run leaves no partial output behind.
    """

    layout = ToolchainLayout.from_sdk(config.sdk_path)
    ensure_paths(config.sdk_path, layout.dx, layout.annotations_jar, config.compile_path)
    argv = dex_command(config, dependency_resolver(config))
    ensure_directory(config.out_dex_path.parent)
    try:
        runner.run(argv, tool="dx", cancellation=cancellation)
    except BuildCancelledError:
        config.out_dex_path.unlink(missing_ok=True)
        _logger.warning("dex_output_discarded", path=config.out_dex_path)
        raise
    return config.out_dex_path


__all__ = ["DependencyResolver", "create_dex", "dex_command", "dex_inputs"]
