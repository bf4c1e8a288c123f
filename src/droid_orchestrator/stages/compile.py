"""
Compilation of project sources into ``compile_path``.

Java sources are always compiled first with ``javac``. Clojure namespaces are
then compiled according to ``ProjectConfig.aot``:

- ``none``: only the namespaces listed in ``aot_namespaces``.
- ``all``: every namespace declared in the project's own source roots.
- ``all-with-unused``: every namespace found anywhere on the augmented
  classpath except ``aot_exclude_ns``, compiled in a fresh JVM so that
  nothing loaded by a previous evaluation leaks into the result.

The forced mode fingerprints its inputs into ``<compile_path>/.droid-aot-stamp``
and skips the JVM entirely when nothing changed since the last success.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Protocol

import structlog

from droid_orchestrator.config.project import AotMode, ProjectConfig
from droid_orchestrator.constants import AOT_STAMP_NAME
from droid_orchestrator.errors import CompilationError, ToolInvocationError
from droid_orchestrator.stages.namespaces import namespaces_on_classpath
from droid_orchestrator.toolchain.paths import ensure_paths
from droid_orchestrator.toolchain.process import ToolRunner
from droid_orchestrator.utils.fs import atomic_write, ensure_directory
from droid_orchestrator.utils.hashing import path_fingerprint

ClasspathResolver = Callable[[ProjectConfig], list[str]]

_logger = structlog.get_logger(__name__)


class ClojureCompiler(Protocol):
    """Anything that can AOT-compile a set of namespaces into a directory."""

    def compile_namespaces(
        self, namespaces: Sequence[str], *, classpath: Sequence[str], compile_path: Path
    ) -> None: ...


class JvmClojureCompiler:
    """Compile namespaces by evaluating a ``compile`` loop in a new JVM."""

    def __init__(
        self, runner: ToolRunner, *, java: str = "java", main_class: str = "clojure.main"
    ) -> None:
        self._runner = runner
        self._java = java
        self._main_class = main_class

    def command(
        self, namespaces: Sequence[str], *, classpath: Sequence[str], compile_path: Path
    ) -> list[str]:
        form = f"(doseq [namespace '[{' '.join(namespaces)}]] (compile namespace))"
        return [
            self._java,
            "-cp",
            os.pathsep.join(classpath),
            f"-Dclojure.compile.path={compile_path}",
            self._main_class,
            "-e",
            form,
        ]

    def compile_namespaces(
        self, namespaces: Sequence[str], *, classpath: Sequence[str], compile_path: Path
    ) -> None:
        if not namespaces:
            return
        argv = self.command(namespaces, classpath=classpath, compile_path=compile_path)
        try:
            self._runner.run(argv, tool="clojure")
        except ToolInvocationError as exc:
            raise CompilationError(
                f"AOT compilation of {len(namespaces)} namespace(s) failed: {exc}"
            ) from exc


def java_sources(config: ProjectConfig) -> list[Path]:
    found: list[Path] = []
    for root in config.java_source_paths:
        if root.is_dir():
            found.extend(sorted(path for path in root.rglob("*.java") if path.is_file()))
    return found


def compile_java(config: ProjectConfig, *, classpath: Sequence[str], runner: ToolRunner) -> None:
    sources = java_sources(config)
    if not sources:
        _logger.info("java_compile_skipped", reason="no .java sources")
        return
    runner.run(
        [
            config.tools.javac,
            "-d",
            config.compile_path,
            "-cp",
            os.pathsep.join(classpath),
            *sources,
        ],
        tool="javac",
    )


def select_namespaces(config: ProjectConfig, classpath: Sequence[str]) -> list[str]:
    """Namespaces the configured AOT mode asks to compile, sorted."""

    if config.aot is AotMode.NONE:
        return sorted(set(config.aot_namespaces))
    if config.aot is AotMode.ALL:
        return namespaces_on_classpath(config.source_paths)
    excluded = set(config.aot_exclude_ns)
    return [name for name in namespaces_on_classpath(classpath) if name not in excluded]


def aot_fingerprint(
    config: ProjectConfig, namespaces: Sequence[str], classpath: Sequence[str]
) -> str:
    compile_path = config.compile_path.resolve()
    inputs = [entry for entry in classpath if Path(entry).resolve() != compile_path]
    return path_fingerprint(
        inputs,
        extra=[*namespaces, "--exclude--", *sorted(config.aot_exclude_ns)],
    )


def compile_project(
    config: ProjectConfig,
    *,
    classpath_resolver: ClasspathResolver,
    runner: ToolRunner,
    compiler: ClojureCompiler | None = None,
) -> list[str]:
    """Compile Java then Clojure sources; return the namespaces handed to the compiler."""

    ensure_paths(config.sdk_path)
    ensure_directory(config.compile_path)
    classpath = classpath_resolver(config)

    compile_java(config, classpath=classpath, runner=runner)

    if compiler is None:
        compiler = JvmClojureCompiler(
            runner, java=config.tools.java, main_class=config.tools.clojure_main
        )
    namespaces = select_namespaces(config, classpath)
    if not namespaces:
        _logger.info("aot_skipped", aot=str(config.aot), reason="no namespaces selected")
        return []

    if config.aot is not AotMode.ALL_WITH_UNUSED:
        _logger.info("aot_compile", aot=str(config.aot), namespaces=namespaces)
        compiler.compile_namespaces(
            namespaces, classpath=classpath, compile_path=config.compile_path
        )
        return namespaces

    stamp = config.compile_path / AOT_STAMP_NAME
    fingerprint = aot_fingerprint(config, namespaces, classpath)
    if stamp.is_file() and stamp.read_text(encoding="utf-8").strip() == fingerprint:
        _logger.info("aot_up_to_date", namespaces=len(namespaces))
        return []

    _logger.info(
        "aot_compile",
        aot=str(config.aot),
        namespaces=namespaces,
        excluded=sorted(config.aot_exclude_ns),
    )
    stamp.unlink(missing_ok=True)
    compiler.compile_namespaces(namespaces, classpath=classpath, compile_path=config.compile_path)
    atomic_write(stamp, fingerprint + "\n")
    return namespaces


__all__ = [
    "ClojureCompiler",
    "JvmClojureCompiler",
    "aot_fingerprint",
    "compile_java",
    "compile_project",
    "java_sources",
    "select_namespaces",
]
