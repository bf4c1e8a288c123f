"""
Pipeline driver: task registry, composition and cancellation ownership.

``Pipeline`` composes the augmented resolvers once, owns the process runner
and the ``CancellationToken``, and runs named tasks strictly in order. The
token is checked before every stage; only the dex stage hands it to a
running process.
"""

from __future__ import annotations

import signal
import threading
import time
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from types import FrameType
from typing import Any

import structlog

from droid_orchestrator.config.project import ProjectConfig
from droid_orchestrator.errors import BuildCancelledError, BuildError
from droid_orchestrator.observability.logging import correlation_scope
from droid_orchestrator.stages.apk import create_apk, install, sign_apk, zipalign_apk
from droid_orchestrator.stages.compile import ClojureCompiler, compile_project
from droid_orchestrator.stages.dex import create_dex
from droid_orchestrator.stages.resources import crunch_resources, package_resources
from droid_orchestrator.toolchain.classpath import (
    Resolver,
    augment,
    project_classpath,
    resolve_dependencies,
)
from droid_orchestrator.toolchain.process import CancellationToken, ToolRunner

_logger = structlog.get_logger(__name__)


class UnknownTaskError(BuildError):
    """Raised when a task name is not in the registry."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"unknown task {name!r}; known tasks: {', '.join(TASKS)}")


@dataclass(frozen=True, slots=True)
class Task:
    """A named unit of work: either one stage or an ordered group of tasks."""

    name: str
    description: str
    action: Callable[[Pipeline], Any] | None = None
    steps: tuple[str, ...] = ()

    @property
    def is_composite(self) -> bool:
        return self.action is None


@dataclass(frozen=True, slots=True)
class StageOutcome:
    name: str
    artifact: Any
    duration_ms: int


TASKS: dict[str, Task] = {
    task.name: task
    for task in (
        Task(
            "compile",
            "Compile Java sources and AOT-compile Clojure namespaces.",
            action=lambda p: compile_project(
                p.config,
                classpath_resolver=p.classpath_resolver,
                runner=p.runner,
                compiler=p.compiler,
            ),
        ),
        Task(
            "create-dex",
            "Convert compiled classes and dependencies into classes.dex.",
            action=lambda p: create_dex(
                p.config,
                dependency_resolver=p.dependency_resolver,
                runner=p.runner,
                cancellation=p.cancellation,
            ),
        ),
        Task("build", "Compile, then create the dex file.", steps=("compile", "create-dex")),
        Task(
            "crunch-resources",
            "Pre-process image resources.",
            action=lambda p: crunch_resources(p.config, runner=p.runner),
        ),
        Task(
            "package-resources",
            "Package manifest, resources and assets.",
            action=lambda p: package_resources(p.config, runner=p.runner),
        ),
        Task(
            "create-apk",
            "Assemble the unaligned APK.",
            action=lambda p: create_apk(p.config, runner=p.runner),
        ),
        Task(
            "sign-apk",
            "Sign the APK with the debug key.",
            action=lambda p: sign_apk(p.config, runner=p.runner),
        ),
        Task(
            "zipalign-apk",
            "Align the signed APK.",
            action=lambda p: zipalign_apk(p.config, runner=p.runner),
        ),
        Task(
            "apk",
            "Crunch, package, assemble, sign and align.",
            steps=(
                "crunch-resources",
                "package-resources",
                "create-apk",
                "sign-apk",
                "zipalign-apk",
            ),
        ),
        Task(
            "install",
            "Install the aligned APK on the attached device.",
            action=lambda p: install(p.config, runner=p.runner),
        ),
    )
}


def expand_tasks(names: Sequence[str]) -> list[str]:
    """Flatten composite tasks into the stage names they run, in order."""

    expanded: list[str] = []
    for name in names:
        task = TASKS.get(name)
        if task is None:
            raise UnknownTaskError(name)
        if task.is_composite:
            expanded.extend(expand_tasks(task.steps))
        else:
            expanded.append(name)
    return expanded


class Pipeline:
    """Runs build tasks for one project configuration."""

    def __init__(
        self,
        config: ProjectConfig,
        *,
        runner: ToolRunner | None = None,
        cancellation: CancellationToken | None = None,
        compiler: ClojureCompiler | None = None,
        dependency_resolver: Resolver = resolve_dependencies,
        classpath_resolver: Resolver = project_classpath,
    ) -> None:
        self.config = config
        self.runner = runner if runner is not None else ToolRunner(cwd=config.project_root)
        self.cancellation = cancellation if cancellation is not None else CancellationToken()
        self.compiler = compiler
        self.dependency_resolver = augment(dependency_resolver, config)
        self.classpath_resolver = augment(classpath_resolver, config)

    @classmethod
    def from_config(cls, config: ProjectConfig, **kwargs: Any) -> Pipeline:
        return cls(config, **kwargs)

    def run(self, *tasks: str) -> list[StageOutcome]:
        """Run ``tasks`` in order, stopping at the first failure or cancellation."""

        stages = expand_tasks(tasks)
        outcomes: list[StageOutcome] = []
        for name in stages:
            self.cancellation.raise_if_cancelled()
            with correlation_scope(stage=name):
                _logger.info("stage_started")
                started_ns = time.monotonic_ns()
                action = TASKS[name].action
                assert action is not None
                try:
                    artifact = action(self)
                except BuildError as exc:
                    _logger.error("stage_failed", error=str(exc))
                    if self.cancellation.is_cancelled and not isinstance(
                        exc, BuildCancelledError
                    ):
                        raise BuildCancelledError(f"build cancelled during {name}") from exc
                    raise
                duration_ms = max(0, (time.monotonic_ns() - started_ns) // 1_000_000)
                _logger.info(
                    "stage_finished", duration_ms=duration_ms, artifact=_describe(artifact)
                )
            outcomes.append(StageOutcome(name=name, artifact=artifact, duration_ms=duration_ms))
        return outcomes


@contextmanager
def cancel_on_signals(
    cancellation: CancellationToken,
    signals: Sequence[signal.Signals] = (signal.SIGINT, signal.SIGTERM),
) -> Iterator[None]:
    """Route ``signals`` to ``cancellation.cancel`` and restore prior handlers on exit.

    Outside the main thread handlers cannot be installed and this is a no-op.
    """

    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _handler(signum: int, frame: FrameType | None) -> None:
        _logger.warning("cancel_requested", signal=signal.Signals(signum).name)
        cancellation.cancel()

    previous = {sig: signal.signal(sig, _handler) for sig in signals}
    try:
        yield
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler if handler is not None else signal.SIG_DFL)


def _describe(artifact: Any) -> Any:
    if isinstance(artifact, Path):
        return artifact.as_posix()
    if isinstance(artifact, list):
        return len(artifact)
    return artifact


__all__ = [
    "Pipeline",
    "StageOutcome",
    "TASKS",
    "Task",
    "UnknownTaskError",
    "cancel_on_signals",
    "expand_tasks",
]
