"""
External tool supervision.

``ToolRunner.run`` blocks until the tool exits and turns a non-zero exit
into ``ToolInvocationError``. A ``CancellationToken`` can be passed for the
one invocation that must die with the build: the process is registered on
the token for the duration of the call, and ``CancellationToken.cancel``
(called from the CLI's signal handler) terminates every registered process.
Invocations run without a token are never interrupted. There are no
timeouts.
"""

from __future__ import annotations

import os
import subprocess
import threading
import time
from collections.abc import Callable, Iterator, Mapping, Sequence
from contextlib import contextmanager, suppress
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import psutil
import structlog

from droid_orchestrator.errors import BuildCancelledError, ToolInvocationError
from droid_orchestrator.observability.logging import redact_argv

PopenFactory = Callable[..., subprocess.Popen[str]]
Argument = str | os.PathLike[str]


class CancellationToken:
    """Cancellation signal owning the processes registered on it.

    ``cancel`` takes no lock, so it is safe to call from a signal handler that
    interrupts the thread currently inside ``register``.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._lock = threading.Lock()
        self._processes: list[subprocess.Popen[Any]] = []

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    @property
    def active_processes(self) -> tuple[subprocess.Popen[Any], ...]:
        return tuple(self._processes)

    def cancel(self) -> None:
        self._cancelled = True
        for process in tuple(self._processes):
            _terminate(process)

    def raise_if_cancelled(self) -> None:
        if self.is_cancelled:
            raise BuildCancelledError("build cancelled")

    @contextmanager
    def register(self, process: subprocess.Popen[Any]) -> Iterator[None]:
        """Tie ``process`` to this token until the block exits."""

        # Append before reading the flag: a concurrent cancel either sees the
        # process or is seen here.
        with self._lock:
            self._processes.append(process)
        if self.is_cancelled:
            _terminate(process)
        try:
            yield
        finally:
            with self._lock, suppress(ValueError):
                self._processes.remove(process)


@dataclass(frozen=True, slots=True)
class ToolResult:
    """Outcome of a successful tool invocation."""

    tool: str
    argv: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str
    duration_ms: int


class ToolRunner:
    """Run external tools synchronously and classify their failures."""

    def __init__(
        self,
        *,
        cwd: str | Path | None = None,
        env: Mapping[str, str] | None = None,
        popen: PopenFactory = subprocess.Popen,
        logger: Any | None = None,
    ) -> None:
        self._cwd = None if cwd is None else Path(cwd)
        self._env = None if env is None else {**os.environ, **env}
        self._popen = popen
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    def run(
        self,
        argv: Sequence[Argument],
        *,
        tool: str | None = None,
        cancellation: CancellationToken | None = None,
    ) -> ToolResult:
        command = tuple(os.fspath(item) for item in argv)
        if not command:
            raise ValueError("argv must not be empty")
        tool_name = tool or Path(command[0]).name

        self._logger.info("tool_started", tool=tool_name, argv=redact_argv(command))
        started_ns = time.monotonic_ns()
        try:
            process = self._popen(
                list(command),
                cwd=self._cwd,
                env=self._env,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
            )
        except OSError as exc:
            raise ToolInvocationError(
                tool=tool_name, argv=redact_argv(command), returncode=None, stderr=str(exc)
            ) from exc

        if cancellation is None:
            stdout, stderr = process.communicate()
        else:
            with cancellation.register(process):
                stdout, stderr = process.communicate()

        returncode = process.returncode
        duration_ms = max(0, (time.monotonic_ns() - started_ns) // 1_000_000)
        self._log_output(tool_name, stdout, stderr)

        if returncode != 0 and cancellation is not None and cancellation.is_cancelled:
            self._logger.warning("tool_cancelled", tool=tool_name, returncode=returncode)
            raise BuildCancelledError(f"{tool_name} was terminated by cancellation")
        if returncode != 0:
            self._logger.error(
                "tool_failed", tool=tool_name, returncode=returncode, duration_ms=duration_ms
            )
            raise ToolInvocationError(
                tool=tool_name,
                argv=redact_argv(command),
                returncode=returncode,
                stderr=stderr or stdout,
            )

        self._logger.info(
            "tool_finished", tool=tool_name, returncode=returncode, duration_ms=duration_ms
        )
        return ToolResult(
            tool=tool_name,
            argv=command,
            returncode=returncode,
            stdout=stdout,
            stderr=stderr,
            duration_ms=duration_ms,
        )

    def _log_output(self, tool_name: str, stdout: str, stderr: str) -> None:
        for stream_name, text in (("stdout", stdout), ("stderr", stderr)):
            for line in text.splitlines():
                if line.strip():
                    self._logger.debug("tool_output", tool=tool_name, stream=stream_name, line=line)


def _terminate(process: subprocess.Popen[Any]) -> None:
    """Terminate ``process`` and every descendant it has spawned."""

    if process.poll() is not None:
        return
    try:
        children = psutil.Process(process.pid).children(recursive=True)
    except psutil.NoSuchProcess:
        children = []
    for child in children:
        with suppress(psutil.NoSuchProcess):
            child.terminate()
    with suppress(ProcessLookupError):
        process.terminate()


__all__ = ["CancellationToken", "PopenFactory", "ToolResult", "ToolRunner"]
