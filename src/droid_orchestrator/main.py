"""Executable CLI entrypoint for ``droid_orchestrator``."""

from __future__ import annotations

import sys
import traceback
from enum import IntEnum
from typing import TYPE_CHECKING

from droid_orchestrator.config import ConfigLoadError, ConfigValidationError
from droid_orchestrator.errors import (
    BuildCancelledError,
    CompilationError,
    MissingPathError,
    StaleBackupError,
    ToolInvocationError,
)

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence


class ExitCode(IntEnum):
    """Process exit codes of the ``droid`` command."""

    SUCCESS = 0
    TOOL_FAILED = 1
    CONFIG_ERROR = 2
    MISSING_PATH = 3
    INTERNAL_ERROR = 4
    CANCELLED = 130


def _exit_code_table() -> tuple[tuple[tuple[type[BaseException], ...], ExitCode], ...]:
    from droid_orchestrator.pipeline import UnknownTaskError

    return (
        ((BuildCancelledError, KeyboardInterrupt), ExitCode.CANCELLED),
        (
            (ConfigLoadError, ConfigValidationError, UnknownTaskError, StaleBackupError),
            ExitCode.CONFIG_ERROR,
        ),
        ((MissingPathError,), ExitCode.MISSING_PATH),
        ((ToolInvocationError, CompilationError), ExitCode.TOOL_FAILED),
    )


def cli_entrypoint(argv: Sequence[str] | None = None) -> int:
    """Run the CLI and turn its outcome into an ``ExitCode`` value."""

    try:
        from droid_orchestrator.ui.cli import run_cli

        return _coerce_exit_code(run_cli(argv))
    except SystemExit as exc:
        return _coerce_exit_code(exc.code)
    except BaseException as exc:  # noqa: BLE001 - every failure becomes an exit code here.
        exit_code = _route_exception(exc)
        _report(exc, exit_code)
        return int(exit_code)


def _coerce_exit_code(raw_code: object) -> int:
    if raw_code is None:
        return int(ExitCode.SUCCESS)
    if isinstance(raw_code, int):
        known = {int(code) for code in ExitCode}
        return raw_code if raw_code in known else int(ExitCode.INTERNAL_ERROR)
    if isinstance(raw_code, str) and raw_code.strip():
        print(raw_code.strip(), file=sys.stderr)
    return int(ExitCode.INTERNAL_ERROR)


def _route_exception(exc: BaseException) -> ExitCode:
    table = _exit_code_table()
    for link in _causes(exc):
        for kinds, exit_code in table:
            if isinstance(link, kinds):
                return exit_code
    return ExitCode.INTERNAL_ERROR


def _causes(exc: BaseException) -> Iterator[BaseException]:
    """Yield ``exc`` and the exceptions it was raised from, outermost first."""

    visited: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in visited:
        visited.add(id(current))
        yield current
        if current.__cause__ is not None:
            current = current.__cause__
        elif not current.__suppress_context__:
            current = current.__context__
        else:
            current = None


def _report(exc: BaseException, exit_code: ExitCode) -> None:
    if exit_code is ExitCode.INTERNAL_ERROR:
        traceback.print_exception(type(exc), exc, exc.__traceback__, file=sys.stderr)
    else:
        print(f"error: {str(exc).strip() or type(exc).__name__}", file=sys.stderr)


__all__ = ["ExitCode", "cli_entrypoint"]
