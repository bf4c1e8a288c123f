"""Build failure taxonomy shared by every pipeline stage."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

_STDERR_TAIL_CHARS = 4000


class BuildError(RuntimeError):
    """Base error for pipeline failures."""


class MissingPathError(BuildError):
    """Raised when a required file or directory does not exist."""

    def __init__(self, path: str | Path | None, *, what: str | None = None) -> None:
        self.path = None if path is None else Path(path)
        self.what = what
        label = f"{what} " if what else ""
        if self.path is None:
            message = f"required {label}path is not configured"
        else:
            message = f"required {label}path does not exist: {self.path}"
        super().__init__(message)


class ToolchainNotFoundError(MissingPathError):
    """Raised when the SDK root or a platform artifact inside it is missing."""


class ToolInvocationError(BuildError):
    """Raised when an external tool exits non-zero or cannot be started."""

    def __init__(
        self,
        *,
        tool: str,
        argv: Sequence[str],
        returncode: int | None,
        stderr: str = "",
    ) -> None:
        self.tool = tool
        self.argv = tuple(argv)
        self.returncode = returncode
        self.stderr = stderr
        if returncode is None:
            message = f"{tool} could not be started"
        else:
            message = f"{tool} failed with exit code {returncode}"
        tail = stderr.strip()
        if tail:
            message = f"{message}: {tail[-_STDERR_TAIL_CHARS:]}"
        super().__init__(message)


class StaleBackupError(BuildError):
    """Raised when a manifest backup left by an interrupted run is still present."""

    def __init__(self, backup: str | Path, *, manifest: str | Path) -> None:
        self.path = Path(backup)
        super().__init__(
            f"stale manifest backup {self.path} found; it holds the original of {manifest}. "
            "Restore or delete it, then rerun"
        )


class CompilationError(BuildError):
    """Raised when forced AOT compilation of namespaces fails."""


class BuildCancelledError(BuildError):
    """Raised when the pipeline was cancelled by an external interrupt."""


__all__ = [
    "BuildCancelledError",
    "BuildError",
    "CompilationError",
    "MissingPathError",
    "StaleBackupError",
    "ToolInvocationError",
    "ToolchainNotFoundError",
]
