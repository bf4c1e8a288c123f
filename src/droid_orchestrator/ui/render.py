"""Output rendering for the droid CLI.

Purpose
- Keep user-facing stdout separate from log output on stderr.
- Respect the ``NO_COLOR`` environment variable and the ``--no-color`` flag.
"""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING, TextIO

if TYPE_CHECKING:
    from collections.abc import Sequence

_GREEN = "\033[32m"
_RESET = "\033[0m"


def _color_allowed(no_color_flag: bool, stream: TextIO) -> bool:
    if no_color_flag:
        return False
    if os.environ.get("NO_COLOR", ""):
        return False
    return hasattr(stream, "isatty") and stream.isatty()


class CLIRenderer:
    """Plain-text renderer with optional status colors."""

    def __init__(self, *, no_color: bool = False, stream: TextIO | None = None) -> None:
        self._stream = stream if stream is not None else sys.stdout
        self._color = _color_allowed(no_color, self._stream)

    def text(self, line: str) -> None:
        print(line, file=self._stream)

    def table(self, headers: Sequence[str], rows: Sequence[Sequence[str]]) -> None:
        """Print a left-aligned two-space separated table."""

        if not rows:
            return
        widths = [len(header) for header in headers]
        for row in rows:
            for index, cell in enumerate(row[: len(headers)]):
                widths[index] = max(widths[index], len(cell))

        def _pad(cells: Sequence[str]) -> str:
            return "  ".join(cell.ljust(widths[i]) for i, cell in enumerate(cells)).rstrip()

        self.text(_pad(headers))
        self.text("  ".join("-" * width for width in widths))
        for row in rows:
            self.text(_pad(row))

    def ok(self, label: str) -> None:
        self.text(f"  {self._paint('OK', _GREEN)}  {label}")

    def _paint(self, label: str, color: str) -> str:
        return f"{color}{label}{_RESET}" if self._color else label


def create_renderer(*, no_color: bool = False, stream: TextIO | None = None) -> CLIRenderer:
    return CLIRenderer(no_color=no_color, stream=stream)


__all__ = ["CLIRenderer", "create_renderer"]
