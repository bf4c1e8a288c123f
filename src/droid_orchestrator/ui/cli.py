"""Command-line interface router for droid-orchestrator."""

from __future__ import annotations

import argparse
import sys
import tomllib
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Final

from droid_orchestrator.config import (
    ConfigLoadError,
    ConfigValidationError,
    ProjectConfig,
    dump_effective_config,
    load_config,
    resolve_config_path,
)
from droid_orchestrator.observability import LoggingConfig, setup_logging, shutdown_logging
from droid_orchestrator.pipeline import TASKS, Pipeline, StageOutcome, cancel_on_signals
from droid_orchestrator.ui.render import CLIRenderer, create_renderer

LIST_TASKS_COMMAND: Final[str] = "tasks"
SHOW_CONFIG_COMMAND: Final[str] = "config"
_INFO_COMMANDS: Final[frozenset[str]] = frozenset({LIST_TASKS_COMMAND, SHOW_CONFIG_COMMAND})


@dataclass(frozen=True, slots=True)
class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    message: str
    exit_code: int = 1

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse router: a chain of task names or one info command."""

    task_lines = "\n".join(f"  {name:<20}{task.description}" for name, task in TASKS.items())
    parser = argparse.ArgumentParser(
        prog="droid",
        description=(
            "droid-orchestrator: build, sign, align and install an Android APK.\n\n"
            "Tasks (several may be chained and run in order):\n"
            f"{task_lines}\n\n"
            "Other commands:\n"
            "  tasks               List tasks\n"
            "  config              Print the effective configuration as JSON\n\n"
            "Examples:\n"
            "  droid build apk install\n"
            "  droid --profile release apk\n"
            "  droid --set android.target_version=19 package-resources\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "commands",
        nargs="+",
        metavar="TASK",
        choices=[*TASKS, *sorted(_INFO_COMMANDS)],
        help="Task names to run, or 'tasks' / 'config'.",
    )
    parser.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to the project TOML config (default: ./droid.toml if present).",
    )
    parser.add_argument(
        "--profile",
        default=None,
        help="Config profile overlay name (dev or release).",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Override a dotted config key; VALUE is parsed as a TOML literal when possible.",
    )
    parser.add_argument(
        "--log-format",
        choices=("text", "json"),
        default=None,
        help="Console log format (default: observability.log_format).",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=False,
        help="Log at DEBUG level, including tool output.",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        default=False,
        help="Disable colored output (also respects NO_COLOR env var).",
    )
    return parser


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code.

    Build failures propagate to the caller so ``main`` can classify them.
    """

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    commands: list[str] = namespace.commands

    try:
        info = [command for command in commands if command in _INFO_COMMANDS]
        if info and len(commands) > 1:
            raise CLIError(f"'{info[0]}' cannot be combined with other commands", exit_code=2)
        if commands == [LIST_TASKS_COMMAND]:
            return _cmd_tasks(namespace)
        if commands == [SHOW_CONFIG_COMMAND]:
            return _cmd_config(namespace)
        return _cmd_build(namespace)
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_tasks(args: argparse.Namespace) -> int:
    rows = [
        [name, " -> ".join(task.steps) if task.is_composite else "", task.description]
        for name, task in TASKS.items()
    ]
    _get_renderer(args).table(["TASK", "RUNS", "DESCRIPTION"], rows)
    return 0


def _cmd_config(args: argparse.Namespace) -> int:
    loaded = _load_effective_config(args)
    _get_renderer(args).text(dump_effective_config(loaded))
    return 0


def _cmd_build(args: argparse.Namespace) -> int:
    loaded = _load_effective_config(args)
    try:
        project = ProjectConfig.from_mapping(
            loaded, project_root=resolve_config_path(args.config_path).parent
        )
    except ConfigValidationError as exc:
        raise CLIError(str(exc), exit_code=2) from exc

    observability: dict[str, Any] = loaded["observability"]
    handle = setup_logging(
        LoggingConfig(
            run_id=_new_run_id(),
            log_dir=observability["log_dir"] if observability["log_to_file"] else None,
            level="DEBUG" if args.verbose else observability["log_level"],
            log_format=args.log_format or observability["log_format"],
        )
    )
    renderer = _get_renderer(args)
    pipeline = Pipeline.from_config(project)
    try:
        with cancel_on_signals(pipeline.cancellation):
            outcomes = pipeline.run(*args.commands)
    finally:
        shutdown_logging(handle)

    _render_outcomes(renderer, outcomes)
    if handle.log_path is not None:
        renderer.text(f"log: {handle.log_path}")
    return 0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _get_renderer(args: argparse.Namespace) -> CLIRenderer:
    return create_renderer(no_color=bool(getattr(args, "no_color", False)))


def _render_outcomes(renderer: CLIRenderer, outcomes: Sequence[StageOutcome]) -> None:
    for outcome in outcomes:
        renderer.ok(f"{outcome.name} ({outcome.duration_ms} ms)")


def _load_effective_config(args: argparse.Namespace) -> dict[str, Any]:
    try:
        return load_config(
            args.config_path,
            profile=args.profile,
            cli_overrides=parse_overrides(args.overrides),
        )
    except (ConfigLoadError, ConfigValidationError) as exc:
        raise CLIError(str(exc), exit_code=2) from exc


def parse_overrides(items: Sequence[str]) -> dict[str, object]:
    """Turn ``key=value`` strings into a dotted-key override mapping."""

    overrides: dict[str, object] = {}
    for item in items:
        key, separator, raw = item.partition("=")
        if not separator or not key.strip():
            raise CLIError(f"invalid --set {item!r}; expected KEY=VALUE", exit_code=2)
        overrides[key.strip()] = _parse_literal(raw.strip())
    return overrides


def _parse_literal(raw: str) -> object:
    try:
        return tomllib.loads(f"value = {raw}")["value"]
    except tomllib.TOMLDecodeError:
        return raw


def _new_run_id() -> str:
    stamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")
    return f"{stamp}-{uuid.uuid4().hex[:8]}"


__all__ = ["CLIError", "build_parser", "parse_overrides", "run_cli"]
