"""User interface package: argparse CLI and output rendering."""

from droid_orchestrator.ui.cli import CLIError, build_parser, run_cli
from droid_orchestrator.ui.render import CLIRenderer, create_renderer

__all__ = ["CLIError", "CLIRenderer", "build_parser", "create_renderer", "run_cli"]
