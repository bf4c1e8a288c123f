"""
droid-orchestrator config package public API.

File: src/droid_orchestrator/config/__init__.py

Purpose
- Export config loading/validation entrypoints, the immutable ``ProjectConfig``
  and public error types.

Functional requirements
- Support loading from ``droid.toml`` + ``DROID_`` env overrides.
- Fail fast with clear structured validation/load errors.
"""

from droid_orchestrator.config.loader import (
    DEFAULT_CONFIG_FILE,
    ENV_PREFIX,
    ConfigLoadError,
    dump_effective_config,
    load_config,
    normalize_paths,
    resolve_config_path,
)
from droid_orchestrator.config.project import (
    AotMode,
    BuildMode,
    ProjectConfig,
    ToolCommands,
    load_project_config,
)
from droid_orchestrator.config.schema import (
    BUILTIN_PROFILE_NAMES,
    DEFAULT_CONFIG,
    ConfigValidationError,
    ConfigValidationIssue,
    ConfigValidationResult,
    DroidConfig,
    assert_valid_config,
    default_config,
    merge_config,
    validate_config,
)

__all__ = [
    "BUILTIN_PROFILE_NAMES",
    "AotMode",
    "BuildMode",
    "ConfigLoadError",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DEFAULT_CONFIG",
    "DEFAULT_CONFIG_FILE",
    "DroidConfig",
    "ENV_PREFIX",
    "ProjectConfig",
    "ToolCommands",
    "assert_valid_config",
    "default_config",
    "dump_effective_config",
    "load_config",
    "load_project_config",
    "merge_config",
    "normalize_paths",
    "resolve_config_path",
    "validate_config",
]
