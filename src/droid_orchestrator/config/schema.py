"""
droid-orchestrator: configuration defaults and strict validation.

Each config section is a table from field name to checker. A checker takes the
raw value and its dotted path, records any problem on the shared issue list
and returns the normalized value, or ``None`` when the value was rejected.
Profiles under ``[profiles.<name>]`` are partial overlays checked against the
same tables.
"""

from __future__ import annotations

import copy
import re
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from functools import partial
from typing import Any, Final, Literal, TypedDict

BUILTIN_PROFILE_NAMES: Final[tuple[str, ...]] = ("dev", "release")
AOT_MODES: Final[tuple[str, ...]] = ("none", "all", "all-with-unused")
BUILD_MODES: Final[tuple[str, ...]] = ("dev", "release")
LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")
LOG_FORMATS: Final[tuple[str, ...]] = ("json", "text")

_PROFILE_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_-]*$")
_NAMESPACE_PATTERN = re.compile(r"^[^\s()\[\]{}\"'`;]+$")


class ProjectSection(TypedDict):
    name: str
    source_paths: list[str]
    java_source_paths: list[str]
    compile_path: str
    dependencies: list[str]
    aot: Literal["none", "all", "all-with-unused"]
    aot_namespaces: list[str]
    aot_exclude_ns: list[str]


class AndroidSection(TypedDict):
    sdk_path: str
    target_version: str
    manifest_path: str
    res_path: str
    assets_path: str
    out_res_path: str
    out_res_pkg_path: str
    out_dex_path: str
    out_apk_path: str
    keystore_path: str


class BuildSection(TypedDict):
    mode: Literal["dev", "release"]


class ToolsSection(TypedDict):
    java: str
    javac: str
    jarsigner: str
    clojure_main: str


class ObservabilitySection(TypedDict):
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"]
    log_format: Literal["json", "text"]
    log_dir: str
    log_to_file: bool


class ProfileOverlay(TypedDict, total=False):
    project: dict[str, object]
    android: dict[str, object]
    build: dict[str, object]
    tools: dict[str, object]
    observability: dict[str, object]


class DroidConfig(TypedDict):
    project: ProjectSection
    android: AndroidSection
    build: BuildSection
    tools: ToolsSection
    observability: ObservabilitySection
    profiles: dict[str, ProfileOverlay]


DEFAULT_CONFIG: Final[DroidConfig] = {
    "project": {
        "name": "app",
        "source_paths": ["src/clojure"],
        "java_source_paths": ["src/java"],
        "compile_path": "target/debug/classes",
        "dependencies": [],
        "aot": "all-with-unused",
        "aot_namespaces": [],
        "aot_exclude_ns": [],
    },
    "android": {
        "sdk_path": "${ANDROID_HOME}",
        "target_version": "15",
        "manifest_path": "AndroidManifest.xml",
        "res_path": "res",
        "assets_path": "assets",
        "out_res_path": "target/debug/res",
        "out_res_pkg_path": "target/debug/resources.ap_",
        "out_dex_path": "target/debug/classes.dex",
        "out_apk_path": "target/debug/app.apk",
        "keystore_path": "~/.android/debug.keystore",
    },
    "build": {
        "mode": "dev",
    },
    "tools": {
        "java": "java",
        "javac": "javac",
        "jarsigner": "jarsigner",
        "clojure_main": "clojure.main",
    },
    "observability": {
        "log_level": "INFO",
        "log_format": "text",
        "log_dir": "target/logs",
        "log_to_file": True,
    },
    "profiles": {
        "dev": {
            "build": {"mode": "dev"},
        },
        "release": {
            "build": {"mode": "release"},
        },
    },
}


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    """Single structured validation failure."""

    path: str
    message: str


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    """Normalized config, or the issues that prevented normalizing it."""

    config: dict[str, Any] | None
    issues: tuple[ConfigValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return self.config is not None and not self.issues


class ConfigValidationError(ValueError):
    """Raised when strict config validation fails."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        lines = [f"- {issue.path}: {issue.message}" for issue in self.issues]
        super().__init__("invalid config:\n" + ("\n".join(lines) or "- <root>: no details"))


class _IssueCollector:
    __slots__ = ("items",)

    def __init__(self) -> None:
        self.items: list[ConfigValidationIssue] = []

    def add(self, path: str, message: str) -> None:
        self.items.append(ConfigValidationIssue(path=path, message=message))


_Checker = Callable[[object, str, _IssueCollector], Any]


def _text(value: object, path: str, issues: _IssueCollector) -> str | None:
    if not isinstance(value, str):
        issues.add(path, f"expected string, got {type(value).__name__}")
        return None
    stripped = value.strip()
    if not stripped:
        issues.add(path, "must not be empty")
        return None
    return stripped


def _path_text(value: object, path: str, issues: _IssueCollector) -> str | None:
    parsed = _text(value, path, issues)
    if parsed is not None and "\x00" in parsed:
        issues.add(path, "must not contain NUL bytes")
        return None
    return parsed


def _path_list(value: object, path: str, issues: _IssueCollector) -> list[str] | None:
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        issues.add(path, f"expected list of strings, got {type(value).__name__}")
        return None
    parsed = [_path_text(item, f"{path}[{index}]", issues) for index, item in enumerate(value)]
    return [item for item in parsed if item is not None]


def _namespace_list(value: object, path: str, issues: _IssueCollector) -> list[str] | None:
    names = _path_list(value, path, issues)
    for index, name in enumerate(names or ()):
        if not _NAMESPACE_PATTERN.fullmatch(name):
            issues.add(f"{path}[{index}]", f"invalid namespace {name!r}")
    return names


def _flag(value: object, path: str, issues: _IssueCollector) -> bool | None:
    if isinstance(value, bool):
        return value
    issues.add(path, f"expected boolean, got {type(value).__name__}")
    return None


def _choice(
    allowed: tuple[str, ...], value: object, path: str, issues: _IssueCollector
) -> str | None:
    parsed = _text(value, path, issues)
    if parsed is None or parsed in allowed:
        return parsed
    issues.add(path, f"invalid value {parsed!r}; expected one of: {', '.join(sorted(allowed))}")
    return None


def _api_level(value: object, path: str, issues: _IssueCollector) -> str | None:
    # ``target_version = 15`` arrives from TOML as an int; SDK platform names are text.
    if isinstance(value, int) and not isinstance(value, bool):
        value = str(value)
    return _text(value, path, issues)


_SECTIONS: Final[dict[str, dict[str, _Checker]]] = {
    "project": {
        "name": _text,
        "source_paths": _path_list,
        "java_source_paths": _path_list,
        "compile_path": _path_text,
        "dependencies": _path_list,
        "aot": partial(_choice, AOT_MODES),
        "aot_namespaces": _namespace_list,
        "aot_exclude_ns": _namespace_list,
    },
    "android": {
        "sdk_path": _path_text,
        "target_version": _api_level,
        "manifest_path": _path_text,
        "res_path": _path_text,
        "assets_path": _path_text,
        "out_res_path": _path_text,
        "out_res_pkg_path": _path_text,
        "out_dex_path": _path_text,
        "out_apk_path": _path_text,
        "keystore_path": _path_text,
    },
    "build": {
        "mode": partial(_choice, BUILD_MODES),
    },
    "tools": {
        "java": _text,
        "javac": _text,
        "jarsigner": _text,
        "clojure_main": _text,
    },
    "observability": {
        "log_level": partial(_choice, LOG_LEVELS),
        "log_format": partial(_choice, LOG_FORMATS),
        "log_dir": _path_text,
        "log_to_file": _flag,
    },
}

# Fields resolved relative to the config file directory by the loader.
PATH_FIELDS: Final[tuple[tuple[str, str], ...]] = tuple(
    (section, key)
    for section, fields in _SECTIONS.items()
    for key, checker in fields.items()
    if checker is _path_text
)
PATH_LIST_FIELDS: Final[tuple[tuple[str, str], ...]] = tuple(
    (section, key)
    for section, fields in _SECTIONS.items()
    for key, checker in fields.items()
    if checker is _path_list
)


def default_config() -> DroidConfig:
    """Return a deep copy of the built-in defaults."""

    return copy.deepcopy(DEFAULT_CONFIG)


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Deep-merge ``overlay`` onto a copy of ``base``; nested tables merge key by key."""

    merged: dict[str, Any] = copy.deepcopy(dict(base))
    for key, value in overlay.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = merge_config(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def apply_profile_overlay(config: Mapping[str, object], profile: str | None) -> dict[str, Any]:
    """Merge the overlay of ``profile`` into ``config`` and validate the result."""

    selected = (profile or "").strip()
    if not selected:
        return copy.deepcopy(dict(config))
    profiles = config.get("profiles")
    overlay = profiles.get(selected) if isinstance(profiles, Mapping) else None
    if not isinstance(overlay, Mapping):
        raise ConfigValidationError(
            (ConfigValidationIssue("profiles", f"profile {selected!r} is not defined"),)
        )
    return assert_valid_config(merge_config(config, overlay))


def validate_config(config: object) -> ConfigValidationResult:
    """Check ``config`` against every section table and collect all issues."""

    issues = _IssueCollector()
    normalized = _check_root(config, "", issues, overlay=False)
    if normalized is None or issues.items:
        return ConfigValidationResult(config=None, issues=tuple(issues.items))
    return ConfigValidationResult(config=normalized, issues=())


def assert_valid_config(config: object) -> dict[str, Any]:
    """Return the normalized config or raise ``ConfigValidationError``."""

    result = validate_config(config)
    if result.config is None:
        raise ConfigValidationError(result.issues)
    return result.config


def _check_root(
    payload: object, path: str, issues: _IssueCollector, *, overlay: bool
) -> dict[str, Any] | None:
    root = _as_object(payload, path or "<root>", issues)
    if root is None:
        return None
    allowed = set(_SECTIONS) if overlay else {*_SECTIONS, "profiles"}
    _check_keys(root, allowed, () if overlay else _SECTIONS, path, issues)

    out: dict[str, Any] = {}
    for name, fields in _SECTIONS.items():
        if name in root:
            section = _check_section(root[name], fields, _join(path, name), issues, overlay)
            if section is not None:
                out[name] = section
    if "profiles" in root and not overlay:
        profiles = _check_profiles(root["profiles"], _join(path, "profiles"), issues)
        if profiles is not None:
            out["profiles"] = profiles
    return out


def _check_section(
    payload: object,
    fields: Mapping[str, _Checker],
    path: str,
    issues: _IssueCollector,
    overlay: bool,
) -> dict[str, Any] | None:
    section = _as_object(payload, path, issues)
    if section is None:
        return None
    _check_keys(section, set(fields), () if overlay else fields, path, issues)

    out: dict[str, Any] = {}
    for key in sorted(fields):
        if key in section:
            parsed = fields[key](section[key], _join(path, key), issues)
            if parsed is not None:
                out[key] = parsed
    return out


def _check_profiles(
    payload: object, path: str, issues: _IssueCollector
) -> dict[str, Any] | None:
    profiles = _as_object(payload, path, issues)
    if profiles is None:
        return None
    out: dict[str, Any] = {}
    for name in sorted(profiles):
        profile_path = _join(path, name)
        if not _PROFILE_NAME_PATTERN.fullmatch(name):
            issues.add(profile_path, "profile names must match ^[a-z][a-z0-9_-]*$")
            continue
        overlay = _check_root(profiles[name], profile_path, issues, overlay=True)
        if overlay is not None:
            out[name] = overlay
    return out


def _check_keys(
    payload: Mapping[str, object],
    allowed: set[str],
    required: Iterable[str],
    path: str,
    issues: _IssueCollector,
) -> None:
    for key in sorted(set(payload) - allowed):
        issues.add(_join(path, key), "unknown field")
    for key in sorted(set(required) - set(payload)):
        issues.add(_join(path, key), "missing required field")


def _as_object(value: object, path: str, issues: _IssueCollector) -> dict[str, object] | None:
    if not isinstance(value, Mapping):
        issues.add(path, f"expected object, got {type(value).__name__}")
        return None
    non_text = [key for key in value if not isinstance(key, str)]
    for key in non_text:
        issues.add(path, f"object key must be string, got {type(key).__name__}")
    return {key: item for key, item in value.items() if isinstance(key, str)}


def _join(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


__all__ = [
    "AOT_MODES",
    "BUILD_MODES",
    "BUILTIN_PROFILE_NAMES",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DEFAULT_CONFIG",
    "DroidConfig",
    "LOG_FORMATS",
    "LOG_LEVELS",
    "PATH_FIELDS",
    "PATH_LIST_FIELDS",
    "ProfileOverlay",
    "apply_profile_overlay",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "validate_config",
]
