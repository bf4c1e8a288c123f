"""
droid-orchestrator: effective config loading.

Layers, lowest first: built-in defaults, ``droid.toml``, the selected profile
overlay, ``DROID_*`` environment variables, then CLI ``--set`` overrides. The
result is validated after every layer that can introduce values, and path
fields are finally resolved against the directory holding ``droid.toml``.
"""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any, Final

from droid_orchestrator.config.schema import (
    PATH_FIELDS,
    PATH_LIST_FIELDS,
    apply_profile_overlay,
    assert_valid_config,
    default_config,
    merge_config,
)

DEFAULT_CONFIG_FILE: Final[str] = "droid.toml"
ENV_PREFIX: Final[str] = "DROID_"
LIST_SEPARATOR: Final[str] = ","

_TRUTHY: Final[frozenset[str]] = frozenset({"1", "true", "t", "yes", "y", "on"})
_FALSY: Final[frozenset[str]] = frozenset({"0", "false", "f", "no", "n", "off"})


class ConfigLoadError(ValueError):
    """Raised when config cannot be read or an override cannot be coerced."""


def load_config(
    config_path: str | Path | None = None,
    *,
    profile: str | None = None,
    cli_overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Return the validated effective config (CLI > env > profile > file > defaults)."""

    path = resolve_config_path(config_path)
    env = dict(os.environ if environ is None else environ)
    cli = dict(cli_overrides or {})

    config = assert_valid_config(
        merge_config(default_config(), _read_toml(path, required=config_path is not None))
    )
    config = apply_profile_overlay(config, _selected_profile(profile, cli, env))
    config = merge_config(config, _env_overrides(config, env))
    config = merge_config(config, _nest_dotted(cli))
    config = assert_valid_config(config)
    return assert_valid_config(normalize_paths(config, base_dir=path.parent, environ=env))


def resolve_config_path(config_path: str | Path | None) -> Path:
    """Return the absolute config file path, defaulting to ``./droid.toml``."""

    if config_path is None:
        return (Path.cwd() / DEFAULT_CONFIG_FILE).resolve()
    return Path(config_path).expanduser().resolve()


def normalize_paths(
    config: Mapping[str, object],
    *,
    base_dir: Path,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Expand ``${VAR}`` and ``~`` in path fields and anchor relative ones at ``base_dir``."""

    env = os.environ if environ is None else environ
    out = merge_config({}, config)

    def resolve(raw: str) -> str:
        candidate = Path(_expand_vars(raw, env)).expanduser()
        return Path(os.path.normpath(base_dir / candidate)).as_posix()

    for section, key in PATH_FIELDS:
        table = out.get(section)
        if isinstance(table, dict) and isinstance(table.get(key), str):
            table[key] = resolve(table[key])
    for section, key in PATH_LIST_FIELDS:
        table = out.get(section)
        if isinstance(table, dict) and isinstance(table.get(key), list):
            table[key] = [resolve(item) for item in table[key] if isinstance(item, str)]
    return out


def dump_effective_config(config: Mapping[str, object]) -> str:
    """Render ``config`` as stable, indented JSON for ``droid config``."""

    return json.dumps(config, sort_keys=True, indent=2, ensure_ascii=False)


def _read_toml(path: Path, *, required: bool) -> dict[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except FileNotFoundError as exc:
        if required:
            raise ConfigLoadError(f"config file not found: {path}") from exc
        return {}
    except tomllib.TOMLDecodeError as exc:
        raise ConfigLoadError(f"invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigLoadError(f"unable to read config file {path}: {exc}") from exc


def _selected_profile(
    explicit: str | None, cli: Mapping[str, object], env: Mapping[str, str]
) -> str | None:
    for candidate in (explicit, cli.get("profile"), env.get(f"{ENV_PREFIX}PROFILE")):
        if candidate is None:
            continue
        if not isinstance(candidate, str):
            raise ConfigLoadError("profile override must be a string")
        return candidate.strip() or None
    return None


def _env_overrides(config: Mapping[str, object], env: Mapping[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for path, current in _leaves(config):
        name = ENV_PREFIX + "_".join(part.upper() for part in path)
        if name in env:
            _put(overrides, path, _coerce(env[name], current, name, path))
    return overrides


def _leaves(
    payload: Mapping[str, object], prefix: tuple[str, ...] = ()
) -> Iterator[tuple[tuple[str, ...], object]]:
    for key in sorted(payload):
        if not prefix and key == "profiles":
            continue
        value = payload[key]
        if isinstance(value, Mapping):
            yield from _leaves(value, (*prefix, key))
        else:
            yield (*prefix, key), value


def _coerce(raw: str, current: object, name: str, path: tuple[str, ...]) -> object:
    value = raw.strip()
    dotted = ".".join(path)
    if isinstance(current, bool):
        if value.lower() in _TRUTHY:
            return True
        if value.lower() in _FALSY:
            return False
        raise ConfigLoadError(
            f"{name} -> {dotted} must be a boolean (true/false/1/0/yes/no/on/off)"
        )
    if isinstance(current, int):
        try:
            return int(value)
        except ValueError as exc:
            raise ConfigLoadError(f"{name} -> {dotted} must be an integer") from exc
    if isinstance(current, list):
        return [item.strip() for item in value.split(LIST_SEPARATOR) if item.strip()]
    return value


def _nest_dotted(cli: Mapping[str, object]) -> dict[str, Any]:
    nested: dict[str, Any] = {}
    for key, value in cli.items():
        if key == "profile":
            continue
        path = tuple(part for part in key.split(".") if part)
        if not path:
            raise ConfigLoadError(f"invalid CLI override key {key!r}")
        _put(nested, path, value)
    return nested


def _put(target: dict[str, Any], path: tuple[str, ...], value: object) -> None:
    *parents, leaf = path
    for part in parents:
        child = target.get(part)
        if not isinstance(child, dict):
            child = target[part] = {}
        target = child
    target[leaf] = value


def _expand_vars(raw: str, env: Mapping[str, str]) -> str:
    for name in sorted(env, key=len, reverse=True):
        raw = raw.replace(f"${{{name}}}", env[name]).replace(f"${name}", env[name])
    return raw


__all__ = [
    "ConfigLoadError",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "LIST_SEPARATOR",
    "dump_effective_config",
    "load_config",
    "normalize_paths",
    "resolve_config_path",
]
