"""
Classpath augmentation around dependency resolution.

The Android platform archives are not regular dependencies, so they never
come out of dependency resolution. ``augment`` wraps a resolver and returns a
resolver with the same call shape whose result is deduplicated by archive
base name and extended with ``android.jar`` and ``annotations.jar``. The
pipeline composes it once and injects it into every stage that needs
dependency paths.
"""

from __future__ import annotations

import glob
from collections.abc import Callable, Iterable
from pathlib import Path, PurePath

import structlog

from droid_orchestrator.config.project import ProjectConfig
from droid_orchestrator.constants import ARCHIVE_SUFFIX
from droid_orchestrator.errors import MissingPathError
from droid_orchestrator.toolchain.paths import sdk_android_jar, sdk_annotations_jar

Resolver = Callable[[ProjectConfig], list[str]]

_GLOB_CHARS = frozenset("*?[")

_logger = structlog.get_logger(__name__)


def is_archive(entry: str) -> bool:
    return entry.endswith(ARCHIVE_SUFFIX)


def unique_jars(entries: Iterable[str]) -> list[str]:
    """Keep the first archive seen for each base filename, preserving order."""

    seen: set[str] = set()
    unique: list[str] = []
    for entry in entries:
        base_name = PurePath(entry).name
        if base_name in seen:
            continue
        seen.add(base_name)
        unique.append(entry)
    return unique


def augment_classpath(entries: Iterable[str], config: ProjectConfig) -> list[str]:
    """Deduplicate archives, keep directories, append the platform archives."""

    materialized = [str(entry) for entry in entries]
    archives = [entry for entry in materialized if is_archive(entry)]
    others = [entry for entry in materialized if not is_archive(entry)]
    platform = [
        str(sdk_android_jar(config.sdk_path, config.target_version)),
        str(sdk_annotations_jar(config.sdk_path)),
    ]
    result = [*unique_jars(archives), *others, *platform]
    _logger.debug("classpath_augmented", entries=result)
    return result


def augment(base_resolver: Resolver, config: ProjectConfig) -> Resolver:
    """Wrap ``base_resolver``; platform archives come from the SDK named in ``config``."""

    def resolver(project: ProjectConfig) -> list[str]:
        return augment_classpath(base_resolver(project), config)

    resolver.__name__ = f"augmented_{getattr(base_resolver, '__name__', 'resolver')}"
    resolver.__wrapped__ = base_resolver  # type: ignore[attr-defined]
    return resolver


def resolve_dependencies(config: ProjectConfig) -> list[str]:
    """Expand declared dependencies into local archive/directory paths.

    Glob patterns expand in sorted order and may match nothing; literal
    entries must exist.
    """

    resolved: list[str] = []
    for declared in config.dependencies:
        candidate = Path(declared)
        if not candidate.is_absolute():
            candidate = config.project_root / candidate
        text = candidate.as_posix()
        if _GLOB_CHARS.intersection(declared):
            resolved.extend(sorted(glob.glob(text, recursive=True)))
            continue
        if not candidate.exists():
            raise MissingPathError(candidate, what="dependency")
        resolved.append(text)
    return resolved


def project_classpath(config: ProjectConfig) -> list[str]:
    """Source roots, compiled classes, then resolved dependencies."""

    roots = [*config.source_paths, *config.java_source_paths, config.compile_path]
    return [path.as_posix() for path in roots] + resolve_dependencies(config)


__all__ = [
    "Resolver",
    "augment",
    "augment_classpath",
    "is_archive",
    "project_classpath",
    "resolve_dependencies",
    "unique_jars",
]
