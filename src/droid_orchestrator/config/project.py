"""Immutable project configuration handed to every pipeline stage."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any

from droid_orchestrator.config.loader import load_config, resolve_config_path
from droid_orchestrator.config.schema import assert_valid_config


class AotMode(StrEnum):
    """Ahead-of-time compilation policy for Clojure namespaces."""

    NONE = "none"
    ALL = "all"
    ALL_WITH_UNUSED = "all-with-unused"


class BuildMode(StrEnum):
    """Development builds patch the manifest; release builds never do."""

    DEV = "dev"
    RELEASE = "release"


@dataclass(frozen=True, slots=True)
class ToolCommands:
    """Executables resolved from ``PATH`` rather than from the SDK."""

    java: str = "java"
    javac: str = "javac"
    jarsigner: str = "jarsigner"
    clojure_main: str = "clojure.main"


@dataclass(frozen=True, slots=True)
class ProjectConfig:
    """Validated, path-normalized view of ``droid.toml``."""

    project_root: Path
    name: str
    sdk_path: Path
    target_version: str
    source_paths: tuple[Path, ...]
    java_source_paths: tuple[Path, ...]
    compile_path: Path
    out_dex_path: Path
    out_res_path: Path
    out_res_pkg_path: Path
    out_apk_path: Path
    manifest_path: Path
    res_path: Path
    assets_path: Path
    keystore_path: Path
    dependencies: tuple[str, ...] = ()
    aot: AotMode = AotMode.ALL_WITH_UNUSED
    aot_namespaces: tuple[str, ...] = ()
    aot_exclude_ns: tuple[str, ...] = ()
    build_mode: BuildMode = BuildMode.DEV
    tools: ToolCommands = field(default_factory=ToolCommands)

    @property
    def is_dev_build(self) -> bool:
        return self.build_mode is BuildMode.DEV

    @classmethod
    def from_mapping(
        cls, config: Mapping[str, object], *, project_root: str | Path
    ) -> ProjectConfig:
        """Build from a loaded config mapping (see ``load_config``)."""

        validated: dict[str, Any] = assert_valid_config(config)
        project = validated["project"]
        android = validated["android"]
        tools = validated["tools"]
        root = Path(project_root)

        def _path(raw: str) -> Path:
            candidate = Path(raw)
            return candidate if candidate.is_absolute() else root / candidate

        return cls(
            project_root=root,
            name=project["name"],
            sdk_path=_path(android["sdk_path"]),
            target_version=android["target_version"],
            source_paths=tuple(_path(item) for item in project["source_paths"]),
            java_source_paths=tuple(_path(item) for item in project["java_source_paths"]),
            compile_path=_path(project["compile_path"]),
            out_dex_path=_path(android["out_dex_path"]),
            out_res_path=_path(android["out_res_path"]),
            out_res_pkg_path=_path(android["out_res_pkg_path"]),
            out_apk_path=_path(android["out_apk_path"]),
            manifest_path=_path(android["manifest_path"]),
            res_path=_path(android["res_path"]),
            assets_path=_path(android["assets_path"]),
            keystore_path=_path(android["keystore_path"]),
            dependencies=tuple(project["dependencies"]),
            aot=AotMode(project["aot"]),
            aot_namespaces=tuple(project["aot_namespaces"]),
            aot_exclude_ns=tuple(project["aot_exclude_ns"]),
            build_mode=BuildMode(validated["build"]["mode"]),
            tools=ToolCommands(
                java=tools["java"],
                javac=tools["javac"],
                jarsigner=tools["jarsigner"],
                clojure_main=tools["clojure_main"],
            ),
        )


def load_project_config(
    config_path: str | Path | None = None,
    *,
    profile: str | None = None,
    cli_overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> ProjectConfig:
    """Load ``droid.toml`` and return the immutable project view."""

    loaded = load_config(
        config_path, profile=profile, cli_overrides=cli_overrides, environ=environ
    )
    return ProjectConfig.from_mapping(loaded, project_root=resolve_config_path(config_path).parent)


__all__ = ["AotMode", "BuildMode", "ProjectConfig", "ToolCommands", "load_project_config"]
