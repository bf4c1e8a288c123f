"""Shared fixtures: a fake Android SDK made of recording shell scripts."""

from __future__ import annotations

import os
import stat
import zipfile
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import pytest

from droid_orchestrator.config.project import AotMode, ProjectConfig, ToolCommands

_SCRIPT_HEADER = """#!/bin/sh
name=$(basename "$0")
echo "$name" >> "$DROID_TEST_LOG/calls"
: > "$DROID_TEST_LOG/$name.args"
for arg in "$@"; do printf '%s\\n' "$arg" >> "$DROID_TEST_LOG/$name.args"; done
if [ "$DROID_TEST_FAIL" = "$name" ]; then
  echo "boom from $name" >&2
  exit 3
fi
"""

_OUTPUT_AFTER_FLAG = """while [ $# -gt 0 ]; do
  if [ "$1" = "{flag}" ]; then : > "$2"; fi
  shift
done
"""

_SCRIPT_BODIES: dict[str, str] = {
    "dx": _OUTPUT_AFTER_FLAG.format(flag="--output")
    + 'if [ -n "$DROID_TEST_DX_SLEEP" ]; then sleep "$DROID_TEST_DX_SLEEP"; fi\n',
    "aapt": _OUTPUT_AFTER_FLAG.format(flag="-F"),
    "apkbuilder": ': > "$1"\n',
    "zipalign": ': > "$3"\n',
    "adb": "",
    "jarsigner": "",
    "javac": "",
    "java": "",
}


@dataclass(frozen=True)
class FakeSdk:
    root: Path
    bin_dir: Path
    log_dir: Path

    @property
    def env(self) -> dict[str, str]:
        return {"DROID_TEST_LOG": str(self.log_dir), "DROID_TEST_FAIL": ""}

    def calls(self) -> list[str]:
        calls_file = self.log_dir / "calls"
        if not calls_file.exists():
            return []
        return calls_file.read_text(encoding="utf-8").splitlines()

    def args(self, tool: str) -> list[str]:
        return (self.log_dir / f"{tool}.args").read_text(encoding="utf-8").splitlines()


def _write_script(path: Path, body: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(_SCRIPT_HEADER + body, encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


def write_jar(path: Path, members: dict[str, str] | None = None) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as archive:
        for name, text in (members or {"META-INF/MANIFEST.MF": "Manifest-Version: 1.0\n"}).items():
            archive.writestr(name, text)
    return path


@pytest.fixture
def fake_sdk(tmp_path: Path) -> FakeSdk:
    root = tmp_path / "sdk"
    bin_dir = tmp_path / "bin"
    log_dir = tmp_path / "tool-log"
    log_dir.mkdir()

    for tool in ("dx", "aapt", "adb"):
        _write_script(root / "platform-tools" / tool, _SCRIPT_BODIES[tool])
    for tool in ("apkbuilder", "zipalign"):
        _write_script(root / "tools" / tool, _SCRIPT_BODIES[tool])
    for tool in ("jarsigner", "javac", "java"):
        _write_script(bin_dir / tool, _SCRIPT_BODIES[tool])
    write_jar(root / "tools" / "support" / "annotations.jar")
    write_jar(root / "platforms" / "android-15" / "android.jar")
    return FakeSdk(root=root, bin_dir=bin_dir, log_dir=log_dir)


MANIFEST_XML = """<?xml version="1.0" encoding="utf-8"?>
<manifest xmlns:android="http://schemas.android.com/apk/res/android"
          package="org.example.app">
  <application android:label="App" />
</manifest>
"""


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    (root / "src" / "clojure" / "org" / "example").mkdir(parents=True)
    (root / "src" / "clojure" / "org" / "example" / "main.clj").write_text(
        "(ns org.example.main\n  (:gen-class))\n", encoding="utf-8"
    )
    (root / "src" / "java").mkdir(parents=True)
    (root / "res" / "values").mkdir(parents=True)
    (root / "res" / "values" / "strings.xml").write_text("<resources/>\n", encoding="utf-8")
    (root / "AndroidManifest.xml").write_text(MANIFEST_XML, encoding="utf-8")
    (root / "debug.keystore").write_bytes(b"keystore")
    return root


@pytest.fixture
def make_config(fake_sdk: FakeSdk, project_dir: Path) -> Any:
    """Factory returning a ``ProjectConfig`` wired to the fake SDK."""

    def _make(**overrides: Any) -> ProjectConfig:
        target = project_dir / "target" / "debug"
        config = ProjectConfig(
            project_root=project_dir,
            name="app",
            sdk_path=fake_sdk.root,
            target_version="15",
            source_paths=(project_dir / "src" / "clojure",),
            java_source_paths=(project_dir / "src" / "java",),
            compile_path=target / "classes",
            out_dex_path=target / "classes.dex",
            out_res_path=target / "res",
            out_res_pkg_path=target / "resources.ap_",
            out_apk_path=target / "app.apk",
            manifest_path=project_dir / "AndroidManifest.xml",
            res_path=project_dir / "res",
            assets_path=project_dir / "assets",
            keystore_path=project_dir / "debug.keystore",
            aot=AotMode.NONE,
            tools=ToolCommands(
                java=os.fspath(fake_sdk.bin_dir / "java"),
                javac=os.fspath(fake_sdk.bin_dir / "javac"),
                jarsigner=os.fspath(fake_sdk.bin_dir / "jarsigner"),
            ),
        )
        return replace(config, **overrides)

    return _make


class RecordingRunner:
    """Stand-in for ``ToolRunner`` that records argv instead of spawning."""

    def __init__(self) -> None:
        self.calls: list[tuple[str | None, list[str]]] = []
        self.cancellations: list[object] = []

    def run(self, argv: Any, *, tool: str | None = None, cancellation: Any = None) -> None:
        self.calls.append((tool, [os.fspath(item) for item in argv]))
        self.cancellations.append(cancellation)

    @property
    def tools(self) -> list[str | None]:
        return [tool for tool, _ in self.calls]


@pytest.fixture
def recording_runner() -> RecordingRunner:
    return RecordingRunner()


@pytest.fixture
def jar_writer() -> Any:
    return write_jar
