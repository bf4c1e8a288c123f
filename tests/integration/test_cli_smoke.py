"""
droid-orchestrator: CLI subprocess smoke contracts

Purpose
- Run ``python -m droid_orchestrator`` against a fake SDK made of recording shell scripts.
- Verify exit codes, tool ordering and argument vectors, manifest restoration and
  cancellation of a running dex conversion by SIGINT.
"""

from __future__ import annotations

import json
import os
import signal
import subprocess
import sys
import time
from pathlib import Path

import pytest

pytestmark = pytest.mark.integration

PROJECT_ROOT = Path(__file__).resolve().parents[2]
SRC_PATH = PROJECT_ROOT / "src"


def _cli_env(fake_sdk, **extra: str) -> dict[str, str]:
    env = os.environ.copy()
    existing_pythonpath = env.get("PYTHONPATH")
    src_pythonpath = str(SRC_PATH)
    env["PYTHONPATH"] = (
        src_pythonpath if not existing_pythonpath else f"{src_pythonpath}:{existing_pythonpath}"
    )
    env.update(fake_sdk.env)
    env.update(extra)
    return env


def _run_cli(
    project_dir: Path, env: dict[str, str], *args: str
) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        [sys.executable, "-m", "droid_orchestrator", *args],
        cwd=project_dir,
        text=True,
        capture_output=True,
        check=False,
        env=env,
    )


def _write_droid_toml(project_dir: Path, fake_sdk, *, aot: str = "none") -> Path:
    config_path = project_dir / "droid.toml"
    config_path.write_text(
        f"""
[project]
name = "hello"
aot = "{aot}"
dependencies = ["libs/one/libA.jar", "libs/one/libB.jar", "libs/two/libA.jar"]

[android]
sdk_path = "{fake_sdk.root.as_posix()}"
target_version = 15
keystore_path = "debug.keystore"

[tools]
java = "{(fake_sdk.bin_dir / 'java').as_posix()}"
javac = "{(fake_sdk.bin_dir / 'javac').as_posix()}"
jarsigner = "{(fake_sdk.bin_dir / 'jarsigner').as_posix()}"
""".strip(),
        encoding="utf-8",
    )
    return config_path


@pytest.fixture
def configured_project(project_dir: Path, fake_sdk, jar_writer) -> Path:
    jar_writer(project_dir / "libs" / "one" / "libA.jar", {"liba/core.clj": "(ns liba.core)"})
    jar_writer(project_dir / "libs" / "one" / "libB.jar", {"libb/core.clj": "(ns libb.core)"})
    jar_writer(project_dir / "libs" / "two" / "libA.jar", {"liba/core.clj": "(ns liba.core)"})
    _write_droid_toml(project_dir, fake_sdk)
    return project_dir


def test_full_build_runs_every_tool_in_order(configured_project: Path, fake_sdk) -> None:
    manifest_before = (configured_project / "AndroidManifest.xml").read_bytes()

    completed = _run_cli(configured_project, _cli_env(fake_sdk), "build", "apk", "install")

    assert completed.returncode == 0, completed.stderr
    assert fake_sdk.calls() == [
        "dx",
        "aapt",
        "aapt",
        "apkbuilder",
        "jarsigner",
        "zipalign",
        "adb",
    ]
    dx_args = fake_sdk.args("dx")
    assert [Path(arg).name for arg in dx_args if arg.endswith(".jar")] == [
        "annotations.jar",
        "libA.jar",
        "libB.jar",
        "android.jar",
    ]
    assert any(arg.endswith("libs/one/libA.jar") for arg in dx_args)
    assert not any(arg.endswith("libs/two/libA.jar") for arg in dx_args)
    assert fake_sdk.args("adb")[-1].endswith("target/debug/app-debug.apk")
    assert (configured_project / "target" / "debug" / "app-debug.apk").exists()
    assert (configured_project / "AndroidManifest.xml").read_bytes() == manifest_before
    assert not (configured_project / "AndroidManifest.xml.backup").exists()
    assert "OK  install" in completed.stdout
    assert list((configured_project / "target" / "logs").glob("*/build.jsonl"))


def test_forced_aot_compiles_namespaces_from_dependencies(
    project_dir: Path, fake_sdk, jar_writer
) -> None:
    jar_writer(project_dir / "libs" / "one" / "libA.jar", {"liba/core.clj": "(ns liba.core)"})
    jar_writer(project_dir / "libs" / "one" / "libB.jar", {"libb/core.clj": "(ns libb.core)"})
    jar_writer(project_dir / "libs" / "two" / "libA.jar", {"liba/core.clj": "(ns liba.core)"})
    _write_droid_toml(project_dir, fake_sdk, aot="all-with-unused")
    env = _cli_env(fake_sdk, DROID_PROJECT_AOT_EXCLUDE_NS="libb.core")

    first = _run_cli(project_dir, env, "compile")
    second = _run_cli(project_dir, env, "compile")

    assert first.returncode == 0, first.stderr
    assert second.returncode == 0, second.stderr
    assert fake_sdk.calls() == ["java"]
    java_args = fake_sdk.args("java")
    assert java_args[-2] == "-e"
    assert java_args[-1] == (
        "(doseq [namespace '[liba.core org.example.main]] (compile namespace))"
    )


def test_tool_failure_stops_pipeline_with_exit_code_1(configured_project: Path, fake_sdk) -> None:
    env = _cli_env(fake_sdk, DROID_TEST_FAIL="zipalign")

    completed = _run_cli(configured_project, env, "build", "apk", "install")

    assert completed.returncode == 1
    assert "zipalign failed with exit code 3: boom from zipalign" in completed.stderr
    assert fake_sdk.calls()[-1] == "zipalign"
    assert "adb" not in fake_sdk.calls()


def test_package_failure_still_restores_manifest(configured_project: Path, fake_sdk) -> None:
    manifest_before = (configured_project / "AndroidManifest.xml").read_bytes()

    completed = _run_cli(
        configured_project, _cli_env(fake_sdk, DROID_TEST_FAIL="aapt"), "package-resources"
    )

    assert completed.returncode == 1
    assert (configured_project / "AndroidManifest.xml").read_bytes() == manifest_before
    assert not (configured_project / "AndroidManifest.xml.backup").exists()


def test_missing_input_exits_with_missing_path_code(configured_project: Path, fake_sdk) -> None:
    completed = _run_cli(configured_project, _cli_env(fake_sdk), "install")

    assert completed.returncode == 3
    assert "app-debug.apk" in completed.stderr
    assert fake_sdk.calls() == []


def test_missing_sdk_exits_before_any_tool_runs(configured_project: Path, fake_sdk) -> None:
    missing_sdk = configured_project / "no-sdk"
    env = _cli_env(fake_sdk, DROID_ANDROID_SDK_PATH=missing_sdk.as_posix())

    completed = _run_cli(configured_project, env, "build")

    assert completed.returncode == 3
    assert "no-sdk" in completed.stderr
    assert fake_sdk.calls() == []


def test_invalid_config_exits_with_config_code(configured_project: Path, fake_sdk) -> None:
    completed = _run_cli(
        configured_project, _cli_env(fake_sdk, DROID_PROJECT_AOT="sometimes"), "build"
    )

    assert completed.returncode == 2
    assert "project.aot" in completed.stderr


def test_tasks_and_config_commands(configured_project: Path, fake_sdk) -> None:
    tasks = _run_cli(configured_project, _cli_env(fake_sdk), "tasks")
    config = _run_cli(configured_project, _cli_env(fake_sdk), "config")
    mixed = _run_cli(configured_project, _cli_env(fake_sdk), "tasks", "build")

    assert tasks.returncode == 0
    assert "zipalign-apk" in tasks.stdout
    assert "compile -> create-dex" in tasks.stdout
    assert config.returncode == 0
    assert json.loads(config.stdout)["project"]["name"] == "hello"
    assert mixed.returncode == 2


def test_sigint_terminates_running_dex_and_exits_130(configured_project: Path, fake_sdk) -> None:
    (configured_project / "target" / "debug" / "classes").mkdir(parents=True)
    env = _cli_env(fake_sdk, DROID_TEST_DX_SLEEP="30")
    process = subprocess.Popen(
        [sys.executable, "-m", "droid_orchestrator", "create-dex", "crunch-resources"],
        cwd=configured_project,
        text=True,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        env=env,
    )
    try:
        deadline = time.monotonic() + 20
        while "dx" not in fake_sdk.calls() and time.monotonic() < deadline:
            time.sleep(0.05)
        time.sleep(0.3)
        process.send_signal(signal.SIGINT)
        _, stderr = process.communicate(timeout=20)
    finally:
        if process.poll() is None:
            process.kill()
            process.wait()

    assert process.returncode == 130, stderr
    assert "aapt" not in fake_sdk.calls()
    assert not (configured_project / "target" / "debug" / "classes.dex").exists()
