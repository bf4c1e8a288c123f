from __future__ import annotations

from pathlib import PurePath

import pytest
from hypothesis import given
from hypothesis import strategies as st

from droid_orchestrator.config.project import ProjectConfig
from droid_orchestrator.errors import MissingPathError, ToolchainNotFoundError
from droid_orchestrator.toolchain.classpath import (
    augment,
    augment_classpath,
    project_classpath,
    resolve_dependencies,
    unique_jars,
)

_names = st.sampled_from(["a.jar", "b.jar", "c.jar", "classes", "resources", "d.jar"])
_dirs = st.sampled_from(["/repo/one", "/repo/two", "/m2/x"])
_entries = st.lists(st.builds(lambda d, n: f"{d}/{n}", _dirs, _names), max_size=20)


def test_unique_jars_keeps_first_seen_per_base_name() -> None:
    assert unique_jars(["/a/libA.jar", "/b/libB.jar", "/c/libA.jar"]) == [
        "/a/libA.jar",
        "/b/libB.jar",
    ]


def test_augment_classpath_appends_platform_archives(make_config, fake_sdk) -> None:
    config = make_config()

    result = augment_classpath(["/x/classes", "/m2/libA.jar", "/m3/libA.jar"], config)

    assert result == [
        "/m2/libA.jar",
        "/x/classes",
        str(fake_sdk.root / "platforms" / "android-15" / "android.jar"),
        str(fake_sdk.root / "tools" / "support" / "annotations.jar"),
    ]


@pytest.fixture(scope="module")
def property_config(tmp_path_factory: pytest.TempPathFactory) -> ProjectConfig:
    root = tmp_path_factory.mktemp("property-sdk")
    (root / "platforms" / "android-15").mkdir(parents=True)
    (root / "platforms" / "android-15" / "android.jar").touch()
    return ProjectConfig(
        project_root=root,
        name="app",
        sdk_path=root,
        target_version="15",
        source_paths=(),
        java_source_paths=(),
        compile_path=root / "classes",
        out_dex_path=root / "classes.dex",
        out_res_path=root / "out-res",
        out_res_pkg_path=root / "resources.ap_",
        out_apk_path=root / "app.apk",
        manifest_path=root / "AndroidManifest.xml",
        res_path=root / "res",
        assets_path=root / "assets",
        keystore_path=root / "debug.keystore",
    )


@given(entries=_entries)
def test_augmented_classpath_has_unique_archives_and_platform_tail(
    property_config: ProjectConfig, entries: list[str]
) -> None:
    result = augment_classpath(entries, property_config)

    body, tail = result[:-2], result[-2:]
    archives = [entry for entry in body if entry.endswith(".jar")]
    input_archives = [entry for entry in entries if entry.endswith(".jar")]
    first_seen: dict[str, str] = {}
    for entry in input_archives:
        first_seen.setdefault(PurePath(entry).name, entry)

    assert [PurePath(entry).name for entry in tail] == ["android.jar", "annotations.jar"]
    assert archives == list(first_seen.values())
    assert [entry for entry in body if not entry.endswith(".jar")] == [
        entry for entry in entries if not entry.endswith(".jar")
    ]
    assert body == archives + [entry for entry in body if not entry.endswith(".jar")]


def test_augment_wraps_resolver_without_changing_call_shape(make_config, fake_sdk) -> None:
    config = make_config()
    calls: list[object] = []

    def base(project):
        calls.append(project)
        return ["/deps/libA.jar", "/deps/libB.jar", "/other/libA.jar"]

    resolver = augment(base, config)
    result = resolver(config)

    assert calls == [config]
    assert resolver.__wrapped__ is base
    assert result[:2] == ["/deps/libA.jar", "/deps/libB.jar"]
    assert [PurePath(entry).name for entry in result[2:]] == ["android.jar", "annotations.jar"]


def test_augment_surfaces_missing_platform(make_config) -> None:
    resolver = augment(lambda project: [], make_config(target_version="42"))

    with pytest.raises(ToolchainNotFoundError):
        resolver(make_config())


def test_resolve_dependencies_expands_globs_sorted(make_config, project_dir, jar_writer) -> None:
    jar_writer(project_dir / "libs" / "zeta.jar")
    jar_writer(project_dir / "libs" / "alpha.jar")
    config = make_config(dependencies=("libs/*.jar", "libs/nothing-*.jar"))

    assert resolve_dependencies(config) == [
        (project_dir / "libs" / "alpha.jar").as_posix(),
        (project_dir / "libs" / "zeta.jar").as_posix(),
    ]


def test_resolve_dependencies_rejects_missing_literal(make_config, project_dir) -> None:
    config = make_config(dependencies=("libs/missing.jar",))

    with pytest.raises(MissingPathError, match="dependency"):
        resolve_dependencies(config)


def test_project_classpath_orders_sources_before_dependencies(
    make_config, project_dir, jar_writer
) -> None:
    jar_writer(project_dir / "libs" / "dep.jar")
    config = make_config(dependencies=("libs/dep.jar",))

    assert project_classpath(config) == [
        (project_dir / "src" / "clojure").as_posix(),
        (project_dir / "src" / "java").as_posix(),
        config.compile_path.as_posix(),
        (project_dir / "libs" / "dep.jar").as_posix(),
    ]
