"""Android SDK toolchain access: path resolution, classpath augmentation, process supervision."""

from droid_orchestrator.toolchain.classpath import (
    Resolver,
    augment,
    augment_classpath,
    project_classpath,
    resolve_dependencies,
    unique_jars,
)
from droid_orchestrator.toolchain.paths import (
    ToolchainLayout,
    append_suffix,
    ensure_paths,
    sdk_android_jar,
    sdk_annotations_jar,
)
from droid_orchestrator.toolchain.process import CancellationToken, ToolResult, ToolRunner

__all__ = [
    "CancellationToken",
    "Resolver",
    "ToolResult",
    "ToolRunner",
    "ToolchainLayout",
    "append_suffix",
    "augment",
    "augment_classpath",
    "ensure_paths",
    "project_classpath",
    "resolve_dependencies",
    "sdk_android_jar",
    "sdk_annotations_jar",
    "unique_jars",
]
