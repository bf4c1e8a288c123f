"""Individual build stages. Each stage guards its inputs, runs one tool and returns its artifact."""

from droid_orchestrator.stages.apk import create_apk, install, sign_apk, zipalign_apk
from droid_orchestrator.stages.compile import ClojureCompiler, JvmClojureCompiler, compile_project
from droid_orchestrator.stages.dex import create_dex
from droid_orchestrator.stages.manifest import patched_manifest, with_internet_permission
from droid_orchestrator.stages.namespaces import namespace_of, namespaces_on_classpath
from droid_orchestrator.stages.resources import crunch_resources, package_resources

__all__ = [
    "ClojureCompiler",
    "JvmClojureCompiler",
    "compile_project",
    "create_apk",
    "create_dex",
    "crunch_resources",
    "install",
    "namespace_of",
    "namespaces_on_classpath",
    "package_resources",
    "patched_manifest",
    "sign_apk",
    "with_internet_permission",
    "zipalign_apk",
]
