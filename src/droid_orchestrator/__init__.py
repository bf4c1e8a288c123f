"""
droid-orchestrator: Android APK build pipeline driver.

Drives the external Android toolchain (javac, the Clojure compiler, dx,
aapt, apkbuilder, jarsigner, zipalign, adb) through a strict sequence of
stages, from compiled sources to an APK installed on a device.

Importing the package has no side effects: no config loading and no logging
setup. The CLI entrypoint lives in ``droid_orchestrator.main``.
"""

__version__ = "0.3.0"

__all__ = ["__version__"]
