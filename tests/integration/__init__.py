"""Integration tests: real subprocesses against a fake SDK tree of shell scripts."""
