"""Cancellation of a running dex conversion through the pipeline token."""

from __future__ import annotations

import threading
import time
from pathlib import Path

import pytest

from droid_orchestrator.errors import BuildCancelledError
from droid_orchestrator.pipeline import Pipeline
from droid_orchestrator.toolchain.process import CancellationToken, ToolRunner

pytestmark = pytest.mark.integration


def _wait_for_call(fake_sdk, tool: str, timeout: float = 10.0) -> None:
    deadline = time.monotonic() + timeout
    while tool not in fake_sdk.calls() and time.monotonic() < deadline:
        time.sleep(0.02)


def test_cancel_kills_dx_and_discards_partial_output(
    make_config, fake_sdk, project_dir: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    for name, value in fake_sdk.env.items():
        monkeypatch.setenv(name, value)
    monkeypatch.setenv("DROID_TEST_DX_SLEEP", "30")
    config = make_config()
    config.compile_path.mkdir(parents=True)
    token = CancellationToken()
    pipeline = Pipeline(config, runner=ToolRunner(cwd=project_dir), cancellation=token)

    def _cancel_when_dx_runs() -> None:
        _wait_for_call(fake_sdk, "dx")
        time.sleep(0.2)
        token.cancel()

    canceller = threading.Thread(target=_cancel_when_dx_runs, daemon=True)
    canceller.start()
    started = time.monotonic()
    with pytest.raises(BuildCancelledError):
        pipeline.run("create-dex", "apk")
    canceller.join(timeout=5)

    assert time.monotonic() - started < 20
    assert fake_sdk.calls() == ["dx"]
    assert not config.out_dex_path.exists()
    assert token.active_processes == ()


def test_cancelled_token_stops_before_next_stage(
    make_config, fake_sdk, monkeypatch: pytest.MonkeyPatch
) -> None:
    for name, value in fake_sdk.env.items():
        monkeypatch.setenv(name, value)
    token = CancellationToken()
    token.cancel()

    with pytest.raises(BuildCancelledError, match="build cancelled"):
        Pipeline(make_config(), runner=ToolRunner(), cancellation=token).run("crunch-resources")

    assert fake_sdk.calls() == []
