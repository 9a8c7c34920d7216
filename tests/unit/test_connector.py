from __future__ import annotations

from pathlib import Path

from openvr_startup.vr.connector import Connector
from openvr_startup.vr.runtime import FakeVrRuntime


def _connector(runtime: FakeVrRuntime, tmp_path: Path) -> Connector:
    return Connector(runtime, app_key="test.app", manifest_path=tmp_path / "app.vrmanifest")


def test_failure_is_retryable(tmp_path: Path) -> None:
    runtime = FakeVrRuntime(fail_attempts=2)
    connector = _connector(runtime, tmp_path)

    first = connector.try_connect()
    assert first.ok is False
    assert first.reason == "InitError_Init_NoServerForBackgroundApp"
    assert connector.try_connect().ok is False
    assert connector.try_connect().ok is True
    assert runtime.init_calls == 3


def test_registers_manifest_and_auto_launch(tmp_path: Path) -> None:
    runtime = FakeVrRuntime()
    connector = _connector(runtime, tmp_path)

    assert connector.try_connect().ok is True
    assert runtime.manifests == [(tmp_path / "app.vrmanifest").resolve()]
    assert runtime.auto_launch == {"test.app": True}


def test_skips_registration_when_already_installed(tmp_path: Path) -> None:
    runtime = FakeVrRuntime(registered=True)

    assert _connector(runtime, tmp_path).try_connect().ok is True
    assert runtime.manifests == []
    assert runtime.auto_launch == {}


def test_partial_registration_still_connects(tmp_path: Path) -> None:
    runtime = FakeVrRuntime(fail_manifest=True)

    assert _connector(runtime, tmp_path).try_connect().ok is True
    # Auto-launch is still attempted after the manifest step failed.
    assert runtime.auto_launch == {"test.app": True}

    runtime = FakeVrRuntime(fail_manifest=True, fail_auto_launch=True)
    assert _connector(runtime, tmp_path).try_connect().ok is True


def test_release_only_after_connect(tmp_path: Path) -> None:
    runtime = FakeVrRuntime(fail_attempts=1)
    connector = _connector(runtime, tmp_path)

    connector.try_connect()
    assert connector.release() is False
    assert runtime.shutdowns == 0

    connector.try_connect()
    assert connector.release() is True
    assert runtime.shutdowns == 1
