from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

import prebuilt_core.cipd as cipd_mod
from prebuilt_core.cipd import CipdClient, CipdClientConfig, find_cipd
from prebuilt_core.errors import ToolInvocationError
from prebuilt_core.types import FetchConfig, PlatformId


def _completed(stdout: str = "", stderr: str = "", returncode: int = 0) -> subprocess.CompletedProcess[str]:
    return subprocess.CompletedProcess(args=["cipd"], returncode=returncode, stdout=stdout, stderr=stderr)


def _client(tmp_path: Path) -> CipdClient:
    return CipdClient(CipdClientConfig(executable=tmp_path / "cipd", timeout_seconds=60, backoff_seconds=0))


def test_ensure_pipes_manifest_on_stdin(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    seen: list[tuple[list[str], dict]] = []

    def _fake_run(command, **kwargs):
        seen.append((list(command), kwargs))
        return _completed()

    monkeypatch.setattr(subprocess, "run", _fake_run)
    _client(tmp_path).ensure("$ResolvedVersions a\nfuchsia/x latest\n", tmp_path / "root", cwd=tmp_path)

    command, kwargs = seen[0]
    assert command[1:5] == ["ensure", "-ensure-file", "-", "-root"]
    assert command[5] == str(tmp_path / "root")
    assert kwargs["input"] == "$ResolvedVersions a\nfuchsia/x latest\n"
    assert kwargs["cwd"] == str(tmp_path)
    assert kwargs["timeout"] == 60.0


def test_ensure_failure_raises_with_disable_hint(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(subprocess, "run", lambda *args, **kwargs: _completed(stderr="auth required", returncode=1))
    with pytest.raises(ToolInvocationError, match="--no-cipd") as excinfo:
        _client(tmp_path).ensure("", tmp_path, cwd=tmp_path)
    assert excinfo.value.returncode == 1
    assert excinfo.value.stderr == "auth required"


def test_missing_binary_is_tool_error(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    def _fake_run(*args, **kwargs):
        raise FileNotFoundError("cipd")

    monkeypatch.setattr(subprocess, "run", _fake_run)
    with pytest.raises(ToolInvocationError, match="cipd not found"):
        _client(tmp_path).ensure("", tmp_path, cwd=tmp_path)


def test_timeout_is_tool_error(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    def _fake_run(command, **kwargs):
        raise subprocess.TimeoutExpired(command, kwargs["timeout"])

    monkeypatch.setattr(subprocess, "run", _fake_run)
    with pytest.raises(ToolInvocationError, match="timed out"):
        _client(tmp_path).ensure("", tmp_path, cwd=tmp_path)


def test_retries_until_success(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    results = [_completed(returncode=1), _completed()]
    monkeypatch.setattr(subprocess, "run", lambda *args, **kwargs: results.pop(0))
    client = CipdClient(CipdClientConfig(executable=tmp_path / "cipd", max_retries=2, backoff_seconds=0))
    client.ensure("", tmp_path, cwd=tmp_path)
    assert results == []


def test_resolve_ensure_file_command(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    calls: list[list[str]] = []

    def _fake_run(command, **kwargs):
        calls.append(list(command))
        return _completed()

    monkeypatch.setattr(subprocess, "run", _fake_run)
    ensure_file = tmp_path / "prebuilt.ensure"
    _client(tmp_path).resolve_ensure_file(ensure_file, cwd=tmp_path)
    assert calls[0][1:4] == ["ensure-file-resolve", "-ensure-file", str(ensure_file)]


def test_has_read_access_maps_exit_code(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(subprocess, "run", lambda *args, **kwargs: _completed())
    assert _client(tmp_path).has_read_access("fuchsia_internal") is True
    monkeypatch.setattr(subprocess, "run", lambda *args, **kwargs: _completed(returncode=1))
    assert _client(tmp_path).has_read_access("fuchsia_internal") is False


def _executable(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\n", encoding="utf-8")
    path.chmod(0o755)
    return path


def test_find_cipd_prefers_known_location(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(cipd_mod.shutil, "which", lambda name: "/usr/bin/cipd")
    candidate = _executable(tmp_path / ".jiri_root" / "bin" / "cipd")
    config = FetchConfig(download_root=tmp_path, platform=PlatformId.LINUX_AMD64, cipd_candidates=(candidate,))
    assert find_cipd(config) == candidate


def test_find_cipd_falls_back_to_path(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(cipd_mod.shutil, "which", lambda name: "/usr/bin/cipd")
    config = FetchConfig(
        download_root=tmp_path,
        platform=PlatformId.LINUX_AMD64,
        cipd_candidates=(tmp_path / "missing" / "cipd",),
    )
    assert find_cipd(config) == Path("/usr/bin/cipd")


def test_find_cipd_respects_disable(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(cipd_mod.shutil, "which", lambda name: "/usr/bin/cipd")
    candidate = _executable(tmp_path / "cipd")
    config = FetchConfig(
        download_root=tmp_path,
        platform=PlatformId.LINUX_AMD64,
        use_cipd=False,
        cipd_candidates=(candidate,),
    )
    assert find_cipd(config) is None
