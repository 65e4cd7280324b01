"""Thin wrapper around the ``cipd`` CLI used by the delegated backend."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path

from .errors import ToolInvocationError
from .types import FetchConfig

logger = logging.getLogger(__name__)

CIPD_BINARY = "cipd"
DISABLE_HINT = "rerun with --no-cipd (or remove cipd from PATH) to use the direct download path"


@dataclass(frozen=True)
class CipdClientConfig:
    executable: Path
    timeout_seconds: float = 1800.0
    max_retries: int = 1
    backoff_seconds: float = 0.5
    log_level: str = "warning"


def _is_executable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


def find_cipd(config: FetchConfig) -> Path | None:
    """Locate cipd at a configured or known location, then on PATH."""
    if not config.use_cipd:
        return None
    candidates = [config.cipd_path] if config.cipd_path is not None else []
    candidates.extend(config.cipd_candidates)
    for candidate in candidates:
        if candidate is not None and _is_executable(candidate):
            return candidate
    found = shutil.which(CIPD_BINARY)
    return Path(found) if found else None


class CipdClient:
    def __init__(self, config: CipdClientConfig) -> None:
        self.config = config

    def ensure(self, manifest: str, root: Path, *, cwd: Path) -> None:
        command = [
            str(self.config.executable),
            "ensure",
            "-ensure-file",
            "-",
            "-root",
            str(root),
            "-log-level",
            self.config.log_level,
        ]
        self._run(command, cwd=cwd, stdin=manifest)

    def resolve_ensure_file(self, ensure_file: Path, *, cwd: Path) -> None:
        command = [
            str(self.config.executable),
            "ensure-file-resolve",
            "-ensure-file",
            str(ensure_file),
            "-log-level",
            self.config.log_level,
        ]
        self._run(command, cwd=cwd)

    def has_read_access(self, namespace: str) -> bool:
        command = [str(self.config.executable), "acl-check", namespace, "-reader"]
        try:
            self._run(command, retries=1)
        except ToolInvocationError as exc:
            logger.debug("no read access to %s: %s", namespace, exc)
            return False
        return True

    def _run(
        self,
        command: list[str],
        *,
        cwd: Path | None = None,
        stdin: str | None = None,
        retries: int | None = None,
    ) -> subprocess.CompletedProcess[str]:
        timeout = max(float(self.config.timeout_seconds), 1.0)
        attempts = max(int(retries if retries is not None else self.config.max_retries), 1)
        backoff = max(float(self.config.backoff_seconds), 0.0)

        result: subprocess.CompletedProcess[str] | None = None
        for attempt in range(1, attempts + 1):
            logger.debug("cipd command attempt=%s/%s cmd=%s cwd=%s", attempt, attempts, " ".join(command), cwd)
            try:
                result = subprocess.run(
                    command,
                    check=False,
                    capture_output=True,
                    text=True,
                    timeout=timeout,
                    cwd=str(cwd) if cwd is not None else None,
                    input=stdin,
                )
            except FileNotFoundError as exc:
                raise ToolInvocationError(
                    f"cipd not found at {command[0]}; {DISABLE_HINT}", command=command
                ) from exc
            except subprocess.TimeoutExpired as exc:
                raise ToolInvocationError(
                    f"cipd command timed out after {timeout:.1f}s; {DISABLE_HINT}", command=command
                ) from exc
            if result.returncode == 0:
                return result
            if attempt < attempts:
                time.sleep(min(backoff * attempt, 5.0))

        assert result is not None
        raise ToolInvocationError(
            _format_failure(command, result.returncode, result.stderr),
            command=command,
            returncode=result.returncode,
            stderr=result.stderr,
        )


def _format_failure(command: list[str], code: int, stderr: str | None) -> str:
    joined = " ".join(command)
    detail = (stderr or "").strip()
    if detail:
        return f"cipd command failed (exit={code}) cmd='{joined}' err='{detail}'; {DISABLE_HINT}"
    return f"cipd command failed (exit={code}) cmd='{joined}'; {DISABLE_HINT}"
