"""Build the immutable run configuration from TOML, environment and flags."""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Mapping

from .errors import UsageError
from .platform import detect_platform, parse_platform
from .types import (
    DEFAULT_NAMESPACE,
    DEFAULT_PRIVATE_NAMESPACE,
    DEFAULT_URL_PREFIX,
    FetchConfig,
    Mode,
    PlatformId,
)

CONFIG_FILENAME = "prebuilt.toml"
ENV_CONFIG = "PREBUILT_CONFIG"
ENV_DOWNLOAD_ROOT = "PREBUILT_DOWNLOAD_ROOT"
ENV_NO_CIPD = "PREBUILT_NO_CIPD"
ENV_URL_PREFIX = "PREBUILT_URL_PREFIX"

DEFAULT_DOWNLOAD_DIR = "prebuilt"
DEFAULT_VERSIONS_FILE = "prebuilt.versions"
DEFAULT_ENSURE_FILE = "prebuilt.ensure"
DEFAULT_CIPD_CANDIDATES = (".jiri_root/bin/cipd", "buildtools/cipd")


def _to_optional_bool(value: Any) -> bool | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"1", "true", "yes", "on"}:
            return True
        if normalized in {"0", "false", "no", "off"}:
            return False
    return bool(value)


def _string_or_none(value: Any) -> str | None:
    if value is None:
        return None
    data = str(value).strip()
    return data if data else None


def _path_list(value: Any, base: Path) -> tuple[Path, ...] | None:
    if value is None:
        return None
    items = [value] if isinstance(value, str) else list(value)
    return tuple(_resolve_path(str(item), base) for item in items if str(item).strip())


def _resolve_path(value: str, base: Path) -> Path:
    path = Path(value).expanduser()
    return path if path.is_absolute() else base / path


def _table(payload: Mapping[str, Any], name: str) -> dict[str, Any]:
    section = payload.get(name)
    return dict(section) if isinstance(section, dict) else {}


def find_config_file(explicit: str | None, environ: Mapping[str, str], cwd: Path) -> Path | None:
    if explicit:
        path = _resolve_path(explicit, cwd)
        if not path.is_file():
            raise UsageError(f"config file not found: {path}")
        return path
    from_env = _string_or_none(environ.get(ENV_CONFIG))
    if from_env:
        return _resolve_path(from_env, cwd)
    default = cwd / CONFIG_FILENAME
    return default if default.is_file() else None


def load_config_file(path: Path | None) -> dict[str, Any]:
    if path is None or not path.exists():
        return {}
    try:
        payload = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError):
        return {}
    return payload if isinstance(payload, dict) else {}


def load_config(
    argv: Any,
    *,
    environ: Mapping[str, str] | None = None,
    cwd: Path | None = None,
    platform: PlatformId | None = None,
) -> FetchConfig:
    """Merge defaults, the TOML file, environment and flags, lowest first."""
    environ = os.environ if environ is None else environ
    cwd = (cwd or Path.cwd()).resolve()

    config_path = find_config_file(getattr(argv, "config", None), environ, cwd)
    payload = load_config_file(config_path)
    base = config_path.parent if config_path is not None else cwd
    fetch = _table(payload, "fetch")
    cipd = _table(payload, "cipd")

    download_root = _resolve_path(str(fetch.get("download_root") or DEFAULT_DOWNLOAD_DIR), base)
    env_root = _string_or_none(environ.get(ENV_DOWNLOAD_ROOT))
    if env_root:
        download_root = _resolve_path(env_root, cwd)
    flag_root = _string_or_none(getattr(argv, "download_root", None))
    if flag_root:
        download_root = _resolve_path(flag_root, cwd)

    versions_files = _path_list(fetch.get("versions_files"), base) or (base / DEFAULT_VERSIONS_FILE,)
    flag_versions = _path_list(getattr(argv, "versions", None) or None, cwd)
    if flag_versions:
        versions_files = flag_versions

    ensure_files = _path_list(fetch.get("ensure_files"), base) or (base / DEFAULT_ENSURE_FILE,)
    flag_ensure = _path_list(getattr(argv, "ensure", None) or None, cwd)
    if flag_ensure:
        ensure_files = flag_ensure

    url_prefix = str(fetch.get("url_prefix") or DEFAULT_URL_PREFIX)
    url_prefix = _string_or_none(environ.get(ENV_URL_PREFIX)) or url_prefix

    use_cipd = _to_optional_bool(cipd.get("enabled"))
    use_cipd = True if use_cipd is None else use_cipd
    if _to_optional_bool(environ.get(ENV_NO_CIPD)):
        use_cipd = False
    if getattr(argv, "no_cipd", False):
        use_cipd = False

    platform_override = _string_or_none(fetch.get("platform"))
    if platform is None:
        platform = parse_platform(platform_override) if platform_override else detect_platform()

    cipd_path = _string_or_none(cipd.get("path"))
    build_config = _string_or_none(fetch.get("build_config"))

    return FetchConfig(
        download_root=download_root,
        platform=platform,
        mode=getattr(argv, "mode", None) or Mode.UPDATE,
        versions_files=versions_files,
        ensure_files=ensure_files,
        private_versions_files=_path_list(fetch.get("private_versions_files"), base) or (),
        private_ensure_files=_path_list(fetch.get("private_ensure_files"), base) or (),
        url_prefix=url_prefix,
        namespace=str(fetch.get("namespace") or DEFAULT_NAMESPACE),
        private_namespace=str(cipd.get("private_namespace") or DEFAULT_PRIVATE_NAMESPACE),
        use_cipd=use_cipd,
        cipd_path=_resolve_path(cipd_path, base) if cipd_path else None,
        cipd_candidates=_path_list(cipd.get("candidates"), base)
        or tuple(base / item for item in DEFAULT_CIPD_CANDIDATES),
        timeout_seconds=float(fetch.get("timeout_seconds", 30.0)),
        read_timeout_seconds=float(fetch.get("read_timeout_seconds", 300.0)),
        tool_timeout_seconds=float(cipd.get("timeout_seconds", 1800.0)),
        chunk_size=int(fetch.get("chunk_size", 1024 * 1024)),
        build_config_path=_resolve_path(build_config, base) if build_config else None,
    )
