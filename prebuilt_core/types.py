"""Prebuilt fetch datatypes and configuration."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

DEFAULT_URL_PREFIX = "https://chrome-infra-packages.appspot.com/dl/fuchsia"
DEFAULT_NAMESPACE = "fuchsia/"
DEFAULT_PRIVATE_NAMESPACE = "fuchsia_internal"
ARCHIVE_SUFFIX = ".zip"
STAMP_SUFFIX = ".stamp"


class PlatformId(str, Enum):
    MAC_AMD64 = "mac-amd64"
    LINUX_AMD64 = "linux-amd64"
    LINUX_ARM64 = "linux-arm64"

    def __str__(self) -> str:
        return self.value


class Mode(str, Enum):
    UPDATE = "update"
    VERIFY = "verify"
    LIST = "list"
    RESOLVE = "resolve"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class PackageRecord:
    package: str
    tag: str
    version: str


@dataclass(frozen=True)
class PackageIdentity:
    logical_name: str
    archive_name: str
    single_file: bool
    suffix: str

    @property
    def stem(self) -> str:
        if self.archive_name.endswith(ARCHIVE_SUFFIX):
            return self.archive_name[: -len(ARCHIVE_SUFFIX)]
        return self.archive_name

    @property
    def base_name(self) -> str:
        return posixpath.basename(self.logical_name)

    @property
    def display_name(self) -> str:
        return f"{self.logical_name}{self.suffix}"

    def url(self, prefix: str, version: str) -> str:
        return f"{prefix.rstrip('/')}/{self.logical_name}{self.suffix}/+/{version}"


@dataclass(frozen=True)
class FetchConfig:
    """Process-wide settings, built once at startup and never mutated."""

    download_root: Path
    platform: PlatformId
    mode: Mode = Mode.UPDATE
    versions_files: tuple[Path, ...] = ()
    ensure_files: tuple[Path, ...] = ()
    private_versions_files: tuple[Path, ...] = ()
    private_ensure_files: tuple[Path, ...] = ()
    url_prefix: str = DEFAULT_URL_PREFIX
    namespace: str = DEFAULT_NAMESPACE
    private_namespace: str = DEFAULT_PRIVATE_NAMESPACE
    use_cipd: bool = True
    cipd_path: Path | None = None
    cipd_candidates: tuple[Path, ...] = ()
    timeout_seconds: float = 30.0
    read_timeout_seconds: float = 300.0
    tool_timeout_seconds: float = 1800.0
    chunk_size: int = 1024 * 1024
    build_config_path: Path | None = None

    @property
    def versions_dir(self) -> Path:
        if self.versions_files:
            return self.versions_files[0].parent
        return Path.cwd()


OUTCOME_INSTALLED = "installed"
OUTCOME_CURRENT = "current"
OUTCOME_FAILED = "failed"


@dataclass(frozen=True)
class PackageOutcome:
    identity: PackageIdentity
    version: str
    status: str
    detail: str | None = None
    url: str | None = None

    @property
    def failed(self) -> bool:
        return self.status == OUTCOME_FAILED


@dataclass(frozen=True)
class RunReport:
    backend: str
    outcomes: tuple[PackageOutcome, ...] = field(default_factory=tuple)

    @property
    def failures(self) -> tuple[PackageOutcome, ...]:
        return tuple(item for item in self.outcomes if item.failed)

    @property
    def ok(self) -> bool:
        return not self.failures

    def count(self, status: str) -> int:
        return sum(1 for item in self.outcomes if item.status == status)
