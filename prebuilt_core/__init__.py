"""Fetch, verify and track pinned prebuilt packages."""

from .backends import Backend, DelegatedBackend, DirectBackend, select_backend
from .cipd import CipdClient, CipdClientConfig, find_cipd
from .config import load_config
from .errors import (
    DownloadError,
    IntegrityError,
    ManifestError,
    PackageError,
    PlatformUnsupportedError,
    PrebuiltError,
    ToolInvocationError,
    UnpackError,
    UsageError,
)
from .fetcher import Fetcher
from .integrity import verify_file
from .manifest import combine_ensure_files, iter_records, read_records
from .resolver import resolve_all, resolve_package
from .stamps import StampStore
from .types import (
    FetchConfig,
    Mode,
    PackageIdentity,
    PackageOutcome,
    PackageRecord,
    PlatformId,
    RunReport,
)

__all__ = [
    "Backend",
    "DelegatedBackend",
    "DirectBackend",
    "select_backend",
    "CipdClient",
    "CipdClientConfig",
    "find_cipd",
    "load_config",
    "PrebuiltError",
    "UsageError",
    "ManifestError",
    "PlatformUnsupportedError",
    "PackageError",
    "DownloadError",
    "IntegrityError",
    "UnpackError",
    "ToolInvocationError",
    "Fetcher",
    "verify_file",
    "iter_records",
    "read_records",
    "combine_ensure_files",
    "resolve_package",
    "resolve_all",
    "StampStore",
    "FetchConfig",
    "Mode",
    "PackageIdentity",
    "PackageOutcome",
    "PackageRecord",
    "PlatformId",
    "RunReport",
]
