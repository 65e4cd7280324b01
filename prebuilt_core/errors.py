"""Error taxonomy for prebuilt fetch operations."""

from __future__ import annotations


class PrebuiltError(RuntimeError):
    """Base error for all prebuilt fetch failures."""


class UsageError(PrebuiltError):
    """Bad invocation or unusable input; the run stops immediately."""


class ManifestError(UsageError):
    """A manifest or ensure file could not be read."""


class PlatformUnsupportedError(UsageError):
    """The host OS/architecture pair has no known platform id."""


class PackageError(PrebuiltError):
    """Failure scoped to a single package; the run continues."""

    def __init__(self, message: str, *, package: str = "", url: str | None = None) -> None:
        super().__init__(message)
        self.package = package
        self.url = url


class DownloadError(PackageError):
    pass


class IntegrityError(PackageError):
    def __init__(
        self,
        message: str,
        *,
        package: str = "",
        url: str | None = None,
        path: str | None = None,
        declared: str | None = None,
        computed: str | None = None,
    ) -> None:
        super().__init__(message, package=package, url=url)
        self.path = path
        self.declared = declared
        self.computed = computed


class UnpackError(PackageError):
    pass


class ToolInvocationError(PrebuiltError):
    """The delegated tool failed; aborts the whole run."""

    def __init__(self, message: str, *, command: list[str] | None = None, returncode: int | None = None,
                 stderr: str | None = None) -> None:
        super().__init__(message)
        self.command = list(command or [])
        self.returncode = returncode
        self.stderr = stderr
