"""Backend selection: delegate to cipd when available, else fetch directly."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Protocol, Sequence

from .cipd import CipdClient, CipdClientConfig, find_cipd
from .errors import UsageError
from .fetcher import Fetcher
from .manifest import combine_ensure_files, read_records
from .resolver import resolve_all
from .stamps import StampStore
from .types import OUTCOME_CURRENT, OUTCOME_INSTALLED, FetchConfig, PackageOutcome, PackageRecord, RunReport

logger = logging.getLogger(__name__)


class Backend(Protocol):
    name: str

    def ensure(self, records: Sequence[PackageRecord]) -> RunReport: ...

    def resolve_versions(self) -> None: ...


class DirectBackend:
    name = "direct"

    def __init__(self, config: FetchConfig, fetcher: Fetcher | None = None) -> None:
        self.config = config
        self.fetcher = fetcher or Fetcher(config)

    def ensure(self, records: Sequence[PackageRecord]) -> RunReport:
        pairs = resolve_all(records, self.config.platform, namespace=self.config.namespace)
        return self.fetcher.run(pairs)

    def resolve_versions(self) -> None:
        raise UsageError("resolving versions requires cipd; it was not found or is disabled")


class DelegatedBackend:
    """Hands the whole manifest to cipd as one atomic operation."""

    name = "cipd"

    def __init__(self, config: FetchConfig, client: CipdClient, stamps: StampStore | None = None) -> None:
        self.config = config
        self.client = client
        self.stamps = stamps or StampStore(config.download_root)
        self._private_access: bool | None = None

    def has_private_access(self) -> bool:
        if not self.config.private_ensure_files:
            return False
        if self._private_access is None:
            self._private_access = self.client.has_read_access(self.config.private_namespace)
        return self._private_access

    def ensure_files(self) -> list[Path]:
        files = list(self.config.ensure_files)
        if self.has_private_access():
            files.extend(self.config.private_ensure_files)
        return files

    def _private_records(self) -> list[PackageRecord]:
        present = [path for path in self.config.private_versions_files if path.is_file()]
        return read_records(present, self.config.namespace)

    def _current_report(self, records: Sequence[PackageRecord]) -> RunReport | None:
        pairs = list(resolve_all(records, self.config.platform, namespace=self.config.namespace))
        if not all(self.stamps.is_current(identity, record.version) for record, identity in pairs):
            return None
        logger.debug("all %s packages current; skipping cipd ensure", len(pairs))
        return RunReport(
            backend=self.name,
            outcomes=tuple(
                PackageOutcome(identity=identity, version=record.version, status=OUTCOME_CURRENT)
                for record, identity in pairs
            ),
        )

    def ensure(self, records: Sequence[PackageRecord]) -> RunReport:
        # Stamps are checked before acl-check so an up-to-date tree needs no cipd call.
        known = [*records, *self._private_records()] if self.config.private_ensure_files else list(records)
        report = self._current_report(known)
        if report is not None:
            return report
        if self.has_private_access():
            records = [*records, *read_records(self.config.private_versions_files, self.config.namespace)]
        report = self._current_report(records)
        if report is not None:
            return report
        pairs = list(resolve_all(records, self.config.platform, namespace=self.config.namespace))

        manifest = combine_ensure_files(self.ensure_files())
        self.config.download_root.mkdir(parents=True, exist_ok=True)
        self.client.ensure(manifest, self.config.download_root, cwd=self.config.versions_dir)

        # cipd reports success for the batch only; every package is stamped as installed.
        outcomes: list[PackageOutcome] = []
        for record, identity in pairs:
            self.stamps.write(identity, record.version)
            outcomes.append(PackageOutcome(identity=identity, version=record.version, status=OUTCOME_INSTALLED))
        return RunReport(backend=self.name, outcomes=tuple(outcomes))

    def resolve_versions(self) -> None:
        for ensure_file in self.ensure_files():
            logger.info("resolving versions for %s", ensure_file)
            self.client.resolve_ensure_file(ensure_file, cwd=self.config.versions_dir)


ClientFactory = Callable[[CipdClientConfig], CipdClient]


def select_backend(
    config: FetchConfig,
    *,
    client_factory: ClientFactory = CipdClient,
    fetcher: Fetcher | None = None,
) -> Backend:
    executable = find_cipd(config)
    if executable is None:
        if config.use_cipd:
            logger.info("cipd not found; using direct downloads")
        else:
            logger.info("cipd disabled; using direct downloads")
        return DirectBackend(config, fetcher)
    logger.info("using cipd at %s", executable)
    client = client_factory(
        CipdClientConfig(executable=executable, timeout_seconds=config.tool_timeout_seconds)
    )
    return DelegatedBackend(config, client)
