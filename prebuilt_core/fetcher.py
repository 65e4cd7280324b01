"""Direct download, verification, unpack and stamping of prebuilt packages."""

from __future__ import annotations

import logging
import os
import shutil
import stat
import zipfile
from pathlib import Path
from typing import Iterable

from .download import ArchiveDownloader, part_path_for
from .errors import IntegrityError, PackageError, UnpackError
from .integrity import verify_file
from .stamps import StampStore
from .types import (
    OUTCOME_CURRENT,
    OUTCOME_FAILED,
    OUTCOME_INSTALLED,
    FetchConfig,
    PackageIdentity,
    PackageOutcome,
    PackageRecord,
    RunReport,
)

logger = logging.getLogger(__name__)


def safe_member_path(base_dir: Path, member: str) -> Path:
    root = base_dir.resolve()
    target = (root / member).resolve()
    if target != root and root not in target.parents:
        raise UnpackError(f"path traversal blocked for archive member: {member}")
    return target


def _apply_unix_mode(info: zipfile.ZipInfo, target: Path) -> None:
    mode = (info.external_attr >> 16) & 0o777
    if mode:
        os.chmod(target, mode)
    elif not info.is_dir():
        current = target.stat().st_mode
        os.chmod(target, current | stat.S_IRUSR | stat.S_IWUSR)


def extract_single(archive: Path, entry: str, dest_dir: Path) -> Path:
    dest_dir.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(archive) as zf:
        try:
            info = zf.getinfo(entry)
        except KeyError as exc:
            raise UnpackError(f"archive {archive.name} has no entry '{entry}'") from exc
        target = safe_member_path(dest_dir, entry)
        tmp = target.with_name(f".{target.name}.tmp")
        with zf.open(info) as src, tmp.open("wb") as out:
            shutil.copyfileobj(src, out)
        _apply_unix_mode(info, tmp)
        os.replace(tmp, target)
    return target


def extract_tree(archive: Path, dest_dir: Path) -> Path:
    with zipfile.ZipFile(archive) as zf:
        for info in zf.infolist():
            safe_member_path(dest_dir, info.filename)
        if dest_dir.exists():
            shutil.rmtree(dest_dir)
        dest_dir.mkdir(parents=True)
        for info in zf.infolist():
            extracted = Path(zf.extract(info, dest_dir))
            _apply_unix_mode(info, extracted)
    return dest_dir


def _remove_stale_parts(archive: Path, *, keep: Path) -> None:
    for stale in archive.parent.glob(f".{archive.name}.*.part"):
        if stale != keep:
            logger.debug("removing stale partial download %s", stale)
            stale.unlink(missing_ok=True)


class Fetcher:
    """Installs packages one at a time, skipping those whose stamp is current."""

    def __init__(
        self,
        config: FetchConfig,
        *,
        downloader: ArchiveDownloader | None = None,
        stamps: StampStore | None = None,
    ) -> None:
        self.config = config
        self.root = config.download_root
        self.downloader = downloader or ArchiveDownloader(
            connect_timeout=config.timeout_seconds,
            read_timeout=config.read_timeout_seconds,
            chunk_size=config.chunk_size,
        )
        self.stamps = stamps or StampStore(config.download_root)

    def archive_path(self, identity: PackageIdentity) -> Path:
        return self.root / identity.archive_name

    def install_path(self, identity: PackageIdentity) -> Path:
        if identity.single_file:
            return self.root / identity.base_name
        return self.root / identity.stem

    def fetch(self, record: PackageRecord, identity: PackageIdentity) -> PackageOutcome:
        version = record.version
        if self.stamps.is_current(identity, version):
            logger.debug("%s already at %s", identity.display_name, version)
            return PackageOutcome(identity=identity, version=version, status=OUTCOME_CURRENT)

        url = identity.url(self.config.url_prefix, version)
        archive = self.archive_path(identity)
        archive.unlink(missing_ok=True)
        part = part_path_for(archive, version)
        _remove_stale_parts(archive, keep=part)
        logger.info("downloading %s from %s", identity.display_name, url)
        try:
            self.downloader.download(url, archive, part_path=part)
        except PackageError as exc:
            exc.package = identity.display_name
            raise

        try:
            verify_file(archive, version)
        except IntegrityError as exc:
            archive.unlink(missing_ok=True)
            exc.package = identity.display_name
            exc.url = url
            raise

        try:
            if identity.single_file:
                extract_single(archive, identity.base_name, self.root)
            else:
                extract_tree(archive, self.install_path(identity))
        except UnpackError as exc:
            exc.package = identity.display_name
            exc.url = url
            raise
        except (zipfile.BadZipFile, OSError) as exc:
            raise UnpackError(
                f"unable to unpack {archive.name}: {exc}", package=identity.display_name, url=url
            ) from exc

        self.stamps.write(identity, version)
        return PackageOutcome(identity=identity, version=version, status=OUTCOME_INSTALLED, url=url)

    def run(self, pairs: Iterable[tuple[PackageRecord, PackageIdentity]]) -> RunReport:
        outcomes: list[PackageOutcome] = []
        for record, identity in pairs:
            try:
                outcomes.append(self.fetch(record, identity))
            except IntegrityError as exc:
                logger.error(
                    "integrity check failed for %s url=%s declared=%s computed=%s",
                    identity.display_name,
                    exc.url,
                    exc.declared,
                    exc.computed,
                )
                outcomes.append(_failed(record, identity, exc))
            except PackageError as exc:
                logger.warning("failed to fetch %s url=%s: %s", identity.display_name, exc.url, exc)
                outcomes.append(_failed(record, identity, exc))
            except OSError as exc:
                logger.warning("failed to fetch %s: %s", identity.display_name, exc)
                outcomes.append(_failed(record, identity, PackageError(str(exc), package=identity.display_name)))
        return RunReport(backend="direct", outcomes=tuple(outcomes))


def _failed(record: PackageRecord, identity: PackageIdentity, exc: PackageError) -> PackageOutcome:
    return PackageOutcome(
        identity=identity,
        version=record.version,
        status=OUTCOME_FAILED,
        detail=str(exc),
        url=exc.url,
    )
