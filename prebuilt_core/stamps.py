"""Per-package version stamps kept next to the unpacked packages."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from .types import STAMP_SUFFIX, PackageIdentity


def stamp_path(download_root: Path, identity: PackageIdentity) -> Path:
    return download_root / f"{identity.stem}{STAMP_SUFFIX}"


class StampStore:
    def __init__(self, download_root: Path) -> None:
        self.root = download_root

    def path_for(self, identity: PackageIdentity) -> Path:
        return stamp_path(self.root, identity)

    def read(self, identity: PackageIdentity) -> str | None:
        path = self.path_for(identity)
        try:
            value = path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        return value or None

    def write(self, identity: PackageIdentity, version: str) -> Path:
        path = self.path_for(identity)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(version)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        return path

    def remove(self, identity: PackageIdentity) -> None:
        self.path_for(identity).unlink(missing_ok=True)

    def is_current(self, identity: PackageIdentity, version: str) -> bool:
        return self.read(identity) == version
