"""Read-only comparison of stamps against the manifest."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .resolver import resolve_all
from .stamps import StampStore
from .types import FetchConfig, PackageRecord

MISSING = "missing"
CURRENT = "current"


@dataclass(frozen=True)
class StampMismatch:
    name: str
    installed: str | None
    expected: str

    def describe(self) -> str:
        return f"{self.name} installed={self.installed or MISSING} expected={self.expected}"


@dataclass(frozen=True)
class PackageStatus:
    name: str
    installed: str
    current: str

    def render(self) -> str:
        return f"{self.name} installed={self.installed} current={self.current}"


def verify(config: FetchConfig, records: Sequence[PackageRecord]) -> list[StampMismatch]:
    stamps = StampStore(config.download_root)
    mismatches: list[StampMismatch] = []
    for record, identity in resolve_all(records, config.platform, namespace=config.namespace):
        installed = stamps.read(identity)
        if installed != record.version:
            mismatches.append(
                StampMismatch(name=identity.display_name, installed=installed, expected=record.version)
            )
    return mismatches


def list_packages(config: FetchConfig, records: Sequence[PackageRecord]) -> list[PackageStatus]:
    stamps = StampStore(config.download_root)
    rows: list[PackageStatus] = []
    for record, identity in resolve_all(records, config.platform, namespace=config.namespace):
        installed = stamps.read(identity)
        if installed is None:
            value = MISSING
        elif installed == record.version:
            value = CURRENT
        else:
            value = installed
        rows.append(PackageStatus(name=identity.display_name, installed=value, current=record.version))
    return rows
