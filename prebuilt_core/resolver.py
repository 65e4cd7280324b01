"""Classify manifest records into download identities for one platform.

Rules are evaluated in order and the first matching rule decides. The tool
rule must stay ahead of the generic platform rule: both match paths ending
in ``/<platform>``, and a ``tools/<name>`` package unpacks as a single file
rather than a directory.
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator

from .types import ARCHIVE_SUFFIX, DEFAULT_NAMESPACE, PackageIdentity, PackageRecord, PlatformId

TOOLS_PREFIX = "tools/"
FIRMWARE_PREFIX = "firmware/"
_KNOWN_PLATFORMS = frozenset(item.value for item in PlatformId)


@dataclass(frozen=True)
class ResolutionRule:
    name: str
    matches: Callable[[str, PlatformId], bool]
    build: Callable[[str, PlatformId], PackageIdentity | None]


def _platform_suffix(platform: PlatformId) -> str:
    return f"/{platform.value}"


def _strip_platform(path: str, platform: PlatformId) -> str:
    return path[: -len(_platform_suffix(platform))]


def _archive_for(name: str) -> str:
    return f"{posixpath.basename(name)}{ARCHIVE_SUFFIX}"


def _is_tool(path: str, platform: PlatformId) -> bool:
    if not path.startswith(TOOLS_PREFIX) or not path.endswith(_platform_suffix(platform)):
        return False
    return bool(_strip_platform(path, platform)[len(TOOLS_PREFIX) :])


def _tool_identity(path: str, platform: PlatformId) -> PackageIdentity:
    name = _strip_platform(path, platform)[len(TOOLS_PREFIX) :]
    return PackageIdentity(
        logical_name=f"{TOOLS_PREFIX}{name}",
        archive_name=_archive_for(name),
        single_file=True,
        suffix=_platform_suffix(platform),
    )


def _is_platform_package(path: str, platform: PlatformId) -> bool:
    if path.startswith(TOOLS_PREFIX) or not path.endswith(_platform_suffix(platform)):
        return False
    return bool(_strip_platform(path, platform))


def _platform_identity(path: str, platform: PlatformId) -> PackageIdentity:
    name = _strip_platform(path, platform)
    return PackageIdentity(
        logical_name=name,
        archive_name=_archive_for(name),
        single_file=False,
        suffix=_platform_suffix(platform),
    )


def _is_firmware(path: str, platform: PlatformId) -> bool:
    del platform
    if not path.startswith(FIRMWARE_PREFIX):
        return False
    name = path[len(FIRMWARE_PREFIX) :]
    return bool(name) and posixpath.basename(name) not in _KNOWN_PLATFORMS


def _firmware_identity(path: str, platform: PlatformId) -> PackageIdentity:
    del platform
    return PackageIdentity(
        logical_name=path,
        archive_name=_archive_for(path[len(FIRMWARE_PREFIX) :]),
        single_file=False,
        suffix="",
    )


def _is_foreign_platform(path: str, platform: PlatformId) -> bool:
    last = posixpath.basename(path)
    return last in _KNOWN_PLATFORMS and last != platform.value


def _absent(path: str, platform: PlatformId) -> None:
    del path, platform
    return None


RULES: tuple[ResolutionRule, ...] = (
    ResolutionRule("tool", _is_tool, _tool_identity),
    ResolutionRule("platform", _is_platform_package, _platform_identity),
    ResolutionRule("firmware", _is_firmware, _firmware_identity),
    ResolutionRule("foreign-platform", _is_foreign_platform, _absent),
    ResolutionRule("unmatched", lambda path, platform: True, _absent),
)


def resolve_package(
    record: PackageRecord,
    platform: PlatformId,
    *,
    namespace: str = DEFAULT_NAMESPACE,
    rules: tuple[ResolutionRule, ...] = RULES,
) -> PackageIdentity | None:
    path = record.package
    if path.startswith(namespace):
        path = path[len(namespace) :]
    for rule in rules:
        if rule.matches(path, platform):
            return rule.build(path, platform)
    return None


def resolve_all(
    records: Iterable[PackageRecord],
    platform: PlatformId,
    *,
    namespace: str = DEFAULT_NAMESPACE,
) -> Iterator[tuple[PackageRecord, PackageIdentity]]:
    for record in records:
        identity = resolve_package(record, platform, namespace=namespace)
        if identity is not None:
            yield record, identity
