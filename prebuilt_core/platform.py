"""Host platform detection."""

from __future__ import annotations

import platform as _platform

from .errors import PlatformUnsupportedError
from .types import PlatformId

_OS_NAMES = {
    "darwin": "mac",
    "linux": "linux",
}

_ARCH_NAMES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
}


def platform_from_host(system: str, machine: str) -> PlatformId:
    os_name = _OS_NAMES.get(system.strip().lower())
    arch = _ARCH_NAMES.get(machine.strip().lower())
    if os_name is None or arch is None:
        raise PlatformUnsupportedError(f"unsupported host platform: {system}/{machine}")
    try:
        return PlatformId(f"{os_name}-{arch}")
    except ValueError as exc:
        raise PlatformUnsupportedError(f"unsupported host platform: {system}/{machine}") from exc


def detect_platform() -> PlatformId:
    return platform_from_host(_platform.system(), _platform.machine())


def parse_platform(value: str) -> PlatformId:
    try:
        return PlatformId(value.strip())
    except ValueError as exc:
        known = ", ".join(item.value for item in PlatformId)
        raise PlatformUnsupportedError(f"unknown platform '{value}' (expected one of: {known})") from exc
