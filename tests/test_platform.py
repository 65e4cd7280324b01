from __future__ import annotations

import pytest

from prebuilt_core.errors import PlatformUnsupportedError, UsageError
from prebuilt_core.platform import parse_platform, platform_from_host
from prebuilt_core.types import PlatformId


@pytest.mark.parametrize(
    ("system", "machine", "expected"),
    [
        ("Darwin", "x86_64", PlatformId.MAC_AMD64),
        ("Linux", "x86_64", PlatformId.LINUX_AMD64),
        ("Linux", "AMD64", PlatformId.LINUX_AMD64),
        ("Linux", "aarch64", PlatformId.LINUX_ARM64),
    ],
)
def test_platform_from_host(system: str, machine: str, expected: PlatformId) -> None:
    assert platform_from_host(system, machine) is expected


@pytest.mark.parametrize(("system", "machine"), [("Windows", "AMD64"), ("Linux", "riscv64"), ("Darwin", "arm64")])
def test_unsupported_hosts(system: str, machine: str) -> None:
    with pytest.raises(PlatformUnsupportedError, match="unsupported host platform"):
        platform_from_host(system, machine)


def test_parse_platform() -> None:
    assert parse_platform(" linux-arm64 ") is PlatformId.LINUX_ARM64
    with pytest.raises(UsageError, match="expected one of"):
        parse_platform("windows-amd64")
