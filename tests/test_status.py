from __future__ import annotations

from pathlib import Path

from prebuilt_core.stamps import StampStore
from prebuilt_core.status import list_packages, verify
from prebuilt_core.types import FetchConfig, PackageIdentity, PackageRecord, PlatformId

GN = PackageIdentity(logical_name="tools/gn", archive_name="gn.zip", single_file=True, suffix="/linux-amd64")
CLANG = PackageIdentity(logical_name="clang", archive_name="clang.zip", single_file=False, suffix="/linux-amd64")

RECORDS = [
    PackageRecord("fuchsia/tools/gn/linux-amd64", "git_revision:1", "1" * 40),
    PackageRecord("fuchsia/clang/linux-amd64", "git_revision:2", "2" * 40),
    PackageRecord("fuchsia/clang/mac-amd64", "git_revision:2", "3" * 40),
]


def _config(tmp_path: Path) -> FetchConfig:
    return FetchConfig(download_root=tmp_path / "prebuilt", platform=PlatformId.LINUX_AMD64)


def test_verify_reports_missing_and_stale_stamps(tmp_path: Path) -> None:
    config = _config(tmp_path)
    StampStore(config.download_root).write(GN, "0" * 40)

    mismatches = verify(config, RECORDS)

    assert [item.describe() for item in mismatches] == [
        f"tools/gn/linux-amd64 installed={'0' * 40} expected={'1' * 40}",
        f"clang/linux-amd64 installed=missing expected={'2' * 40}",
    ]


def test_verify_is_clean_when_stamps_match(tmp_path: Path) -> None:
    config = _config(tmp_path)
    stamps = StampStore(config.download_root)
    stamps.write(GN, "1" * 40)
    stamps.write(CLANG, "2" * 40)
    assert verify(config, RECORDS) == []


def test_verify_does_not_write(tmp_path: Path) -> None:
    config = _config(tmp_path)
    verify(config, RECORDS)
    assert not config.download_root.exists()


def test_list_renders_installed_state(tmp_path: Path) -> None:
    config = _config(tmp_path)
    stamps = StampStore(config.download_root)
    stamps.write(GN, "1" * 40)
    stamps.write(CLANG, "old")

    rows = [row.render() for row in list_packages(config, RECORDS)]

    assert rows == [
        f"tools/gn/linux-amd64 installed=current current={'1' * 40}",
        f"clang/linux-amd64 installed=old current={'2' * 40}",
    ]


def test_list_marks_missing_packages(tmp_path: Path) -> None:
    rows = list_packages(_config(tmp_path), RECORDS[:1])
    assert rows[0].installed == "missing"
