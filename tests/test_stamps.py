from __future__ import annotations

from pathlib import Path

from prebuilt_core.stamps import StampStore
from prebuilt_core.types import PackageIdentity

GN = PackageIdentity(logical_name="tools/gn", archive_name="gn.zip", single_file=True, suffix="/linux-amd64")


def test_stamp_path_is_derived_from_archive_stem(tmp_path: Path) -> None:
    store = StampStore(tmp_path)
    assert store.path_for(GN) == tmp_path / "gn.stamp"


def test_read_missing_stamp_returns_none(tmp_path: Path) -> None:
    assert StampStore(tmp_path).read(GN) is None


def test_write_then_read_round_trips_raw_version(tmp_path: Path) -> None:
    store = StampStore(tmp_path / "nested")
    path = store.write(GN, "a" * 40)
    assert path.read_text(encoding="utf-8") == "a" * 40
    assert store.read(GN) == "a" * 40
    assert store.is_current(GN, "a" * 40)
    assert not store.is_current(GN, "b" * 40)


def test_write_overwrites_and_leaves_no_temp_files(tmp_path: Path) -> None:
    store = StampStore(tmp_path)
    store.write(GN, "old")
    store.write(GN, "new")
    assert store.read(GN) == "new"
    assert sorted(item.name for item in tmp_path.iterdir()) == ["gn.stamp"]


def test_remove_is_idempotent(tmp_path: Path) -> None:
    store = StampStore(tmp_path)
    store.write(GN, "v")
    store.remove(GN)
    store.remove(GN)
    assert store.read(GN) is None
