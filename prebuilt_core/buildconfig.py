"""GN-style fragment naming the locations of installed prebuilts."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Sequence

from .resolver import resolve_all
from .types import FetchConfig, PackageRecord

HEADER = "# Generated by prebuilt-fetch. DO NOT EDIT."
_IDENT_RE = re.compile(r"[^A-Za-z0-9]+")


def _identifier(logical_name: str) -> str:
    return _IDENT_RE.sub("_", logical_name).strip("_").lower()


def render_build_config(config: FetchConfig, records: Sequence[PackageRecord]) -> str:
    root = config.download_root.resolve()
    lines = [HEADER]
    seen: set[str] = set()
    for _record, identity in resolve_all(records, config.platform, namespace=config.namespace):
        ident = _identifier(identity.logical_name)
        if ident in seen:
            continue
        seen.add(ident)
        if identity.single_file:
            lines.append(f'{ident}_prebuilt_tool = "{(root / identity.base_name).as_posix()}"')
        else:
            lines.append(f'{ident}_prebuilt_dir = "{(root / identity.stem).as_posix()}"')
    return "\n".join(lines) + "\n"


def write_build_config(config: FetchConfig, records: Sequence[PackageRecord]) -> Path | None:
    if config.build_config_path is None:
        return None
    path = config.build_config_path
    text = render_build_config(config, records)
    if path.exists() and path.read_text(encoding="utf-8") == text:
        return path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path
