"""Versions manifest parsing and ensure-file assembly.

A versions manifest is a flat sequence of three-line records::

    # comment
    fuchsia/clang/linux-amd64
        git_revision:1f2e3d
        Ztz1W0PjMpEN9mT0eTckE9uZ_JVhq1OfDQ5BOlF0OfQC

Blank lines and ``#`` comments are skipped without advancing the record.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Iterator, Sequence

from .errors import ManifestError
from .types import DEFAULT_NAMESPACE, PackageRecord

logger = logging.getLogger(__name__)

DIRECTIVE_PREFIX = "$"
COMMENT_PREFIX = "#"


def _is_skipped(line: str) -> bool:
    return not line or line.startswith(COMMENT_PREFIX)


def iter_records(lines: Iterable[str], namespace: str = DEFAULT_NAMESPACE) -> Iterator[PackageRecord]:
    slots: list[str] = []
    for raw in lines:
        line = raw.strip()
        if _is_skipped(line):
            continue
        slots.append(line)
        if len(slots) < 3:
            continue
        package, tag, version = slots
        slots = []
        if not package.startswith(namespace):
            continue
        yield PackageRecord(package=package, tag=tag, version=version)
    if slots:
        logger.debug("dropping trailing partial manifest record: %s", slots)


def read_lines(path: Path) -> list[str]:
    try:
        return path.read_text(encoding="utf-8").splitlines()
    except FileNotFoundError as exc:
        raise ManifestError(f"manifest not found: {path}") from exc
    except OSError as exc:
        raise ManifestError(f"unable to read manifest {path}: {exc}") from exc


def read_records(paths: Sequence[Path], namespace: str = DEFAULT_NAMESPACE) -> list[PackageRecord]:
    records: list[PackageRecord] = []
    for path in paths:
        records.extend(iter_records(read_lines(path), namespace))
    return records


def split_directives(lines: Iterable[str]) -> tuple[list[str], list[str]]:
    directives: list[str] = []
    body: list[str] = []
    for raw in lines:
        line = raw.rstrip("\r\n")
        stripped = line.strip()
        if not stripped:
            continue
        if stripped.startswith(DIRECTIVE_PREFIX):
            directives.append(stripped)
        else:
            body.append(line)
    return directives, body


def combine_ensure_files(paths: Sequence[Path]) -> str:
    """Concatenate every file's directives first, then every file's body."""
    directives: list[str] = []
    body: list[str] = []
    for path in paths:
        file_directives, file_body = split_directives(read_lines(path))
        directives.extend(file_directives)
        body.extend(file_body)
    return "\n".join([*directives, *body]) + "\n"
