"""Exclusive lock serializing runs against one download root."""

from __future__ import annotations

import fcntl
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)

LOCK_NAME = ".prebuilt.lock"


@contextmanager
def run_lock(download_root: Path) -> Iterator[Path]:
    download_root.mkdir(parents=True, exist_ok=True)
    lock_path = download_root / LOCK_NAME
    with lock_path.open("a+b") as handle:
        logger.debug("waiting for lock %s", lock_path)
        fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
        try:
            yield lock_path
        finally:
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
