"""Resumable archive downloads over HTTP."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import requests

from .errors import DownloadError

logger = logging.getLogger(__name__)

_RANGE_NOT_SATISFIABLE = 416
_PARTIAL_CONTENT = 206


def _safe_key(raw: str) -> str:
    return "".join(ch if ch.isalnum() or ch in ("-", "_", ".") else "_" for ch in raw)


def part_path_for(dest: Path, version: str) -> Path:
    return dest.parent / f".{dest.name}.{_safe_key(version)}.part"


class ArchiveDownloader:
    """Streams a URL into a ``.part`` file and renames it into place."""

    def __init__(
        self,
        session: requests.Session | None = None,
        *,
        connect_timeout: float = 30.0,
        read_timeout: float = 300.0,
        chunk_size: int = 1024 * 1024,
    ) -> None:
        self.session = session or requests.Session()
        self.timeout = (max(float(connect_timeout), 1.0), max(float(read_timeout), 1.0))
        self.chunk_size = max(int(chunk_size), 1024)

    def download(self, url: str, dest: Path, *, part_path: Path | None = None) -> Path:
        part = part_path or dest.with_name(dest.name + ".part")
        dest.parent.mkdir(parents=True, exist_ok=True)
        try:
            self._transfer(url, part, resume=True)
            os.replace(part, dest)
        except requests.RequestException as exc:
            raise DownloadError(f"download failed: {url}: {exc}", url=url) from exc
        except OSError as exc:
            raise DownloadError(f"unable to write {dest}: {exc}", url=url) from exc
        return dest

    def _transfer(self, url: str, part: Path, *, resume: bool) -> None:
        offset = part.stat().st_size if resume and part.exists() else 0
        headers = {"Range": f"bytes={offset}-"} if offset else {}
        logger.debug("GET %s offset=%s", url, offset)
        with self.session.get(url, stream=True, timeout=self.timeout, headers=headers) as response:
            restart = bool(offset) and response.status_code == _RANGE_NOT_SATISFIABLE
            if not restart:
                response.raise_for_status()
                if offset and response.status_code != _PARTIAL_CONTENT:
                    offset = 0
                with part.open("ab" if offset else "wb") as handle:
                    for chunk in response.iter_content(chunk_size=self.chunk_size):
                        if chunk:
                            handle.write(chunk)
        if restart:
            logger.debug("range rejected for %s; restarting transfer", url)
            part.unlink(missing_ok=True)
            self._transfer(url, part, resume=False)
