"""Content digest verification for downloaded archives.

The declared digest's length picks the encoding: 40 characters is SHA-1 hex,
44 characters is SHA-256 in unpadded URL-safe base64. Anything else is
rejected before the file is opened.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
from pathlib import Path

from .errors import IntegrityError

SHA1_HEX_LENGTH = 40
SHA256_B64_LENGTH = 44
SHA256_SIZE = 32
CIPD_SHA256_TAG = 2


def file_digest(path: Path, algorithm: str) -> bytes:
    h = hashlib.new(algorithm)
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(1024 * 1024), b""):
            h.update(chunk)
    return h.digest()


def decode_sha256_b64(value: str) -> bytes:
    """Return the 32 digest bytes of a 44-character base64url value.

    Unpadded cipd instance ids decode to 33 bytes: the digest followed by a
    one-byte hash algorithm tag, which is ignored here.
    """
    text = value.replace("-", "+").replace("_", "/")
    text += "=" * (-len(text) % 4)
    try:
        raw = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise IntegrityError(f"malformed sha256 digest: {value}", declared=value) from exc
    if len(raw) not in (SHA256_SIZE, SHA256_SIZE + 1):
        raise IntegrityError(f"malformed sha256 digest: {value}", declared=value)
    return raw[:SHA256_SIZE]


def encode_sha256_b64(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw + bytes([CIPD_SHA256_TAG])).decode("ascii").rstrip("=")


def digest_kind(declared: str) -> str | None:
    if len(declared) == SHA1_HEX_LENGTH:
        return "sha1"
    if len(declared) == SHA256_B64_LENGTH:
        return "sha256"
    return None


def verify_file(path: Path, declared: str) -> str:
    """Check ``path`` against ``declared`` and return the algorithm used."""
    kind = digest_kind(declared)
    if kind is None:
        raise IntegrityError(
            f"unknown digest format (length {len(declared)}): {declared}",
            path=str(path),
            declared=declared,
        )

    if kind == "sha1":
        computed = file_digest(path, "sha1").hex()
        if computed.lower() != declared.lower():
            raise IntegrityError(
                f"sha1 mismatch for {path.name}: declared={declared} computed={computed}",
                path=str(path),
                declared=declared,
                computed=computed,
            )
        return kind

    expected = decode_sha256_b64(declared)
    actual = file_digest(path, "sha256")
    if actual != expected:
        computed = encode_sha256_b64(actual)
        raise IntegrityError(
            f"sha256 mismatch for {path.name}: declared={declared} computed={computed}",
            path=str(path),
            declared=declared,
            computed=computed,
        )
    return kind
