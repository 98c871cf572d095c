"""Content addressing for uploaded artwork files.

The content hash is a SHA-256 digest of the raw bytes, rendered as 64
lowercase hex characters.  It depends only on the bytes: file name and
declared MIME type never enter the digest, so the same image uploaded
under two names hashes identically.
"""

from __future__ import annotations

import hashlib
from datetime import datetime, timezone
from typing import Protocol

from artledger.errors import ContentReadError

_CHUNK_SIZE = 64 * 1024


class AsyncReadable(Protocol):
    """Anything shaped like ``fastapi.UploadFile``."""

    async def read(self, size: int = -1) -> bytes: ...

    async def seek(self, offset: int) -> None: ...


def hash_bytes(data: bytes) -> str:
    """SHA-256 of an in-memory buffer as lowercase hex."""
    return hashlib.sha256(data).hexdigest()


async def hash_and_measure(stream: AsyncReadable) -> tuple[str, int]:
    """Read *stream* to the end and return ``(sha256 hex digest, byte count)``.

    The stream is rewound before and after hashing so callers can persist
    the same upload afterwards.  Raises ``ContentReadError`` when the
    stream cannot be read completely.
    """
    digest = hashlib.sha256()
    size = 0
    try:
        await stream.seek(0)
        while True:
            chunk = await stream.read(_CHUNK_SIZE)
            if not chunk:
                break
            digest.update(chunk)
            size += len(chunk)
        await stream.seek(0)
    except (OSError, ValueError) as exc:
        raise ContentReadError(f"Could not read uploaded content: {exc}") from exc
    return digest.hexdigest(), size


async def compute_content_hash(stream: AsyncReadable) -> str:
    """SHA-256 hex digest of everything readable from *stream*."""
    content_hash, _size = await hash_and_measure(stream)
    return content_hash


def compute_perceptual_hash(file_name: str, size: int, content_type: str) -> str:
    """Placeholder fingerprint; NOT a perceptual hash.

    Digests name, size, type and the current time, so two calls for the
    same image differ.  Kept for display on the artwork record only and
    never consulted for duplicate detection.
    """
    ticks = int(datetime.now(timezone.utc).timestamp() * 10_000_000)
    base = f"{file_name}_{size}_{content_type}_{ticks}"
    return "phash_" + hashlib.sha1(base.encode("utf-8")).hexdigest()
