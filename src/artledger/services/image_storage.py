"""Blob storage for uploaded artwork images on the local filesystem.

Images live under ``<root>/images/artworks/<artwork_id>/<uuid><ext>``;
the database stores the path relative to ``<root>``.
"""

from __future__ import annotations

import uuid
from pathlib import Path, PurePosixPath
from typing import Optional

import structlog

from artledger.errors import ImageStorageError
from artledger.services.content_hasher import AsyncReadable

log = structlog.get_logger()

_CHUNK_SIZE = 64 * 1024

CONTENT_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".jfif": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
}


def content_type_for(path: Optional[str]) -> str:
    if not path:
        return "application/octet-stream"
    return CONTENT_TYPES.get(PurePosixPath(path).suffix.lower(), "application/octet-stream")


def download_file_name(original_name: Optional[str], image_path: str) -> str:
    """Original stem with the stored file's extension."""
    stem = PurePosixPath(original_name or "artwork").stem or "artwork"
    suffix = PurePosixPath(image_path).suffix or ".jpg"
    return f"{stem}{suffix}"


def relative_image_path(artwork_id: int, file_name: str) -> str:
    return f"images/artworks/{artwork_id}/{file_name}"


class ImageStorage:
    """Saves, locates and reads artwork images below a storage root."""

    def __init__(self, root: str | Path, base_url: str) -> None:
        self._root = Path(root).resolve()
        self._base_url = base_url.rstrip("/")

    @property
    def placeholder_url(self) -> str:
        return f"{self._base_url}/api/placeholder/400/300/f0f0f0/666666"

    async def save_image(self, upload: AsyncReadable, artwork_id: int, file_name: str) -> str:
        """Copy *upload* to disk and return the relative path."""
        suffix = PurePosixPath(file_name).suffix.lower()
        relative = relative_image_path(artwork_id, f"{uuid.uuid4()}{suffix}")
        target = self._root / relative
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            await upload.seek(0)
            with target.open("wb") as fh:
                while True:
                    chunk = await upload.read(_CHUNK_SIZE)
                    if not chunk:
                        break
                    fh.write(chunk)
        except (OSError, ValueError) as exc:
            log.error("image_write_failed", artwork_id=artwork_id, error=str(exc))
            raise ImageStorageError(f"Failed to save image: {exc}") from exc

        log.info("image_saved", artwork_id=artwork_id, image_path=relative)
        return relative

    def get_image_url(self, image_path: Optional[str]) -> str:
        if not image_path:
            return self.placeholder_url
        parts = image_path.strip("/").split("/")
        if len(parts) >= 4 and parts[0] == "images" and parts[1] == "artworks":
            return f"{self._base_url}/api/artworks/image/{parts[2]}/{parts[3]}"
        return f"{self._base_url}/{image_path.lstrip('/')}"

    def resolve_path(self, image_path: Optional[str]) -> Optional[Path]:
        """Absolute path for an existing image, None if missing or outside the root."""
        if not image_path:
            return None
        candidate = (self._root / image_path.lstrip("/")).resolve()
        if not candidate.is_relative_to(self._root):
            log.warning("image_path_outside_root", image_path=image_path)
            return None
        return candidate if candidate.is_file() else None

    def exists(self, image_path: Optional[str]) -> bool:
        return self.resolve_path(image_path) is not None

    async def remove(self, image_path: Optional[str]) -> None:
        """Delete a stored image, e.g. after its artwork row was rolled back."""
        path = self.resolve_path(image_path)
        if path is None:
            return
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            log.warning("image_remove_failed", image_path=image_path, error=str(exc))
            return
        log.info("image_removed", image_path=image_path)

    async def read_bytes(self, image_path: Optional[str]) -> Optional[bytes]:
        path = self.resolve_path(image_path)
        if path is None:
            log.warning("image_not_found", image_path=image_path)
            return None
        return path.read_bytes()
