"""Tests for filesystem image storage and download naming."""

import pytest

from artledger.errors import ImageStorageError
from artledger.services.image_storage import (
    ImageStorage,
    content_type_for,
    download_file_name,
)
from conftest import make_upload


@pytest.mark.parametrize(
    "path,expected",
    [
        ("a.jpg", "image/jpeg"),
        ("a.JPEG", "image/jpeg"),
        ("a.jfif", "image/jpeg"),
        ("a.png", "image/png"),
        ("a.gif", "image/gif"),
        ("a.webp", "image/webp"),
        ("a.bmp", "application/octet-stream"),
        (None, "application/octet-stream"),
    ],
)
def test_content_type_for(path, expected):
    assert content_type_for(path) == expected


def test_download_file_name_uses_stored_extension():
    assert download_file_name("holiday.jpeg", "images/artworks/1/x.png") == "holiday.png"
    assert download_file_name(None, "images/artworks/1/x.gif") == "artwork.gif"


@pytest.mark.asyncio
async def test_save_and_read(images):
    path = await images.save_image(make_upload(b"pixels", "Pic.PNG"), 12, "Pic.PNG")

    assert path.startswith("images/artworks/12/")
    assert path.endswith(".png")
    assert images.exists(path)
    assert await images.read_bytes(path) == b"pixels"


@pytest.mark.asyncio
async def test_remove_deletes_stored_image(images):
    path = await images.save_image(make_upload(b"pixels", "a.png"), 3, "a.png")

    await images.remove(path)

    assert images.exists(path) is False
    await images.remove(path)
    await images.remove(None)


@pytest.mark.asyncio
async def test_missing_image_reads_none(images):
    assert await images.read_bytes("images/artworks/1/missing.png") is None
    assert images.exists(None) is False


def test_paths_outside_root_are_refused(images):
    assert images.resolve_path("../../etc/passwd") is None


def test_image_urls(images):
    assert images.get_image_url(None) == images.placeholder_url
    assert (
        images.get_image_url("images/artworks/4/abc.png")
        == "http://test/api/artworks/image/4/abc.png"
    )


@pytest.mark.asyncio
async def test_write_failure_raises_image_storage_error(tmp_path):
    blocker = tmp_path / "blocked"
    blocker.write_text("not a directory")
    storage = ImageStorage(blocker, "http://test")

    with pytest.raises(ImageStorageError):
        await storage.save_image(make_upload(b"x", "a.png"), 1, "a.png")
