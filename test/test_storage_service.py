import io
from unittest.mock import MagicMock

import pytest
from PIL import Image

from factories import fake_image_bytes, fake_uploadfile
from homesocial.errors import ListingValidationError
from homesocial.services.storage_service import GCSMediaStorage, build_storage_path, optimize_image


def test_optimize_keeps_transparent_png():
    output, content_type = optimize_image(io.BytesIO(fake_image_bytes("PNG", mode="RGBA")))

    assert content_type == "image/png"
    assert Image.open(output).format == "PNG"


def test_optimize_converts_opaque_png_to_jpeg():
    output, content_type = optimize_image(io.BytesIO(fake_image_bytes("PNG")))

    assert content_type == "image/jpeg"
    assert Image.open(output).format == "JPEG"


def test_optimize_downsizes_wide_images():
    output, _ = optimize_image(io.BytesIO(fake_image_bytes(size=(3200, 1000))), max_width=1600)

    assert Image.open(output).size == (1600, 500)


def test_storage_path_is_unique_under_prefix():
    first = build_storage_path("listing/abc", "House.JPG")
    second = build_storage_path("listing/abc", "House.JPG")

    assert first.startswith("listing/abc/")
    assert first.endswith(".jpg")
    assert first != second
    assert build_storage_path("listing/abc", None).endswith(".bin")
    assert build_storage_path("listing/abc", "clip.mov", "mp4").endswith(".mp4")


def test_public_url():
    storage = GCSMediaStorage("photos", "videos", "https://storage.googleapis.com/")

    assert storage.public_url("photos", "listing/1/a.jpg") == (
        "https://storage.googleapis.com/photos/listing/1/a.jpg"
    )
    assert storage.bucket_for("video") == "videos"
    assert storage.bucket_for("photo") == "photos"


async def test_upload_rejects_wrong_content_type():
    storage = GCSMediaStorage("photos", "videos")

    with pytest.raises(ListingValidationError):
        await storage.upload(fake_uploadfile("notes.pdf", "application/pdf", b"%PDF"), "photo", "listing/1")
    with pytest.raises(ListingValidationError):
        await storage.upload(fake_uploadfile("photo.jpg", "image/jpeg"), "video", "listing/1")


async def test_upload_rejects_unreadable_image():
    storage = GCSMediaStorage("photos", "videos")
    storage._client = MagicMock()

    with pytest.raises(ListingValidationError):
        await storage.upload(fake_uploadfile("broken.jpg", "image/jpeg", b"not an image"), "photo", "listing/1")


async def test_upload_photo_reencodes_and_stores():
    storage = GCSMediaStorage("photos", "videos")
    storage._client = MagicMock()

    stored = await storage.upload(
        fake_uploadfile("house.png", "image/png", fake_image_bytes("PNG")), "photo", "listing/1"
    )

    assert stored.type == "photo"
    assert stored.bucket == "photos"
    assert stored.content_type == "image/jpeg"
    assert stored.path.startswith("listing/1/")
    assert stored.path.endswith(".jpg")
    storage._client.bucket.assert_called_with("photos")
    blob = storage._client.bucket.return_value.blob.return_value
    assert blob.upload_from_file.call_args.kwargs["content_type"] == "image/jpeg"


async def test_upload_video_keeps_content_type():
    storage = GCSMediaStorage("photos", "videos")
    storage._client = MagicMock()

    stored = await storage.upload(fake_uploadfile("tour.mp4", "video/mp4", b"video"), "video", "listing/1")

    assert stored.bucket == "videos"
    assert stored.content_type == "video/mp4"
    assert stored.path.endswith(".mp4")


async def test_failed_delete_returns_false():
    storage = GCSMediaStorage("photos", "videos")
    storage._client = MagicMock()
    storage._client.bucket.return_value.blob.return_value.delete.side_effect = OSError("timeout")

    assert await storage.delete("photos", "listing/1/a.jpg") is False
