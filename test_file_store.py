"""FileStore save/delete round trips and upload rejection."""

import io
from unittest.mock import MagicMock

import pytest
from fastapi import UploadFile
from PIL import Image
from starlette.datastructures import Headers

from app.core.exceptions import UploadRejectedException
from app.services.file_store import FileStore, THUMBNAIL_PREFIX, THUMBNAIL_SUBDIR, thumbnail_name_for
from conftest import make_image_bytes


def make_upload(data: bytes, filename: str = "photo.jpg", content_type: str = "image/jpeg") -> UploadFile:
    return UploadFile(
        file=io.BytesIO(data),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


@pytest.fixture
def store(tmp_path):
    return FileStore(str(tmp_path / "static"), max_size=1024 * 1024, public_prefix="/api/v1/static")


def test_save_writes_original_and_thumbnail(store):
    stored = store.save(make_upload(make_image_bytes(size=(800, 400)), "Sofa.JPG"))

    assert stored.original_name == "Sofa.JPG"
    assert stored.file_name.endswith(".jpg")
    assert len(stored.file_name) == 32 + len(".jpg")
    assert stored.mime_type == "image/jpeg"
    assert stored.path == f"/api/v1/static/{stored.file_name}"
    assert stored.thumbnail_name == f"{THUMBNAIL_PREFIX}{stored.file_name[:-4]}.jpg"
    assert stored.thumbnail_path == f"/api/v1/static/{THUMBNAIL_SUBDIR}/{stored.thumbnail_name}"
    assert stored.dimensions.width == 800
    assert stored.dimensions.height == 400

    original = store.upload_dir / stored.file_name
    thumbnail = store.thumbnail_dir / stored.thumbnail_name
    assert original.is_file()
    assert stored.size == original.stat().st_size
    with Image.open(thumbnail) as thumb:
        assert thumb.size == (300, 300)
        assert thumb.format == "JPEG"


def test_custom_thumbnail_size(store):
    stored = store.save(make_upload(make_image_bytes(fmt="PNG"), "a.png", "image/png"), thumbnail_size=(120, 80))
    assert stored.file_name.endswith(".png")
    with Image.open(store.thumbnail_dir / stored.thumbnail_name) as thumb:
        assert thumb.size == (120, 80)


def test_generated_names_are_unique(store):
    data = make_image_bytes()
    names = {store.save(make_upload(data)).file_name for _ in range(5)}
    assert len(names) == 5


def test_save_then_delete_leaves_nothing(store):
    stored = store.save(make_upload(make_image_bytes()))

    assert store.delete(stored.file_name) is True
    assert not (store.upload_dir / stored.file_name).exists()
    assert not (store.thumbnail_dir / stored.thumbnail_name).exists()


def test_delete_missing_file_returns_false(store):
    store.ensure_directories()
    assert store.delete("does-not-exist.jpg") is False


def test_delete_without_thumbnail(store):
    stored = store.save(make_upload(make_image_bytes()))
    (store.thumbnail_dir / stored.thumbnail_name).unlink()
    assert store.delete(stored.file_name) is True


@pytest.mark.parametrize("name", ["", "../etc/passwd", "sub/dir.jpg", ".."])
def test_delete_rejects_unsafe_names(store, name):
    with pytest.raises(ValueError):
        store.delete(name)


def test_rejects_disallowed_type(store):
    with pytest.raises(UploadRejectedException) as exc_info:
        store.save(make_upload(b"%PDF-1.4 ...", "doc.pdf", "application/pdf"))
    assert exc_info.value.status_code == 400
    assert "Invalid file type" in exc_info.value.detail


def test_rejects_oversized_file(tmp_path):
    store = FileStore(str(tmp_path), max_size=1024)
    with pytest.raises(UploadRejectedException) as exc_info:
        store.save(make_upload(make_image_bytes(fmt="BMP", size=(100, 100)), "big.bmp", "image/bmp"))
    assert exc_info.value.status_code == 413


def test_rejects_empty_file(store):
    with pytest.raises(UploadRejectedException):
        store.save(make_upload(b""))


def test_rejects_missing_or_long_filename(store):
    with pytest.raises(UploadRejectedException):
        store.save(make_upload(make_image_bytes(), filename=""))
    with pytest.raises(UploadRejectedException):
        store.save(make_upload(make_image_bytes(), filename="a" * 252 + ".jpg"))


def test_rejects_content_not_matching_declared_type(store):
    png = make_image_bytes(fmt="PNG")
    with pytest.raises(UploadRejectedException):
        store.save(make_upload(png, "fake.jpg", "image/jpeg"))


def test_unreadable_image_still_saved_without_thumbnail(store):
    # Valid PNG signature, broken body
    data = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
    stored = store.save(make_upload(data, "broken.png", "image/png"))

    assert (store.upload_dir / stored.file_name).is_file()
    assert stored.thumbnail_name is None
    assert stored.thumbnail_path is None
    assert stored.dimensions is None


def test_extension_fallbacks(store):
    assert store.extension_for("image/webp", "x.bin") == ".webp"
    assert store.extension_for("application/octet-stream", "scan.TIFF") == ".tiff"
    assert store.extension_for(None, "noext") == ".jpg"


def test_stats_counts_files_and_thumbnails(store):
    assert store.stats()["total_files"] == 0
    store.save(make_upload(make_image_bytes()))
    store.save(make_upload(make_image_bytes()))

    stats = store.stats()
    assert stats["total_files"] == 2
    assert stats["total_thumbnails"] == 2
    assert stats["total_size"] > 0


def test_thumbnail_is_jpeg_named_for_any_source_format(store):
    stored = store.save(make_upload(make_image_bytes(fmt="GIF"), "anim.gif", "image/gif"))

    assert stored.file_name.endswith(".gif")
    assert stored.thumbnail_name == thumbnail_name_for(stored.file_name)
    assert stored.thumbnail_name.endswith(".jpg")
    with Image.open(store.thumbnail_dir / stored.thumbnail_name) as thumb:
        assert thumb.format == "JPEG"

    assert store.delete(stored.file_name) is True
    assert not (store.thumbnail_dir / stored.thumbnail_name).exists()


def test_declared_size_rejected_before_reading(tmp_path):
    store = FileStore(str(tmp_path), max_size=1024)
    content = MagicMock(spec=io.BytesIO)
    upload = UploadFile(
        file=content,
        size=10 * 1024 * 1024,
        filename="huge.jpg",
        headers=Headers({"content-type": "image/jpeg"}),
    )

    with pytest.raises(UploadRejectedException) as exc_info:
        store.save(upload)
    assert exc_info.value.status_code == 413
    content.read.assert_not_called()
