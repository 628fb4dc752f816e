"""Unit tests for content storage and image download."""

from io import BytesIO
from pathlib import Path

import pytest
from fastapi.responses import FileResponse
from PIL import Image

from identity_api.app.content.cache import InMemoryImageCache
from identity_api.app.content.storage import (
    USER_IMAGE,
    ContentStore,
    UploadConfig,
    download_image,
)
from identity_api.app.errors import ConstraintViolationError, NotFoundError


def png_bytes(width: int = 40, height: int = 20) -> bytes:
    buffer = BytesIO()
    Image.new("RGBA", (width, height), (255, 0, 0, 128)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def store(tmp_path: Path) -> ContentStore:
    return ContentStore(tmp_path, max_size=1024 * 1024)


class TestContentStore:
    """Test file validation and storage."""

    def test_store_writes_under_config_directory(self, store: ContentStore) -> None:
        path = store.store(USER_IMAGE, "me.JPG", png_bytes())

        assert path.startswith("users/")
        assert path.endswith(".jpg")
        assert store.absolute_path(path).read_bytes() == png_bytes()

    def test_store_names_are_unique(self, store: ContentStore) -> None:
        first = store.store(USER_IMAGE, "me.png", png_bytes())
        second = store.store(USER_IMAGE, "me.png", png_bytes())

        assert first != second

    def test_store_rejects_extension(self, store: ContentStore) -> None:
        with pytest.raises(ConstraintViolationError) as exc_info:
            store.store(USER_IMAGE, "script.exe", b"data")

        assert exc_info.value.errors[0].field == "file"

    def test_store_rejects_empty_file(self, store: ContentStore) -> None:
        with pytest.raises(ConstraintViolationError, match="Validation Failed"):
            store.store(USER_IMAGE, "me.png", b"")

    def test_store_rejects_oversized_file(self, store: ContentStore) -> None:
        config = UploadConfig(name="tiny", directory="tiny", max_size=3)

        with pytest.raises(ConstraintViolationError) as exc_info:
            store.store(config, "me.png", b"data")

        assert "too large" in exc_info.value.errors[0].message

    def test_store_rejects_undecodable_content(self, store: ContentStore, tmp_path: Path) -> None:
        with pytest.raises(ConstraintViolationError) as exc_info:
            store.store(USER_IMAGE, "me.png", b"not an image")

        assert exc_info.value.errors[0].field == "file"
        assert exc_info.value.errors[0].message == "This file is not a valid image."
        assert not (tmp_path / "users").exists()

    def test_store_rejects_truncated_image(self, store: ContentStore) -> None:
        buffer = BytesIO()
        Image.effect_noise((64, 64), 64).save(buffer, format="PNG")
        data = buffer.getvalue()

        with pytest.raises(ConstraintViolationError):
            store.store(USER_IMAGE, "me.png", data[: len(data) // 2])

    def test_absolute_path_rejects_traversal(self, store: ContentStore) -> None:
        with pytest.raises(ValueError, match="outside of content root"):
            store.absolute_path("../../etc/passwd")

        assert store.exists("../../etc/passwd") is False

    def test_remove_missing_file_raises(self, store: ContentStore) -> None:
        with pytest.raises(FileNotFoundError):
            store.remove_file("users/missing.png")


class TestDownloadImage:
    """Test serving stored images and derivatives."""

    def test_missing_path_is_not_found(self, store: ContentStore) -> None:
        with pytest.raises(NotFoundError):
            download_image(store, USER_IMAGE, None, "alice", "png")

    def test_missing_file_is_not_found(self, store: ContentStore) -> None:
        with pytest.raises(NotFoundError):
            download_image(store, USER_IMAGE, "users/gone.png", "alice", "png")

    def test_unsupported_extension_is_not_found(self, store: ContentStore) -> None:
        path = store.store(USER_IMAGE, "me.png", png_bytes())

        with pytest.raises(NotFoundError):
            download_image(store, USER_IMAGE, path, "alice", "bmp")

    def test_same_format_is_served_as_file(self, store: ContentStore) -> None:
        path = store.store(USER_IMAGE, "me.png", png_bytes())

        response = download_image(store, USER_IMAGE, path, "Alice Anderson", "png")

        assert isinstance(response, FileResponse)
        assert response.media_type == "image/png"
        assert response.headers["content-disposition"] == (
            "inline; filename*=utf-8''Alice%20Anderson.png"
        )

    def test_resized_derivative_is_rendered_and_cached(self, store: ContentStore) -> None:
        path = store.store(USER_IMAGE, "me.png", png_bytes(40, 20))
        cache = InMemoryImageCache()

        response = download_image(store, USER_IMAGE, path, "alice", "jpg", width=10, cache=cache)

        with Image.open(BytesIO(response.body)) as img:
            assert img.format == "JPEG"
            assert img.size == (10, 5)
        source = str(store.absolute_path(path))
        assert cache.get(source, "10x0.jpg") == response.body

    def test_cached_derivative_is_reused(self, store: ContentStore) -> None:
        path = store.store(USER_IMAGE, "me.png", png_bytes())
        cache = InMemoryImageCache()
        cache.put(str(store.absolute_path(path)), "0x0.gif", b"cached")

        response = download_image(store, USER_IMAGE, path, "alice", "gif", cache=cache)

        assert response.body == b"cached"
        assert response.headers["content-disposition"] == 'inline; filename="alice.gif"'

    def test_unreadable_stored_file_is_not_found(self, store: ContentStore) -> None:
        source = store.absolute_path("users/broken.png")
        source.parent.mkdir(parents=True)
        source.write_bytes(b"not an image")
        cache = InMemoryImageCache()

        with pytest.raises(NotFoundError):
            download_image(store, USER_IMAGE, "users/broken.png", "alice", "png", width=10, cache=cache)

        assert str(source) not in cache
