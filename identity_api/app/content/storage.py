"""Content storage: upload configs, file store, and image download."""

import logging
import mimetypes
import uuid
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote

from fastapi import Response
from fastapi.responses import FileResponse

from identity_api.app.content.cache import ImageCache
from identity_api.app.content.images import is_image, render_image
from identity_api.app.errors import ConstraintViolationError, FieldError, NotFoundError

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = ("jpg", "jpeg", "png", "gif", "webp")


@dataclass(frozen=True)
class UploadConfig:
    """Upload target kind: where files go and which files are accepted."""

    name: str
    directory: str
    extensions: tuple[str, ...] = IMAGE_EXTENSIONS
    max_size: int | None = None


USER_IMAGE = UploadConfig(name="user_image", directory="users")
ORGANIZATION_IMAGE = UploadConfig(name="organization_image", directory="organizations")
USER_PROFILE_IMAGE = UploadConfig(name="user_profile_image", directory="profiles")

UPLOAD_CONFIGS: dict[str, UploadConfig] = {
    config.name: config for config in (USER_IMAGE, ORGANIZATION_IMAGE, USER_PROFILE_IMAGE)
}


def _extension(filename: str) -> str:
    return Path(filename).suffix.lower().lstrip(".")


def _content_disposition(filename: str) -> str:
    quoted = quote(filename)
    if quoted != filename:
        return f"inline; filename*=utf-8''{quoted}"
    return f'inline; filename="{filename}"'


def _same_format(ext: str, other: str) -> bool:
    aliases = {"jpeg": "jpg"}
    return aliases.get(ext, ext) == aliases.get(other, other)


class ContentStore:
    """File store rooted at a directory; entities keep paths relative to it."""

    def __init__(self, root: str | Path, max_size: int | None = None) -> None:
        self._root = Path(root).resolve()
        self._max_size = max_size

    def store(self, config: UploadConfig, filename: str, data: bytes) -> str:
        """Validate and write an uploaded file under a unique name.

        Args:
            config: Upload target kind
            filename: Client file name (only its extension is kept)
            data: File content

        Returns:
            Path of the stored file, relative to the store root

        Raises:
            ConstraintViolationError: Extension not allowed, empty, oversized or undecodable file
        """
        ext = _extension(filename)
        max_size = config.max_size or self._max_size
        if ext not in config.extensions:
            raise ConstraintViolationError(
                [
                    FieldError(
                        field="file",
                        message=f"Allowed file extensions are: {', '.join(config.extensions)}.",
                    )
                ]
            )
        if not data:
            raise ConstraintViolationError([FieldError(field="file", message="The file is empty.")])
        if max_size is not None and len(data) > max_size:
            raise ConstraintViolationError(
                [FieldError(field="file", message=f"The file is too large (max {max_size} bytes).")]
            )
        if not is_image(data):
            raise ConstraintViolationError(
                [FieldError(field="file", message="This file is not a valid image.")]
            )

        relative = f"{config.directory}/{uuid.uuid4().hex}.{ext}"
        path = self.absolute_path(relative)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

        logger.debug(f"Stored {config.name} file", extra={"structured": {"path": relative}})
        return relative

    def absolute_path(self, relative: str) -> Path:
        """Resolve a stored path.

        Raises:
            ValueError: Path escapes the store root
        """
        path = (self._root / relative).resolve()
        if not path.is_relative_to(self._root):
            raise ValueError(f"Path outside of content root: {relative!r}")
        return path

    def exists(self, relative: str | None) -> bool:
        if not relative:
            return False
        try:
            return self.absolute_path(relative).is_file()
        except ValueError:
            return False

    def remove_file(self, relative: str) -> None:
        """Delete a stored file.

        Raises:
            FileNotFoundError: File already gone
            PermissionError: File not removable
            OSError: Any other filesystem failure
        """
        self.absolute_path(relative).unlink()


def download_image(
    store: ContentStore,
    config: UploadConfig,
    path: str | None,
    name: str,
    ext: str,
    width: int | None = None,
    height: int | None = None,
    cache: ImageCache | None = None,
) -> Response:
    """Serve the image of an entity.

    The stored file is served as is when its format matches ``ext`` and no
    size is requested; otherwise a derivative is rendered and cached under
    the absolute source path.

    Raises:
        NotFoundError: No image, file gone, unsupported extension or unreadable file
    """
    ext = ext.lower()
    if path is None or ext not in config.extensions or not store.exists(path):
        raise NotFoundError()

    source = store.absolute_path(path)
    filename = f"{name}.{ext}"
    media_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"
    headers = {"Content-Disposition": _content_disposition(filename)}

    if _same_format(_extension(path), ext) and width is None and height is None:
        return FileResponse(source, media_type=media_type, headers=headers)

    variant = f"{width or 0}x{height or 0}.{ext}"
    data = cache.get(str(source), variant) if cache is not None else None
    if data is None:
        try:
            data = render_image(source, ext, width, height)
        except OSError as e:
            logger.warning(
                "Stored image could not be rendered",
                extra={"structured": {"path": path, "variant": variant, "error": str(e)}},
            )
            raise NotFoundError() from e
        if cache is not None:
            cache.put(str(source), variant, data)

    return Response(content=data, media_type=media_type, headers=headers)
