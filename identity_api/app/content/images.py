"""Image derivatives rendered with Pillow."""

from io import BytesIO
from pathlib import Path

from PIL import Image, UnidentifiedImageError

_FORMATS = {
    "jpg": "JPEG",
    "jpeg": "JPEG",
    "png": "PNG",
    "gif": "GIF",
    "webp": "WEBP",
}


def is_image(data: bytes) -> bool:
    """Whether Pillow can fully decode ``data`` as an image."""
    try:
        with Image.open(BytesIO(data)) as img:
            img.load()
    except (
        UnidentifiedImageError,
        OSError,
        SyntaxError,
        ValueError,
        Image.DecompressionBombError,
    ):
        return False
    return True


def render_image(source: Path, ext: str, width: int | None = None, height: int | None = None) -> bytes:
    """Render an image in the format of ``ext``, fitted within width x height.

    The aspect ratio is kept and images are never enlarged. A missing
    dimension is unbounded.
    """
    fmt = _FORMATS[ext.lower()]

    with Image.open(source) as img:
        img.load()
        if width or height:
            img.thumbnail((width or img.width, height or img.height))
        if fmt == "JPEG" and img.mode not in ("RGB", "L"):
            img = img.convert("RGB")

        buffer = BytesIO()
        img.save(buffer, format=fmt)
        return buffer.getvalue()
