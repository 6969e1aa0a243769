"""
Qt-free image I/O utilities.

Decodes images with their EXIF orientation already applied, caps oversized
sources, encodes the circular output as PNG and generates unique file
paths.  Safe to call from worker threads.
"""

import io
import logging
from pathlib import Path
from typing import BinaryIO

from PIL import Image, ImageOps, UnidentifiedImageError

from profile_cropper.config import IMAGE_EXTENSIONS, MAX_IMAGE_SIZE, PNG_COMPRESS_LEVEL

logger = logging.getLogger(__name__)

ImageSource = Path | str | bytes | BinaryIO


class DecodeError(Exception):
    """Raised when image data cannot be decoded (corrupt or unsupported)."""


def is_supported_image(path: Path) -> bool:
    return path.suffix.lower() in IMAGE_EXTENSIONS


def _as_seekable(source: ImageSource) -> Path | BinaryIO:
    """Return something ``Image.open`` can read and seek in."""
    if isinstance(source, str):
        return Path(source)
    if isinstance(source, Path):
        return source
    if isinstance(source, (bytes, bytearray)):
        return io.BytesIO(source)
    seekable = getattr(source, "seekable", None)
    if seekable is not None and seekable():
        return source
    # EXIF lives in the header; buffer non-seekable streams so it can be read
    return io.BytesIO(source.read())


def _apply_orientation(img: Image.Image) -> Image.Image:
    try:
        return ImageOps.exif_transpose(img)
    except (OSError, ValueError, SyntaxError) as exc:
        logger.warning("Unreadable orientation metadata (%s) — using image as stored", exc)
        return img


def decode_with_orientation(source: ImageSource) -> Image.Image:
    """Decode an image so that its pixel buffer is ready for direct display.

    *source* may be a path, raw bytes or a binary stream.  Animated images
    yield their first frame.  The result is always RGBA.

    Raises
    ------
    DecodeError
        If the data is not a decodable image.
    """
    try:
        with Image.open(_as_seekable(source)) as img:
            img.seek(0)
            img.load()
            oriented = _apply_orientation(img)
            decoded = oriented.convert("RGBA")
    except FileNotFoundError:
        raise
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError, EOFError) as exc:
        raise DecodeError(f"Cannot decode image: {exc}") from exc
    logger.debug("Decoded image %dx%d", decoded.width, decoded.height)
    return decoded


def downscale_if_oversized(img: Image.Image, max_dimension: int = MAX_IMAGE_SIZE) -> Image.Image:
    """Scale down so the longer side equals *max_dimension*; unchanged if it already fits."""
    w, h = img.size
    longest = max(w, h)
    if longest <= max_dimension:
        return img
    scale = max_dimension / longest
    if w >= h:
        new_size = (max_dimension, max(1, round(h * scale)))
    else:
        new_size = (max(1, round(w * scale)), max_dimension)
    logger.info("Downscaling %dx%d source to %dx%d", w, h, *new_size)
    return img.resize(new_size, Image.Resampling.LANCZOS)


def encode_png(img: Image.Image) -> bytes:
    buf = io.BytesIO()
    img.save(buf, "PNG", compress_level=PNG_COMPRESS_LEVEL)
    return buf.getvalue()


def unique_path(out_path: Path, separator: str = "-") -> Path:
    """Return a unique path by appending -01, -02, etc. if file already exists."""
    if not out_path.exists():
        return out_path
    stem = out_path.stem
    suffix = out_path.suffix
    parent = out_path.parent
    counter = 1
    while True:
        candidate = parent / f"{stem}{separator}{counter:02d}{suffix}"
        if not candidate.exists():
            return candidate
        counter += 1
