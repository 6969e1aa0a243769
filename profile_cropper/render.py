"""
Circular crop rendering (Qt-free).

``render_crop`` turns a source bitmap plus a crop rectangle in source-pixel
space into a square RGBA image clipped to its inscribed circle.  Unrotated
crops are a straight resampled blit; rotated crops sample the whole source
through one affine transform so the rotation pivots on the crop's own
center.  Two quality tiers exist: a cheap bilinear preview for live
dragging and a supersampled LANCZOS render for the final output.
"""

import logging
import math
from enum import Enum

from PIL import Image, ImageChops, ImageDraw

from profile_cropper.config import (
    HIGH_QUALITY_SUPERSAMPLE, PREVIEW_SIZE, PROFILE_IMAGE_OUTPUT_SIZE, ROTATION_EPSILON,
)
from profile_cropper.models import CropRect

logger = logging.getLogger(__name__)

_TRANSPARENT = (0, 0, 0, 0)

# Clockwise quarter turns -> lossless transpose
_QUARTER_TURNS = {
    90: Image.Transpose.ROTATE_270,
    180: Image.Transpose.ROTATE_180,
    270: Image.Transpose.ROTATE_90,
}


class Quality(Enum):
    LOW = "low"
    HIGH = "high"


# =============================================================================
# Masks & sampling
# =============================================================================
def circle_mask(size: int, quality: Quality = Quality.HIGH) -> Image.Image:
    """Return an ``L`` mask with the inscribed circle of a *size* square opaque."""
    factor = HIGH_QUALITY_SUPERSAMPLE * 2 if quality is Quality.HIGH else 1
    big = size * factor
    mask = Image.new("L", (big, big), 0)
    ImageDraw.Draw(mask).ellipse((0, 0, big - 1, big - 1), fill=255)
    if factor == 1:
        return mask
    return mask.resize((size, size), Image.Resampling.LANCZOS)


def _affine_coefficients(crop: CropRect, rotation: float, size: int) -> tuple:
    """Coefficients mapping output pixels back into the source.

    Forward: translate crop center to the origin, rotate, scale the crop to
    *size*, translate to the output center.  Pillow wants the inverse.
    """
    cx, cy = crop.center()
    theta = math.radians(rotation)
    cos_t, sin_t = math.cos(theta), math.sin(theta)
    sx = size / crop.w
    sy = size / crop.h
    half = size / 2
    a = cos_t / sx
    b = sin_t / sy
    d = -sin_t / sx
    e = cos_t / sy
    c = cx - a * half - b * half
    f = cy - d * half - e * half
    return (a, b, c, d, e, f)


def _sample(source: Image.Image, crop: CropRect, rotation: float,
            size: int, quality: Quality) -> Image.Image:
    if abs(rotation) <= ROTATION_EPSILON:
        resample = Image.Resampling.LANCZOS if quality is Quality.HIGH else Image.Resampling.BILINEAR
        # Pillow rejects boxes that leave the image, even by rounding noise
        x0 = max(0.0, min(crop.x, source.width - 1))
        y0 = max(0.0, min(crop.y, source.height - 1))
        x1 = max(x0 + 1, min(crop.right, source.width))
        y1 = max(y0 + 1, min(crop.bottom, source.height))
        return source.resize((size, size), resample, box=(x0, y0, x1, y1))

    if quality is Quality.LOW:
        return source.transform(
            (size, size), Image.Transform.AFFINE,
            _affine_coefficients(crop, rotation, size),
            resample=Image.Resampling.BILINEAR, fillcolor=_TRANSPARENT,
        )

    big = size * HIGH_QUALITY_SUPERSAMPLE
    sampled = source.transform(
        (big, big), Image.Transform.AFFINE,
        _affine_coefficients(crop, rotation, big),
        resample=Image.Resampling.BICUBIC, fillcolor=_TRANSPARENT,
    )
    return sampled.resize((size, size), Image.Resampling.LANCZOS)


# =============================================================================
# Public API
# =============================================================================
def render_crop(source: Image.Image | None, crop: CropRect | None, rotation: float,
                output_size: int, quality: Quality = Quality.HIGH) -> Image.Image | None:
    """Render a circular crop of *source* at ``output_size`` x ``output_size``.

    Parameters
    ----------
    source : Image.Image
        Bitmap to sample from.
    crop : CropRect
        Crop rectangle in *source* pixel coordinates.
    rotation : float
        Degrees, applied around the crop's center.
    output_size : int
        Edge of the square output.
    quality : Quality
        ``LOW`` for live previews, ``HIGH`` for the final image.

    Returns ``None`` (render skipped) when there is nothing valid to draw.
    """
    if source is None or crop is None or crop.is_empty() or output_size <= 0:
        logger.debug("Render skipped: source=%s crop=%s size=%s", source is not None, crop, output_size)
        return None
    if source.mode != "RGBA":
        source = source.convert("RGBA")

    out = _sample(source, crop, rotation, output_size, quality)
    mask = circle_mask(output_size, quality)
    out.putalpha(ImageChops.multiply(out.getchannel("A"), mask))
    return out


def render_preview(source: Image.Image | None, crop: CropRect | None,
                   rotation: float) -> Image.Image | None:
    return render_crop(source, crop, rotation, PREVIEW_SIZE, Quality.LOW)


def render_final(source: Image.Image | None, crop: CropRect | None,
                 rotation: float) -> Image.Image | None:
    return render_crop(source, crop, rotation, PROFILE_IMAGE_OUTPUT_SIZE, Quality.HIGH)


def rotate_bitmap_by_90_multiple(img: Image.Image, degrees: int) -> Image.Image:
    """Rotate clockwise by a multiple of 90 degrees without resampling.

    Takes ownership of *img*: it is closed and a new image is returned.
    """
    if degrees % 90 != 0:
        raise ValueError(f"Rotation must be a multiple of 90 degrees, got {degrees}")
    turn = degrees % 360
    if turn == 0:
        rotated = img.copy()
    else:
        rotated = img.transpose(_QUARTER_TURNS[turn])
    img.close()
    return rotated
