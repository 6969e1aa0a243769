"""
Crop settings codec: snapshot, remap and (de)serialize crop parameters.

A saved crop is only meaningful together with the display geometry it was
computed against, because that geometry depends on the window size.  On
restore the crop is therefore re-expressed relative to its own saved image
offset, scaled to the current display size and re-anchored at the current
offset, never applied verbatim.

The serialized form is a flat, versioned dict::

    {
        "version": 1,
        "x": 300.0, "y": 300.0, "width": 200.0, "height": 200.0,
        "rotation_angle": 12.5,
        "image_display_width": 800.0, "image_display_height": 400.0,
        "image_display_offset_x": 0.0, "image_display_offset_y": 200.0
    }

This module is Qt-free.
"""

import logging
import math

from profile_cropper.models import CropRect, CropSettings, DisplayMetrics

logger = logging.getLogger(__name__)

_SETTINGS_VERSION = 1
_FLOAT_FIELDS = (
    "x", "y", "width", "height", "rotation_angle",
    "image_display_width", "image_display_height",
    "image_display_offset_x", "image_display_offset_y",
)


# =============================================================================
# Snapshot / remap
# =============================================================================
def serialize(crop: CropRect, rotation: float, metrics: DisplayMetrics) -> CropSettings:
    return CropSettings(
        x=crop.x,
        y=crop.y,
        width=crop.w,
        height=crop.h,
        rotation_angle=rotation,
        image_display_width=metrics.width,
        image_display_height=metrics.height,
        image_display_offset_x=metrics.offset_x,
        image_display_offset_y=metrics.offset_y,
        version=_SETTINGS_VERSION,
    )


def remap(settings: CropSettings, metrics: DisplayMetrics) -> CropRect | None:
    """Re-express a saved crop against new display metrics.

    Returns ``None`` when either geometry has a non-positive size.  The
    result is clamped so it lies fully inside the new display area.
    """
    saved = settings.display_metrics()
    if not saved.is_valid():
        logger.info(
            "Cannot remap crop settings: saved display size %sx%s",
            saved.width, saved.height,
        )
        return None
    if not metrics.is_valid():
        logger.info(
            "Cannot remap crop settings: current display size %sx%s",
            metrics.width, metrics.height,
        )
        return None

    if saved == metrics:
        new_x, new_y = settings.x, settings.y
        new_w, new_h = settings.width, settings.height
    else:
        scale_x = metrics.width / saved.width
        scale_y = metrics.height / saved.height
        new_x = metrics.offset_x + (settings.x - saved.offset_x) * scale_x
        new_y = metrics.offset_y + (settings.y - saved.offset_y) * scale_y
        new_w = settings.width * scale_x
        new_h = settings.height * scale_y

    new_w = max(1.0, min(new_w, metrics.width))
    new_h = max(1.0, min(new_h, metrics.height))
    # Per-axis scales can drift apart by rounding; the selection stays square
    side = min(new_w, new_h)
    new_x = max(metrics.offset_x, min(metrics.right - side, new_x))
    new_y = max(metrics.offset_y, min(metrics.bottom - side, new_y))
    return CropRect(new_x, new_y, side, side)


def remap_rect(crop: CropRect, old: DisplayMetrics, new: DisplayMetrics) -> CropRect | None:
    """Remap a live crop after the container changed size."""
    return remap(serialize(crop, 0.0, old), new)


# =============================================================================
# Dict form
# =============================================================================
def settings_to_dict(settings: CropSettings) -> dict:
    data = {"version": settings.version}
    for name in _FLOAT_FIELDS:
        data[name] = getattr(settings, name)
    return data


def settings_from_dict(data: dict) -> CropSettings | None:
    """Decode a serialized record, or None if it is malformed or from another version."""
    if not isinstance(data, dict):
        return None
    if data.get("version", _SETTINGS_VERSION) != _SETTINGS_VERSION:
        logger.warning("Crop settings version %r not supported — ignoring", data.get("version"))
        return None

    values = {}
    for name in _FLOAT_FIELDS:
        raw = data.get(name, 0.0 if name == "rotation_angle" else None)
        if isinstance(raw, bool) or not isinstance(raw, (int, float)) or not math.isfinite(raw):
            logger.warning("Crop settings field %r missing or invalid — ignoring record", name)
            return None
        values[name] = float(raw)
    return CropSettings(version=_SETTINGS_VERSION, **values)
