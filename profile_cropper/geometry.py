"""
Crop-geometry utilities (pure functions, no I/O, no Qt).

Display space is the container the image is drawn into after letterbox or
pillarbox fitting; source-pixel space is the decoded bitmap.  Every function
here takes and returns plain values so the crop session and the tests can
drive them without a UI.
"""

import logging
import math

from profile_cropper.config import (
    DEFAULT_CROP_RATIO, HANDLE_SIZE, MAX_CROP_RATIO, MAX_CROP_SIZE, MIN_CROP_SIZE,
    RESIZE_BAND_INNER, RESIZE_BAND_MAX_SHARE, RESIZE_BAND_OUTER,
    ROTATE_ZONE_MAX, ROTATE_ZONE_MIN,
)
from profile_cropper.models import CropRect, DisplayMetrics, InteractionMode

logger = logging.getLogger(__name__)


# =============================================================================
# Fitting & mapping
# =============================================================================
def fit_to_container(container_w: float, container_h: float,
                     image_w: float, image_h: float) -> DisplayMetrics | None:
    """Fit an image into a container preserving aspect ratio, centered.

    Returns ``None`` when either size is degenerate.
    """
    if container_w <= 0 or container_h <= 0 or image_w <= 0 or image_h <= 0:
        logger.debug(
            "Invalid geometry: container %sx%s, image %sx%s",
            container_w, container_h, image_w, image_h,
        )
        return None
    image_aspect = image_w / image_h
    container_aspect = container_w / container_h
    if image_aspect > container_aspect:
        disp_w = container_w
        disp_h = container_w / image_aspect
    else:
        disp_w = container_h * image_aspect
        disp_h = container_h
    offset_x = max(0.0, (container_w - disp_w) / 2)
    offset_y = max(0.0, (container_h - disp_h) / 2)
    return DisplayMetrics(disp_w, disp_h, offset_x, offset_y)


def map_display_to_source(x: float, y: float, metrics: DisplayMetrics,
                          source_w: int, source_h: int) -> tuple[float, float]:
    """Map a display-space point into source-pixel space (per-axis scale)."""
    scale_x = source_w / metrics.width
    scale_y = source_h / metrics.height
    return (x - metrics.offset_x) * scale_x, (y - metrics.offset_y) * scale_y


def map_rect_to_source(crop: CropRect, metrics: DisplayMetrics,
                       source_w: int, source_h: int) -> CropRect | None:
    """Map a display-space crop into source-pixel space, or None if impossible."""
    if not metrics.is_valid() or crop.is_empty() or source_w <= 0 or source_h <= 0:
        return None
    x, y = map_display_to_source(crop.x, crop.y, metrics, source_w, source_h)
    return CropRect(
        x, y,
        crop.w * source_w / metrics.width,
        crop.h * source_h / metrics.height,
    )


# =============================================================================
# Limits
# =============================================================================
def max_crop_size(display_w: float, display_h: float) -> float:
    return min(MAX_CROP_SIZE, min(display_w, display_h) * MAX_CROP_RATIO)


def crop_size_limits(metrics: DisplayMetrics) -> tuple[float, float]:
    """Return the (min, max) crop side for a display area.

    The minimum shrinks when the display itself is smaller than
    ``MIN_CROP_SIZE`` so the two limits never cross.
    """
    shorter = min(metrics.width, metrics.height)
    lo = min(MIN_CROP_SIZE, shorter)
    hi = max(lo, max_crop_size(metrics.width, metrics.height))
    return lo, hi


def clamp_crop_to_display(crop: CropRect, metrics: DisplayMetrics) -> CropRect:
    """Clamp crop size and position so it lies fully inside the display area."""
    w = max(1.0, min(crop.w, metrics.width))
    h = max(1.0, min(crop.h, metrics.height))
    x = max(metrics.offset_x, min(crop.x, metrics.right - w))
    y = max(metrics.offset_y, min(crop.y, metrics.bottom - h))
    return CropRect(x, y, w, h)


def default_crop(metrics: DisplayMetrics) -> CropRect:
    """Centered square at half the shorter display side, within the size limits."""
    lo, hi = crop_size_limits(metrics)
    side = min(metrics.width, metrics.height) * DEFAULT_CROP_RATIO
    side = max(lo, min(side, hi))
    x = metrics.offset_x + (metrics.width - side) / 2
    y = metrics.offset_y + (metrics.height - side) / 2
    return CropRect(x, y, side, side)


def snap_to_outer_pixels(rect: CropRect) -> CropRect:
    """Floor the top-left and ceil the bottom-right corner."""
    x = math.floor(rect.x)
    y = math.floor(rect.y)
    right = math.ceil(rect.x + rect.w)
    bottom = math.ceil(rect.y + rect.h)
    return CropRect(x, y, max(0, right - x), max(0, bottom - y))


# =============================================================================
# Angles
# =============================================================================
def angle_of_point(cx: float, cy: float, x: float, y: float) -> float:
    """Angle in degrees of (x, y) around (cx, cy), y pointing down."""
    return math.degrees(math.atan2(y - cy, x - cx))


def normalize_angle(angle: float) -> float:
    """Wrap an angle into (-180, 180]."""
    angle = math.fmod(angle, 360.0)
    if angle <= -180.0:
        angle += 360.0
    elif angle > 180.0:
        angle -= 360.0
    return angle


def _to_local(crop: CropRect, rotation: float, x: float, y: float) -> tuple[float, float]:
    """Undo the selection's visual rotation; returns coordinates relative to its top-left."""
    cx, cy = crop.center()
    theta = math.radians(-rotation)
    dx, dy = x - cx, y - cy
    lx = dx * math.cos(theta) - dy * math.sin(theta)
    ly = dx * math.sin(theta) + dy * math.cos(theta)
    return lx + crop.w / 2, ly + crop.h / 2


# =============================================================================
# Hit testing
# =============================================================================
def classify_press(crop: CropRect, rotation: float, x: float, y: float,
                   scale: float = 1.0) -> InteractionMode:
    """Decide which gesture a pointer press at (x, y) starts.

    Corner handles first, then the ring, then the rotate zones around the
    corners, then the interior.  Handles and zones are tested in the
    selection's own (rotated) frame.  ``scale`` is the device pixel ratio
    applied to the fixed pixel bands.
    """
    if crop.is_empty():
        return InteractionMode.IDLE
    lx, ly = _to_local(crop, rotation, x, y)
    corners = ((0, 0), (crop.w, 0), (0, crop.h), (crop.w, crop.h))

    hs = HANDLE_SIZE * scale
    for corner_x, corner_y in corners:
        if abs(lx - corner_x) <= hs and abs(ly - corner_y) <= hs:
            return InteractionMode.RESIZING

    cx, cy = crop.center()
    radius = crop.w / 2
    dist = math.hypot(x - cx, y - cy)
    inner = min(RESIZE_BAND_INNER * scale, radius * RESIZE_BAND_MAX_SHARE)
    outer = RESIZE_BAND_OUTER * scale

    if dist <= radius - inner:
        return InteractionMode.DRAGGING
    if dist < radius + outer:
        return InteractionMode.RESIZING

    zone_min = ROTATE_ZONE_MIN * scale
    zone_max = ROTATE_ZONE_MAX * scale
    for corner_x, corner_y in corners:
        if zone_min <= math.hypot(lx - corner_x, ly - corner_y) <= zone_max:
            return InteractionMode.ROTATING

    if 0 <= lx <= crop.w and 0 <= ly <= crop.h:
        return InteractionMode.DRAGGING
    return InteractionMode.IDLE


# =============================================================================
# Gestures
# =============================================================================
def move_from_pointer(crop_start: CropRect, pointer_start: tuple[float, float],
                      x: float, y: float, metrics: DisplayMetrics) -> CropRect:
    """Translate the crop by the pointer delta, kept inside the display area."""
    dx = x - pointer_start[0]
    dy = y - pointer_start[1]
    new_x = max(metrics.offset_x, min(metrics.right - crop_start.w, crop_start.x + dx))
    new_y = max(metrics.offset_y, min(metrics.bottom - crop_start.h, crop_start.y + dy))
    return CropRect(new_x, new_y, crop_start.w, crop_start.h)


def resize_from_pointer(crop_start: CropRect, pointer_start: tuple[float, float],
                        x: float, y: float, metrics: DisplayMetrics) -> CropRect:
    """Scale the crop radially about its center by the pointer-distance ratio.

    The half size is clamped to the crop size limits and to the distance from
    the center to the nearest display edge.  If the minimum size does not fit
    around the current center, the center moves inward instead.
    """
    cx, cy = crop_start.center()
    start_len = max(1.0, math.hypot(pointer_start[0] - cx, pointer_start[1] - cy))
    cur_len = math.hypot(x - cx, y - cy)

    lo, hi = crop_size_limits(metrics)
    half = crop_start.w / 2 * (cur_len / start_len)
    half = max(lo / 2, min(half, hi / 2))

    max_half_x = min(cx - metrics.offset_x, metrics.right - cx)
    max_half_y = min(cy - metrics.offset_y, metrics.bottom - cy)
    half = max(lo / 2, min(half, max_half_x, max_half_y))

    side = half * 2
    return clamp_crop_to_display(CropRect(cx - half, cy - half, side, side), metrics)


def rotation_from_pointer(crop: CropRect, start_pointer_angle: float,
                          start_rotation: float, x: float, y: float) -> float:
    cx, cy = crop.center()
    delta = angle_of_point(cx, cy, x, y) - start_pointer_angle
    return normalize_angle(start_rotation + delta)


def nudge(crop: CropRect, dx: float, dy: float, metrics: DisplayMetrics) -> CropRect:
    """Shift the crop by a fixed amount (keyboard), kept inside the display area."""
    return move_from_pointer(crop, (0.0, 0.0), dx, dy, metrics)
