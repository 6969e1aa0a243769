"""
Data models shared by the geometry engine, the crop session and the renderer.

``CropRect`` lives in display space while the user edits, and in
source-pixel space once it has been mapped for rendering.  ``DisplayMetrics``
describes where the letterboxed image sits inside its container.
``CropSettings`` is the immutable snapshot handed to persistence; it couples
the crop to the display geometry it was computed against.
"""

from dataclasses import dataclass, field
from enum import Enum


# =============================================================================
# Geometry records
# =============================================================================
@dataclass
class CropRect:
    """Crop rectangle.  Always square while it describes a circular selection."""
    x: float = 0.0
    y: float = 0.0
    w: float = 0.0
    h: float = 0.0

    @property
    def right(self) -> float:
        return self.x + self.w

    @property
    def bottom(self) -> float:
        return self.y + self.h

    def center(self) -> tuple[float, float]:
        return self.x + self.w / 2, self.y + self.h / 2

    def is_empty(self) -> bool:
        return self.w <= 0 or self.h <= 0

    def copy(self) -> "CropRect":
        return CropRect(self.x, self.y, self.w, self.h)


@dataclass
class DisplayMetrics:
    """Size and offset of the fitted image inside its container."""
    width: float = 0.0
    height: float = 0.0
    offset_x: float = 0.0
    offset_y: float = 0.0

    @property
    def right(self) -> float:
        return self.offset_x + self.width

    @property
    def bottom(self) -> float:
        return self.offset_y + self.height

    def is_valid(self) -> bool:
        return self.width > 0 and self.height > 0


@dataclass(frozen=True)
class CropSettings:
    """Persisted crop parameters plus the display geometry they belong to."""
    x: float
    y: float
    width: float
    height: float
    rotation_angle: float
    image_display_width: float
    image_display_height: float
    image_display_offset_x: float
    image_display_offset_y: float
    version: int = 1

    def display_metrics(self) -> DisplayMetrics:
        return DisplayMetrics(
            self.image_display_width, self.image_display_height,
            self.image_display_offset_x, self.image_display_offset_y,
        )

    def crop_rect(self) -> CropRect:
        return CropRect(self.x, self.y, self.width, self.height)


# =============================================================================
# Interaction
# =============================================================================
class InteractionMode(Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    RESIZING = "resizing"
    ROTATING = "rotating"


@dataclass
class InteractionState:
    """Snapshot taken at pointer-down; discarded when the gesture ends."""
    mode: InteractionMode = InteractionMode.IDLE
    pointer_start: tuple[float, float] = (0.0, 0.0)
    crop_start: CropRect = field(default_factory=CropRect)
    start_pointer_angle: float = 0.0  # rotation only
    start_rotation: float = 0.0  # rotation only

    @property
    def active(self) -> bool:
        return self.mode is not InteractionMode.IDLE
