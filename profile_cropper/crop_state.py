"""
Crop session: the state machine behind the interactive circular cropper.

``CropSession`` owns the crop rectangle, rotation, display metrics and the
active gesture for one source image.  Pointer input arrives in container
coordinates; every update goes through ``geometry``.  Live previews are
requested through a callback, rate limited by ``PreviewThrottle`` while a
gesture is active and sent once unthrottled when it ends.

Qt-free; the widget in ``crop_widget`` is a thin adapter on top of it.
"""

import logging
import time
from typing import Callable

from profile_cropper import geometry
from profile_cropper.config import FALLBACK_CROP, FALLBACK_DISPLAY, PREVIEW_THROTTLE_SECONDS
from profile_cropper.models import (
    CropRect, CropSettings, DisplayMetrics, InteractionMode, InteractionState,
)
from profile_cropper.settings_codec import remap, remap_rect, serialize

logger = logging.getLogger(__name__)

# Receives True for a final (unthrottled) preview, False for a live one
PreviewCallback = Callable[[bool], None]


class PreviewThrottle:
    """Allow at most one event per interval.  Rejected events are dropped."""

    def __init__(self, interval: float = PREVIEW_THROTTLE_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        self._interval = interval
        self._clock = clock
        self._last: float | None = None

    def ready(self) -> bool:
        now = self._clock()
        if self._last is not None and now - self._last < self._interval:
            return False
        self._last = now
        return True

    def reset(self):
        self._last = None


class CropSession:
    """Crop selection state for one editing session."""

    def __init__(self, on_preview: PreviewCallback | None = None,
                 throttle: PreviewThrottle | None = None, pixel_ratio: float = 1.0):
        self._on_preview = on_preview
        self._throttle = throttle or PreviewThrottle()
        self.pixel_ratio = pixel_ratio

        self._source_w = 0
        self._source_h = 0
        self._container = (0.0, 0.0)
        self._metrics = DisplayMetrics()
        self._crop = CropRect()
        self._rotation = 0.0
        self._interaction = InteractionState()

        # Last geometry computed from a usable container
        self._good_metrics: DisplayMetrics | None = None
        self._good_crop: CropRect | None = None
        self._pending_restore: CropSettings | None = None

    # --- Read access ---

    @property
    def crop(self) -> CropRect:
        return self._crop.copy()

    @property
    def rotation(self) -> float:
        return self._rotation

    @property
    def metrics(self) -> DisplayMetrics:
        return DisplayMetrics(
            self._metrics.width, self._metrics.height,
            self._metrics.offset_x, self._metrics.offset_y,
        )

    @property
    def mode(self) -> InteractionMode:
        return self._interaction.mode

    @property
    def source_size(self) -> tuple[int, int]:
        return self._source_w, self._source_h

    def has_image(self) -> bool:
        return self._source_w > 0 and self._source_h > 0

    def is_renderable(self) -> bool:
        return self.has_image() and self._metrics.is_valid() and not self._crop.is_empty()

    # --- Lifecycle ---

    def initialize(self, container_w: float, container_h: float,
                   source_w: int, source_h: int,
                   restore: CropSettings | None = None) -> bool:
        """Start a session for a source of the given pixel size.

        Returns True if *restore* was applied, False if the default crop
        was used instead.
        """
        if source_w <= 0 or source_h <= 0:
            logger.debug("initialize() without a source image, ignoring")
            return False
        self._source_w = source_w
        self._source_h = source_h
        self._container = (container_w, container_h)
        self._interaction = InteractionState()
        self._throttle.reset()
        self._good_metrics = None
        self._good_crop = None
        self._pending_restore = None

        if not self._apply_metrics(container_w, container_h):
            # Layout not ready yet; try again on the next usable resize
            self._pending_restore = restore
            return False
        return self._restore_or_default(restore)

    def replace_source(self, source_w: int, source_h: int):
        """Swap in a source of a new pixel size (e.g. after a 90° rotation)."""
        if not self.has_image():
            return
        container_w, container_h = self._container
        self.initialize(container_w, container_h, source_w, source_h)

    def reset(self):
        """Return to the default crop for the current geometry."""
        if not self.has_image():
            return
        self._cancel_gesture()
        if self._metrics.is_valid():
            self._reset_crop()

    def clear(self):
        self._source_w = 0
        self._source_h = 0
        self._metrics = DisplayMetrics()
        self._crop = CropRect()
        self._rotation = 0.0
        self._interaction = InteractionState()
        self._good_metrics = None
        self._good_crop = None
        self._pending_restore = None

    def container_resized(self, container_w: float, container_h: float):
        """Recompute the display metrics and carry the crop over proportionally."""
        if not self.has_image():
            return
        self._cancel_gesture()
        self._container = (container_w, container_h)
        old_metrics = self._metrics
        old_crop = self._crop
        had_good = self._good_metrics is not None
        if not self._apply_metrics(container_w, container_h):
            return
        if self._pending_restore is not None:
            restore, self._pending_restore = self._pending_restore, None
            self._restore_or_default(restore)
            return
        carried = None
        if had_good and old_metrics.is_valid() and not old_crop.is_empty():
            carried = remap_rect(old_crop, old_metrics, self._metrics)
        if carried is None:
            self._crop = geometry.default_crop(self._metrics)
        else:
            self._crop = carried
        self._remember_good()

    # --- Pointer input ---

    def pointer_down(self, x: float, y: float) -> InteractionMode:
        if not self.is_renderable():
            return InteractionMode.IDLE
        mode = geometry.classify_press(self._crop, self._rotation, x, y, self.pixel_ratio)
        if mode is InteractionMode.IDLE:
            return mode
        state = InteractionState(mode=mode, pointer_start=(x, y), crop_start=self._crop.copy())
        if mode is InteractionMode.ROTATING:
            cx, cy = self._crop.center()
            state.start_pointer_angle = geometry.angle_of_point(cx, cy, x, y)
            state.start_rotation = self._rotation
        self._interaction = state
        self._throttle.reset()
        logger.debug("Gesture %s started at (%.1f, %.1f)", mode.value, x, y)
        return mode

    def pointer_move(self, x: float, y: float) -> bool:
        """Apply the active gesture.  Returns True if the geometry changed."""
        state = self._interaction
        if not state.active or not self.has_image():
            return False
        if state.mode is InteractionMode.DRAGGING:
            self._crop = geometry.move_from_pointer(
                state.crop_start, state.pointer_start, x, y, self._metrics)
        elif state.mode is InteractionMode.RESIZING:
            self._crop = geometry.resize_from_pointer(
                state.crop_start, state.pointer_start, x, y, self._metrics)
        elif state.mode is InteractionMode.ROTATING:
            self._rotation = geometry.rotation_from_pointer(
                self._crop, state.start_pointer_angle, state.start_rotation, x, y)
        self._remember_good()
        if self._throttle.ready():
            self._request_preview(final=False)
        return True

    def pointer_up(self):
        if not self._interaction.active:
            return
        self._interaction = InteractionState()
        self._request_preview(final=True)

    def capture_lost(self):
        """Pointer capture went away: end the gesture, keep what was applied."""
        if self._interaction.active:
            logger.debug("Pointer capture lost during %s", self._interaction.mode.value)
        self._interaction = InteractionState()

    def nudge(self, dx: float, dy: float) -> bool:
        if not self.is_renderable() or self._interaction.active:
            return False
        self._crop = geometry.nudge(self._crop, dx, dy, self._metrics)
        self._remember_good()
        self._request_preview(final=True)
        return True

    # --- Output ---

    def settings(self) -> CropSettings | None:
        if not self.is_renderable():
            return None
        return serialize(self._crop, self._rotation, self._metrics)

    def source_crop_rect(self, source_w: int | None = None,
                         source_h: int | None = None) -> CropRect | None:
        """The crop mapped into the pixel space of a bitmap of the given size.

        Defaults to the session's source size; pass another size to map onto
        a differently scaled copy of the same image.
        """
        if not self.is_renderable():
            return None
        return geometry.map_rect_to_source(
            self._crop, self._metrics,
            source_w or self._source_w, source_h or self._source_h,
        )

    # --- Internals ---

    def _apply_metrics(self, container_w: float, container_h: float) -> bool:
        metrics = geometry.fit_to_container(
            container_w, container_h, self._source_w, self._source_h)
        if metrics is not None:
            self._metrics = metrics
            return True
        if self._good_metrics is not None:
            self._metrics = self._good_metrics
            self._crop = self._good_crop.copy()
        else:
            self._metrics = DisplayMetrics(
                FALLBACK_DISPLAY[2], FALLBACK_DISPLAY[3], FALLBACK_DISPLAY[0], FALLBACK_DISPLAY[1])
            self._crop = CropRect(*FALLBACK_CROP)
            self._rotation = 0.0
        return False

    def _restore_or_default(self, restore: CropSettings | None) -> bool:
        if restore is not None:
            restored = remap(restore, self._metrics)
            if restored is not None:
                self._crop = restored
                self._rotation = geometry.normalize_angle(restore.rotation_angle)
                self._remember_good()
                return True
            logger.info("Falling back to default crop after remap failure")
        self._reset_crop()
        return False

    def _reset_crop(self):
        self._crop = geometry.default_crop(self._metrics)
        self._rotation = 0.0
        self._remember_good()

    def _remember_good(self):
        self._good_metrics = self.metrics
        self._good_crop = self._crop.copy()

    def _cancel_gesture(self):
        if self._interaction.active:
            logger.debug("Gesture %s aborted", self._interaction.mode.value)
        self._interaction = InteractionState()

    def _request_preview(self, final: bool):
        if self._on_preview is not None and self.is_renderable():
            self._on_preview(final)
