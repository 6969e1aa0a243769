"""
Crop editor: one editing session from decoded image to committed PNG.

``CropEditor`` holds the two bitmap handles of a session (full resolution,
capped at ``MAX_IMAGE_SIZE``, and a smaller display copy for previews),
drives a ``CropSession`` and talks to the injected persistence
collaborators.  The commit is split so the UI can run the expensive part
on a worker thread:

* ``snapshot_commit()`` freezes the crop, rotation and settings and copies
  the full-resolution bitmap (UI thread);
* ``render_commit(job)`` renders and encodes the snapshot.  It never touches
  the editor, so later edits cannot change or close what it reads;
* ``publish_commit()`` persists and notifies (UI thread).

Qt-free.
"""

import logging
from dataclasses import dataclass, replace
from typing import Callable

from PIL import Image

from profile_cropper.config import DISPLAY_IMAGE_SIZE, PREVIEW_SIZE
from profile_cropper.crop_state import CropSession, PreviewThrottle
from profile_cropper.models import CropRect
from profile_cropper.image_io import ImageSource, decode_with_orientation, downscale_if_oversized, encode_png
from profile_cropper.profile_store import PersistenceCollaborator
from profile_cropper.render import Quality, render_crop, render_final, rotate_bitmap_by_90_multiple
from profile_cropper.settings_codec import settings_to_dict
from profile_cropper.settings_store import SettingsStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommitResult:
    """Payload emitted on commit."""
    png_bytes: bytes
    settings: dict
    source_id: str | None
    storage_path: str | None = None


@dataclass(frozen=True)
class CommitJob:
    """Everything the final render needs, detached from the live session.

    ``image`` is a private copy of the full-resolution bitmap and is closed
    by ``render_commit``.
    """
    image: Image.Image
    crop: CropRect
    rotation: float
    settings: dict
    source_id: str | None


def render_commit(job: CommitJob) -> CommitResult | None:
    """Render and encode a snapshot; safe to run on a worker thread."""
    try:
        output = render_final(job.image, job.crop, job.rotation)
    finally:
        job.image.close()
    if output is None:
        return None
    return CommitResult(
        png_bytes=encode_png(output),
        settings=job.settings,
        source_id=job.source_id,
    )


class CropEditor:
    def __init__(
        self,
        settings_store: SettingsStore | None = None,
        persistence: PersistenceCollaborator | None = None,
        on_committed: Callable[[CommitResult], None] | None = None,
        on_cancelled: Callable[[], None] | None = None,
        on_preview: Callable[[Image.Image | None], None] | None = None,
        throttle: PreviewThrottle | None = None,
    ):
        self._settings_store = settings_store
        self._persistence = persistence
        self.on_committed = on_committed
        self.on_cancelled = on_cancelled
        self.on_preview = on_preview

        self.session = CropSession(on_preview=self._preview_requested, throttle=throttle)
        self._full: Image.Image | None = None
        self._display: Image.Image | None = None
        self.source_id: str | None = None
        self.last_preview: Image.Image | None = None

    # =========================================================================
    # Loading
    # =========================================================================
    def has_image(self) -> bool:
        return self._full is not None

    @property
    def full_image(self) -> Image.Image | None:
        return self._full

    @property
    def display_image(self) -> Image.Image | None:
        return self._display

    def load(self, source: ImageSource, source_id: str | None = None,
             container_w: float = 0, container_h: float = 0) -> bool:
        """Decode *source* and start a session on it.

        Raises ``DecodeError`` without touching the current session.
        Returns True if saved crop settings were restored.
        """
        decoded = decode_with_orientation(source)
        return self.load_decoded(decoded, source_id, container_w, container_h)

    def load_decoded(self, decoded: Image.Image, source_id: str | None = None,
                     container_w: float = 0, container_h: float = 0) -> bool:
        """Start a session on an already decoded image (takes ownership)."""
        full = downscale_if_oversized(decoded)
        if full is not decoded:
            decoded.close()
        self._release()
        self._full = full
        self._display = self._make_display_copy(full)
        self.source_id = source_id

        restore = None
        if source_id is not None and self._settings_store is not None:
            restore = self._settings_store.load_crop_settings(source_id)
        restored = self.session.initialize(container_w, container_h, full.width, full.height, restore)
        logger.info(
            "Loaded %s (%dx%d), settings %s",
            source_id or "<stream>", full.width, full.height,
            "restored" if restored else "default",
        )
        self.render_preview()
        return restored

    @staticmethod
    def _make_display_copy(full: Image.Image) -> Image.Image:
        display = downscale_if_oversized(full, DISPLAY_IMAGE_SIZE)
        return full.copy() if display is full else display

    # =========================================================================
    # Editing
    # =========================================================================
    def container_resized(self, container_w: float, container_h: float):
        if not self.has_image():
            return
        self.session.container_resized(container_w, container_h)
        self.render_preview()

    def reset(self):
        if not self.has_image():
            return
        self.session.reset()
        self.render_preview()

    def rotate_by_90(self, direction: int):
        """Rotate the image itself a quarter turn (+1 clockwise, -1 counter-clockwise)."""
        if not self.has_image():
            return
        degrees = 90 if direction > 0 else 270
        self._full = rotate_bitmap_by_90_multiple(self._full, degrees)
        self._display = rotate_bitmap_by_90_multiple(self._display, degrees)
        self.session.replace_source(self._full.width, self._full.height)
        logger.debug("Rotated source to %dx%d", self._full.width, self._full.height)
        self.render_preview()

    # =========================================================================
    # Rendering
    # =========================================================================
    def render_preview(self, final: bool = True) -> Image.Image | None:
        """Render the small preview from the display copy; None if nothing to show."""
        preview = None
        if self._display is not None:
            crop = self.session.source_crop_rect(self._display.width, self._display.height)
            quality = Quality.HIGH if final else Quality.LOW
            preview = render_crop(self._display, crop, self.session.rotation, PREVIEW_SIZE, quality)
        self.last_preview = preview
        if self.on_preview is not None:
            self.on_preview(preview)
        return preview

    def _preview_requested(self, final: bool):
        self.render_preview(final)

    # =========================================================================
    # Commit / cancel
    # =========================================================================
    def snapshot_commit(self) -> CommitJob | None:
        """Freeze the current crop for ``render_commit``; None when there is nothing to commit."""
        settings = self.session.settings()
        if self._full is None or settings is None:
            logger.debug("Commit skipped: no image or invalid crop")
            return None
        crop = self.session.source_crop_rect(self._full.width, self._full.height)
        if crop is None:
            return None
        return CommitJob(
            image=self._full.copy(),
            crop=crop,
            rotation=self.session.rotation,
            settings=settings_to_dict(settings),
            source_id=self.source_id,
        )

    def build_commit(self) -> CommitResult | None:
        """Render the full-resolution output; None when there is nothing to commit."""
        job = self.snapshot_commit()
        if job is None:
            return None
        return render_commit(job)

    def publish_commit(self, result: CommitResult) -> CommitResult:
        """Persist a built commit and notify.  ``OSError`` propagates; the session is kept."""
        storage_path = None
        if self._persistence is not None:
            storage_path = self._persistence.save(result.png_bytes)
        if self._settings_store is not None and result.source_id is not None:
            self._settings_store.persist_crop_settings(result.source_id, result.settings)
        result = replace(result, storage_path=storage_path)
        if self.on_committed is not None:
            self.on_committed(result)
        return result

    def commit(self) -> CommitResult | None:
        result = self.build_commit()
        if result is None:
            return None
        return self.publish_commit(result)

    def cancel(self):
        if self.on_cancelled is not None:
            self.on_cancelled()

    # =========================================================================
    # Teardown
    # =========================================================================
    def _release(self):
        for img in (self._full, self._display):
            if img is not None:
                img.close()
        self._full = None
        self._display = None
        self.last_preview = None

    def close(self):
        """Release both bitmaps and forget the session."""
        self._release()
        self.session.clear()
        self.source_id = None
