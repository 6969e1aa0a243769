"""
Gallery of previously saved originals, newest first.

The gallery only lists and removes files and looks up their saved
crop settings.  It does not know which image the editor has loaded: after
``remove()`` the caller checks whether the removed path is the one being
edited and resets the editor if so.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from profile_cropper.image_io import is_supported_image
from profile_cropper.models import CropSettings
from profile_cropper.settings_store import SettingsStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GalleryItem:
    path: Path
    modified: datetime


class Gallery:
    def __init__(self, directory: Path, settings_store: SettingsStore | None = None):
        self.directory = directory
        self._settings_store = settings_store

    def list_available(self) -> list[GalleryItem]:
        """Supported images in the gallery directory, most recently modified first."""
        if not self.directory.is_dir():
            return []
        items = []
        for path in self.directory.iterdir():
            if not path.is_file() or not is_supported_image(path):
                continue
            try:
                mtime = path.stat().st_mtime
            except OSError as exc:
                logger.warning("Skipping %s: %s", path, exc)
                continue
            items.append(GalleryItem(path, datetime.fromtimestamp(mtime)))
        items.sort(key=lambda item: (item.modified, item.path.name), reverse=True)
        return items

    def load_settings_for(self, path: Path) -> CropSettings | None:
        if self._settings_store is None:
            return None
        return self._settings_store.load_crop_settings(str(path))

    def contains(self, path: Path) -> bool:
        try:
            path.resolve().relative_to(self.directory.resolve())
        except ValueError:
            return False
        return True

    def remove(self, path: Path) -> bool:
        """Delete an image from the gallery.  Files outside the gallery are left alone."""
        if not path.is_file() or not self.contains(path):
            logger.warning("Refusing to remove %s: not in gallery %s", path, self.directory)
            return False
        path.unlink()
        forget = getattr(self._settings_store, "forget", None)
        if forget is not None:
            forget(str(path))
        logger.info("Removed %s from gallery", path)
        return True
