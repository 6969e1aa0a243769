"""
Profile image storage: cropped outputs, kept originals and the owner map.

Layout under the images directory::

    ProfileImages/
        profile_<timestamp>_<id>.png     cropped circular outputs
        Originals/orig_<timestamp>_<id>.jpg
        profile_sources.json             {"<owner id>": "<original path>"}

The originals are what the gallery lists and what a crop is re-edited
from.  This module is Qt-free.
"""

import json
import logging
import shutil
import time
import uuid
from pathlib import Path
from typing import Protocol

from profile_cropper.config import (
    ORIGINALS_DIR_NAME, OWNER_MAP_FILENAME, PROFILE_IMAGES_DIR_NAME, config_dir,
)
from profile_cropper.image_io import unique_path

logger = logging.getLogger(__name__)


class PersistenceCollaborator(Protocol):
    def save(self, png_bytes: bytes) -> str: ...


def _stamped_name(prefix: str, suffix: str) -> str:
    return f"{prefix}_{int(time.time() * 1000)}_{uuid.uuid4().hex}{suffix}"


class ProfileImageStore:
    """File-system ``PersistenceCollaborator`` for profile images."""

    def __init__(self, images_dir: Path | None = None):
        self._images_dir = images_dir or config_dir() / PROFILE_IMAGES_DIR_NAME

    @property
    def images_dir(self) -> Path:
        self._images_dir.mkdir(parents=True, exist_ok=True)
        return self._images_dir

    @property
    def originals_dir(self) -> Path:
        d = self.images_dir / ORIGINALS_DIR_NAME
        d.mkdir(parents=True, exist_ok=True)
        return d

    # --- Outputs ---

    def save(self, png_bytes: bytes) -> str:
        """Write a cropped PNG and return its path.  ``OSError`` propagates."""
        path = unique_path(self.images_dir / _stamped_name("profile", ".png"))
        path.write_bytes(png_bytes)
        logger.info("Saved profile image %s (%d bytes)", path, len(png_bytes))
        return str(path)

    # --- Originals ---

    def save_original(self, source_path: Path) -> str:
        """Copy an original into the store so it can be re-cropped later."""
        suffix = source_path.suffix or ".png"
        dest = unique_path(self.originals_dir / _stamped_name("orig", suffix))
        shutil.copyfile(source_path, dest)
        logger.info("Stored original %s as %s", source_path, dest)
        return str(dest)

    # --- Owner map ---

    def _map_path(self) -> Path:
        return self.images_dir / OWNER_MAP_FILENAME

    def _read_map(self) -> dict:
        path = self._map_path()
        if not path.exists():
            return {}
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Failed to read owner map (%s) — starting fresh", exc)
            return {}
        return data if isinstance(data, dict) else {}

    def map_owner_to_original(self, owner_id: str, original_path: str) -> None:
        owners = self._read_map()
        owners[str(owner_id)] = original_path
        try:
            self._map_path().write_text(json.dumps(owners, indent=2), encoding="utf-8")
        except OSError as exc:
            logger.error("Could not write owner map: %s", exc)

    def original_for_owner(self, owner_id: str) -> str | None:
        path = self._read_map().get(str(owner_id))
        if isinstance(path, str) and path and Path(path).is_file():
            return path
        return None
