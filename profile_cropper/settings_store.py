"""
Persistent crop-settings store: remember crops across application restarts.

Entries are keyed by an opaque source identifier (the stored original's
path, in practice).  The on-disk format uses a versioned envelope::

    {
        "version": 1,
        "settings": {
            "<source id>": {
                "last_used": "2026-02-10T14:30:00+00:00",
                "crop": {"version": 1, "x": 300.0, ...}
            }
        }
    }

``SettingsStore`` is the interface the editor depends on; tests substitute
an in-memory implementation.  This module is Qt-free.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from profile_cropper.config import SETTINGS_FILENAME, config_dir
from profile_cropper.models import CropSettings
from profile_cropper.settings_codec import settings_from_dict

logger = logging.getLogger(__name__)

_STORE_VERSION = 1


class SettingsStore(Protocol):
    def load_crop_settings(self, source_id: str) -> CropSettings | None: ...

    def persist_crop_settings(self, source_id: str, data: dict) -> None: ...


class JsonSettingsStore:
    """``SettingsStore`` backed by a JSON file in the config directory."""

    def __init__(self, path: Path | None = None):
        self._path = path or config_dir() / SETTINGS_FILENAME
        self._entries: dict = self._load()

    @property
    def path(self) -> Path:
        return self._path

    # =========================================================================
    # Load / Save
    # =========================================================================
    def _load(self) -> dict:
        if not self._path.exists():
            logger.debug("No crop settings found at %s — starting fresh", self._path)
            return {}

        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Failed to read crop settings (%s) — starting fresh", exc)
            return {}

        if not isinstance(raw, dict) or raw.get("version") != _STORE_VERSION:
            logger.warning("Crop settings version mismatch or invalid format — starting fresh")
            return {}

        entries = raw.get("settings")
        if not isinstance(entries, dict):
            logger.warning("Crop settings missing 'settings' dict — starting fresh")
            return {}

        logger.info("Loaded crop settings for %d image(s) from %s", len(entries), self._path)
        return entries

    def _save(self) -> None:
        envelope = {"version": _STORE_VERSION, "settings": self._entries}
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(
                json.dumps(envelope, indent=2, ensure_ascii=False),
                encoding="utf-8",
            )
            logger.debug("Saved crop settings (%d entries) to %s", len(self._entries), self._path)
        except OSError as exc:
            logger.error("Could not write crop settings to %s: %s", self._path, exc)

    # =========================================================================
    # Lookup / Store
    # =========================================================================
    def load_crop_settings(self, source_id: str) -> CropSettings | None:
        entry = self._entries.get(source_id)
        if not isinstance(entry, dict):
            return None
        return settings_from_dict(entry.get("crop"))

    def persist_crop_settings(self, source_id: str, data: dict) -> None:
        self._entries[source_id] = {
            "last_used": datetime.now(timezone.utc).isoformat(timespec="seconds"),
            "crop": data,
        }
        self._save()

    def forget(self, source_id: str) -> None:
        if self._entries.pop(source_id, None) is not None:
            self._save()
