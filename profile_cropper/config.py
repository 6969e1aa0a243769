"""
Application constants and configuration.

The crop-size limits, output size and preview throttle form the contract
surface of the cropper; the remaining constants tune hit testing, preview
quality and file handling.

The ``config_dir()`` helper returns the platform-appropriate config
directory and is shared by all persistence modules (settings store,
profile image store).
"""

import os
import sys
from pathlib import Path

# =============================================================================
# APP IDENTITY & CONFIG DIRECTORY
# =============================================================================
APP_NAME = "profile-cropper"


def config_dir() -> Path:
    """Return the platform-appropriate config directory, creating it if needed."""
    if sys.platform == "win32":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    directory = base / APP_NAME
    directory.mkdir(parents=True, exist_ok=True)
    return directory

# =============================================================================
# CROP LIMITS — display-space pixels
# =============================================================================
MIN_CROP_SIZE = 50
MAX_CROP_SIZE = 400
MAX_CROP_RATIO = 0.8  # of the shorter display side

# Default crop side relative to the shorter display side
DEFAULT_CROP_RATIO = 0.5

# Used when the container has no usable size and nothing better is known
# (x, y, w, h)
FALLBACK_DISPLAY = (100.0, 50.0, 400.0, 300.0)
FALLBACK_CROP = (200.0, 150.0, 200.0, 200.0)

# =============================================================================
# HIT TESTING — display-space pixels, multiplied by the device pixel ratio
# =============================================================================
# A press within (radius - INNER, radius + OUTER) of the crop center resizes
RESIZE_BAND_INNER = 20
RESIZE_BAND_OUTER = 10
# Never let the inner band eat more than this share of the radius
RESIZE_BAND_MAX_SHARE = 0.5

# Square resize handles drawn on the frame corners (half width)
HANDLE_SIZE = 7

# Rotate zones ring each corner beyond its resize handle
ROTATE_ZONE_MIN = 14
ROTATE_ZONE_MAX = 36

# Nudge amounts for arrow keys
NUDGE_SMALL = 1
NUDGE_LARGE = 10

# =============================================================================
# IMAGES & RENDERING
# =============================================================================
# Pre-downscale cap for decoded sources (longest side)
MAX_IMAGE_SIZE = 4096

# Longest side of the display-resolution copy used for live previews
DISPLAY_IMAGE_SIZE = 1600

PROFILE_IMAGE_OUTPUT_SIZE = 512
PREVIEW_SIZE = 140

# At most one live preview per interval while a gesture is active (seconds)
PREVIEW_THROTTLE_SECONDS = 0.033

# Rotations at or below this (degrees) use the axis-aligned fast path
ROTATION_EPSILON = 0.01

# High-quality renders sample at this multiple and downsample with LANCZOS
HIGH_QUALITY_SUPERSAMPLE = 2

# PNG compression level (0-9, 9 = maximum compression)
PNG_COMPRESS_LEVEL = 9

# Supported input image extensions
IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".bmp", ".gif"}

# =============================================================================
# PERSISTENCE
# =============================================================================
SETTINGS_FILENAME = "crop_settings.json"
PROFILE_IMAGES_DIR_NAME = "ProfileImages"
ORIGINALS_DIR_NAME = "Originals"
OWNER_MAP_FILENAME = "profile_sources.json"
