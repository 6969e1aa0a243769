"""
Pytest configuration and shared fixtures for the cropper tests.
"""
import io

import pytest
from PIL import Image

from profile_cropper.crop_state import PreviewThrottle
from profile_cropper.models import CropRect, DisplayMetrics
from profile_cropper.settings_codec import settings_from_dict


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start=100.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class InMemorySettingsStore:
    def __init__(self):
        self.records = {}

    def load_crop_settings(self, source_id):
        data = self.records.get(source_id)
        return settings_from_dict(data) if data is not None else None

    def persist_crop_settings(self, source_id, data):
        self.records[source_id] = data

    def forget(self, source_id):
        self.records.pop(source_id, None)


class InMemoryPersistence:
    def __init__(self, fail=False):
        self.saved = []
        self.fail = fail

    def save(self, png_bytes):
        if self.fail:
            raise OSError("disk full")
        self.saved.append(png_bytes)
        return f"memory://{len(self.saved)}"


@pytest.fixture
def tolerance():
    """Standard floating point tolerance for test comparisons."""
    return 1e-6


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def throttle(clock):
    return PreviewThrottle(clock=clock)


@pytest.fixture
def settings_store():
    return InMemorySettingsStore()


@pytest.fixture
def persistence():
    return InMemoryPersistence()


@pytest.fixture
def centered_metrics():
    """400x400 display area centered in a 600x500 container."""
    return DisplayMetrics(400.0, 400.0, 100.0, 50.0)


@pytest.fixture
def centered_crop():
    """200px crop centered in ``centered_metrics``."""
    return CropRect(200.0, 150.0, 200.0, 200.0)


def make_image(width, height, mode="RGB"):
    """Four-quadrant test image so orientation and crops are observable."""
    img = Image.new(mode, (width, height), (255, 0, 0))
    img.paste((0, 255, 0), (width // 2, 0, width, height // 2))
    img.paste((0, 0, 255), (0, height // 2, width // 2, height))
    img.paste((255, 255, 0), (width // 2, height // 2, width, height))
    return img


def encode(img, fmt="PNG", **kwargs):
    buf = io.BytesIO()
    img.save(buf, fmt, **kwargs)
    return buf.getvalue()


@pytest.fixture
def landscape_png():
    """1000x500 PNG as bytes."""
    return encode(make_image(1000, 500))


@pytest.fixture
def landscape_image():
    return make_image(1000, 500).convert("RGBA")
