import pytest

from profile_cropper.models import CropRect, CropSettings, DisplayMetrics
from profile_cropper.settings_codec import (
    remap, remap_rect, serialize, settings_from_dict, settings_to_dict,
)

DISPLAY = DisplayMetrics(800, 400, 0, 200)


@pytest.fixture
def saved():
    return serialize(CropRect(300.25, 300.5, 200.125, 200.125), 12.5, DISPLAY)


class TestRemap:
    def test_same_geometry_round_trips_exactly(self, saved):
        assert remap(saved, DISPLAY) == CropRect(300.25, 300.5, 200.125, 200.125)

    def test_scales_relative_to_saved_offset(self):
        small = serialize(CropRect(150, 150, 100, 100), 0.0, DisplayMetrics(400, 200, 0, 100))
        assert remap(small, DISPLAY) == CropRect(300, 300, 200, 200)

    def test_result_is_square_and_inside(self):
        corner = serialize(CropRect(600, 400, 200, 200), 0.0, DISPLAY)
        target = DisplayMetrics(500, 500, 0, 0)
        crop = remap(corner, target)
        assert crop.w == crop.h == 125
        assert crop.right <= target.right and crop.bottom <= target.bottom

    @pytest.mark.parametrize("saved_metrics", [
        DisplayMetrics(0, 400, 0, 200), DisplayMetrics(800, -5, 0, 200),
    ])
    def test_invalid_saved_geometry(self, saved_metrics):
        assert remap(serialize(CropRect(0, 0, 10, 10), 0.0, saved_metrics), DISPLAY) is None

    def test_invalid_current_geometry(self, saved):
        assert remap(saved, DisplayMetrics(0, 0, 0, 0)) is None

    def test_remap_rect_ignores_rotation(self):
        crop = remap_rect(CropRect(300, 300, 200, 200), DISPLAY, DisplayMetrics(400, 200, 0, 100))
        assert crop == CropRect(150, 150, 100, 100)


class TestDictForm:
    def test_round_trip(self, saved):
        assert settings_from_dict(settings_to_dict(saved)) == saved

    def test_dict_layout(self, saved):
        data = settings_to_dict(saved)
        assert data["version"] == 1
        assert data["rotation_angle"] == 12.5
        assert data["image_display_offset_y"] == 200

    def test_integers_accepted(self):
        data = settings_to_dict(serialize(CropRect(1, 2, 3, 3), 0, DISPLAY))
        data["x"] = 7
        decoded = settings_from_dict(data)
        assert decoded.x == 7.0 and isinstance(decoded.x, float)

    def test_missing_rotation_defaults_to_zero(self, saved):
        data = settings_to_dict(saved)
        del data["rotation_angle"]
        assert settings_from_dict(data).rotation_angle == 0.0

    def test_missing_version_accepted(self, saved):
        data = settings_to_dict(saved)
        del data["version"]
        assert settings_from_dict(data) == saved

    @pytest.mark.parametrize("field, value", [
        ("version", 2), ("x", None), ("width", "200"), ("height", True),
        ("image_display_width", float("nan")), ("y", float("inf")),
    ])
    def test_invalid_records_rejected(self, saved, field, value):
        data = settings_to_dict(saved)
        data[field] = value
        assert settings_from_dict(data) is None

    def test_missing_field_rejected(self, saved):
        data = settings_to_dict(saved)
        del data["image_display_offset_x"]
        assert settings_from_dict(data) is None

    @pytest.mark.parametrize("data", [None, [], "settings", 3])
    def test_non_dict_rejected(self, data):
        assert settings_from_dict(data) is None

    def test_settings_are_immutable(self, saved):
        with pytest.raises(AttributeError):
            saved.x = 1.0
        assert isinstance(saved, CropSettings)
