import pytest
from PIL import Image

from profile_cropper.config import PREVIEW_SIZE, PROFILE_IMAGE_OUTPUT_SIZE
from profile_cropper.models import CropRect
from profile_cropper.render import (
    Quality, circle_mask, render_crop, render_final, render_preview, rotate_bitmap_by_90_multiple,
)

RED = (255, 0, 0)
GREEN = (0, 255, 0)
BLUE = (0, 0, 255)
YELLOW = (255, 255, 0)

# Square around the point where the four quadrants meet
CENTER_CROP = CropRect(375, 125, 250, 250)


def _rgb_close(pixel, expected, tol=8):
    return all(abs(a - b) <= tol for a, b in zip(pixel[:3], expected))


class TestCircleMask:
    @pytest.mark.parametrize("quality", list(Quality))
    def test_inside_opaque_corners_clear(self, quality):
        mask = circle_mask(100, quality)
        assert mask.size == (100, 100)
        assert mask.getpixel((50, 50)) == 255
        assert mask.getpixel((0, 0)) == 0
        assert mask.getpixel((99, 99)) == 0


class TestRenderCrop:
    def test_final_size_and_transparent_corners(self, landscape_image):
        out = render_final(landscape_image, CENTER_CROP, 0.0)
        assert out.size == (PROFILE_IMAGE_OUTPUT_SIZE, PROFILE_IMAGE_OUTPUT_SIZE)
        assert out.mode == "RGBA"
        for corner in ((0, 0), (511, 0), (0, 511), (511, 511)):
            assert out.getpixel(corner)[3] == 0
        assert out.getpixel((256, 256))[3] == 255

    def test_preview_size(self, landscape_image):
        out = render_preview(landscape_image, CENTER_CROP, 15.0)
        assert out.size == (PREVIEW_SIZE, PREVIEW_SIZE)

    def test_deterministic(self, landscape_image):
        first = render_final(landscape_image, CENTER_CROP, 33.0)
        second = render_final(landscape_image, CENTER_CROP, 33.0)
        assert first.tobytes() == second.tobytes()

    def test_unrotated_crop_samples_the_right_region(self, landscape_image):
        out = render_crop(landscape_image, CropRect(0, 0, 250, 250), 0.0, 64)
        assert _rgb_close(out.getpixel((32, 32)), RED)
        out = render_crop(landscape_image, CropRect(700, 250, 250, 250), 0.0, 64)
        assert _rgb_close(out.getpixel((32, 32)), YELLOW)

    def test_unrotated_quadrants(self, landscape_image):
        out = render_crop(landscape_image, CENTER_CROP, 0.0, 200)
        assert _rgb_close(out.getpixel((60, 60)), RED)
        assert _rgb_close(out.getpixel((140, 60)), GREEN)
        assert _rgb_close(out.getpixel((60, 140)), BLUE)
        assert _rgb_close(out.getpixel((140, 140)), YELLOW)

    @pytest.mark.parametrize("quality", list(Quality))
    def test_rotation_pivots_on_crop_center(self, landscape_image, quality):
        """A quarter turn clockwise brings the bottom-left quadrant to the top-left."""
        out = render_crop(landscape_image, CENTER_CROP, 90.0, 200, quality)
        assert _rgb_close(out.getpixel((60, 60)), BLUE)
        assert _rgb_close(out.getpixel((140, 60)), RED)
        assert _rgb_close(out.getpixel((140, 140)), GREEN)
        assert _rgb_close(out.getpixel((60, 140)), YELLOW)

    def test_tiny_rotation_uses_the_unrotated_path(self, landscape_image):
        a = render_crop(landscape_image, CENTER_CROP, 0.0, 64)
        b = render_crop(landscape_image, CENTER_CROP, 0.005, 64)
        assert a.tobytes() == b.tobytes()

    def test_area_outside_source_is_transparent(self, landscape_image):
        # Rotated crop hanging over the left edge of the image
        out = render_crop(landscape_image, CropRect(-100, 100, 300, 300), 45.0, 100, Quality.LOW)
        assert out.getpixel((15, 50))[3] == 0

    def test_rgb_source_accepted(self, landscape_image):
        out = render_crop(landscape_image.convert("RGB"), CENTER_CROP, 0.0, 32)
        assert out.mode == "RGBA"

    @pytest.mark.parametrize("args", [
        (None, CENTER_CROP, 64),
        ("image", None, 64),
        ("image", CropRect(0, 0, 0, 10), 64),
        ("image", CENTER_CROP, 0),
    ])
    def test_nothing_to_render(self, landscape_image, args):
        source, crop, size = args
        if source == "image":
            source = landscape_image
        assert render_crop(source, crop, 0.0, size) is None


class TestQuarterTurns:
    def test_clockwise(self, landscape_image):
        rotated = rotate_bitmap_by_90_multiple(landscape_image.copy(), 90)
        assert rotated.size == (500, 1000)
        assert rotated.getpixel((10, 10))[:3] == BLUE
        assert rotated.getpixel((490, 10))[:3] == RED

    def test_counter_clockwise(self, landscape_image):
        rotated = rotate_bitmap_by_90_multiple(landscape_image.copy(), -90)
        assert rotated.size == (500, 1000)
        assert rotated.getpixel((10, 10))[:3] == GREEN

    def test_four_turns_restore_the_image(self, landscape_image):
        img = landscape_image.copy()
        for _ in range(4):
            img = rotate_bitmap_by_90_multiple(img, 90)
        assert img.size == landscape_image.size
        assert img.tobytes() == landscape_image.tobytes()

    def test_half_turn(self, landscape_image):
        rotated = rotate_bitmap_by_90_multiple(landscape_image.copy(), 180)
        assert rotated.getpixel((10, 10))[:3] == YELLOW

    def test_input_is_closed(self, landscape_image):
        src = landscape_image.copy()
        rotate_bitmap_by_90_multiple(src, 270)
        with pytest.raises(ValueError):
            src.getpixel((0, 0))

    def test_rejects_non_quarter_turns(self, landscape_image):
        with pytest.raises(ValueError):
            rotate_bitmap_by_90_multiple(landscape_image.copy(), 45)

    def test_zero_returns_a_copy(self):
        src = Image.new("RGBA", (3, 2), (1, 2, 3, 255))
        out = rotate_bitmap_by_90_multiple(src, 360)
        assert out.size == (3, 2)
        assert out.getpixel((0, 0)) == (1, 2, 3, 255)
