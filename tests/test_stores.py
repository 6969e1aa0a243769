import json
from pathlib import Path

import pytest

from profile_cropper.models import CropRect, DisplayMetrics
from profile_cropper.profile_store import ProfileImageStore
from profile_cropper.settings_codec import serialize, settings_to_dict
from profile_cropper.settings_store import JsonSettingsStore


@pytest.fixture
def crop_dict():
    return settings_to_dict(serialize(CropRect(300, 300, 200, 200), 12.5, DisplayMetrics(800, 400, 0, 200)))


class TestJsonSettingsStore:
    def test_survives_restart(self, tmp_path, crop_dict):
        path = tmp_path / "crop_settings.json"
        JsonSettingsStore(path).persist_crop_settings("/img/a.jpg", crop_dict)

        reopened = JsonSettingsStore(path)
        settings = reopened.load_crop_settings("/img/a.jpg")
        assert settings.rotation_angle == 12.5
        assert settings.crop_rect() == CropRect(300, 300, 200, 200)

    def test_envelope_format(self, tmp_path, crop_dict):
        path = tmp_path / "crop_settings.json"
        JsonSettingsStore(path).persist_crop_settings("a", crop_dict)
        raw = json.loads(path.read_text(encoding="utf-8"))
        assert raw["version"] == 1
        assert raw["settings"]["a"]["crop"] == crop_dict
        assert "last_used" in raw["settings"]["a"]

    def test_unknown_id(self, tmp_path):
        assert JsonSettingsStore(tmp_path / "s.json").load_crop_settings("nope") is None

    @pytest.mark.parametrize("content", [
        "{not json",
        json.dumps({"version": 99, "settings": {}}),
        json.dumps({"version": 1, "settings": []}),
        json.dumps([1, 2, 3]),
    ])
    def test_corrupt_file_starts_fresh(self, tmp_path, crop_dict, content):
        path = tmp_path / "crop_settings.json"
        path.write_text(content, encoding="utf-8")
        store = JsonSettingsStore(path)
        assert store.load_crop_settings("a") is None
        store.persist_crop_settings("a", crop_dict)
        assert JsonSettingsStore(path).load_crop_settings("a") is not None

    def test_invalid_record_ignored(self, tmp_path, crop_dict):
        path = tmp_path / "crop_settings.json"
        crop_dict["width"] = "wide"
        path.write_text(json.dumps({"version": 1, "settings": {"a": {"crop": crop_dict}}}), encoding="utf-8")
        assert JsonSettingsStore(path).load_crop_settings("a") is None

    def test_forget(self, tmp_path, crop_dict):
        path = tmp_path / "crop_settings.json"
        store = JsonSettingsStore(path)
        store.persist_crop_settings("a", crop_dict)
        store.forget("a")
        store.forget("never-stored")
        assert JsonSettingsStore(path).load_crop_settings("a") is None


class TestProfileImageStore:
    def test_save_writes_png_bytes(self, tmp_path):
        store = ProfileImageStore(tmp_path / "ProfileImages")
        first = store.save(b"\x89PNG one")
        second = store.save(b"\x89PNG two")
        assert first != second
        with open(first, "rb") as fh:
            assert fh.read() == b"\x89PNG one"
        assert first.endswith(".png")

    def test_save_failure_propagates(self, tmp_path):
        blocker = tmp_path / "ProfileImages"
        blocker.write_text("not a directory")
        with pytest.raises(OSError):
            ProfileImageStore(blocker).save(b"png")

    def test_original_and_owner_map(self, tmp_path):
        store = ProfileImageStore(tmp_path / "ProfileImages")
        src = tmp_path / "me.jpg"
        src.write_bytes(b"jpeg")
        original = store.save_original(src)
        assert original.endswith(".jpg")
        assert original.startswith(str(store.originals_dir))

        store.map_owner_to_original("42", original)
        assert store.original_for_owner("42") == original
        assert store.original_for_owner("7") is None

    def test_owner_map_ignores_deleted_original(self, tmp_path):
        store = ProfileImageStore(tmp_path / "ProfileImages")
        src = tmp_path / "me.png"
        src.write_bytes(b"png")
        original = store.save_original(src)
        store.map_owner_to_original("42", original)
        Path(original).unlink()
        assert store.original_for_owner("42") is None

    def test_corrupt_owner_map(self, tmp_path):
        store = ProfileImageStore(tmp_path / "ProfileImages")
        (store.images_dir / "profile_sources.json").write_text("{oops", encoding="utf-8")
        assert store.original_for_owner("42") is None
