import os
from pathlib import Path

import pytest

pytest.importorskip("PyQt6.QtWidgets", reason="Qt widgets not available")

from PIL import Image
from PyQt6.QtCore import Qt
from PyQt6.QtWidgets import QApplication

from profile_cropper.main_window import MainWindow
from profile_cropper.profile_store import ProfileImageStore
from profile_cropper.settings_store import JsonSettingsStore


@pytest.fixture(scope="module")
def qapp():
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    yield app


class _RunningCommit:
    """Stands in for a commit thread that has not finished yet."""

    def isRunning(self):
        return True

    def wait(self):
        return True


@pytest.fixture
def window(qapp, tmp_path):
    store = ProfileImageStore(tmp_path / "ProfileImages")
    for i, name in enumerate(("old.png", "new.png")):
        path = store.originals_dir / name
        Image.new("RGB", (60, 40), (i * 100, 0, 0)).save(path)
        os.utime(path, (1_000_000 + i, 1_000_000 + i))
    win = MainWindow(profile_store=store, settings_store=JsonSettingsStore(tmp_path / "settings.json"))
    yield win
    win._committer = None
    win.close()


class TestGallerySelection:
    def test_selecting_a_row_loads_once(self, window, monkeypatch):
        loads = []
        monkeypatch.setattr(window, "_load_path", loads.append)
        window._image_list.setCurrentRow(1)
        item = window._image_list.item(1)
        # A double-click also reports click and activation; neither may start another decode
        window._image_list.itemClicked.emit(item)
        window._image_list.itemActivated.emit(item)
        assert loads == [Path(item.data(Qt.ItemDataRole.UserRole))]
        assert loads[0].name == "old.png"

    def test_refresh_does_not_load(self, window, monkeypatch):
        loads = []
        monkeypatch.setattr(window, "_load_path", loads.append)
        window._image_list.setCurrentRow(1)
        before = len(loads)
        window._refresh_gallery()
        assert len(loads) == before
        assert window._image_list.count() == 2


class TestCommitInProgress:
    def test_edits_are_ignored(self, window, monkeypatch):
        editor = window._editor
        editor.load_decoded(Image.new("RGB", (200, 100)), None, 400, 400)
        window._crop_widget.image_loaded()
        editor.session.nudge(5, 0)
        crop = editor.session.crop.copy()

        window._committer = _RunningCommit()
        window._update_button_states()
        assert not window._crop_widget.isEnabled()
        assert not window._image_list.isEnabled()
        assert not window._btn_save.isEnabled()

        loads = []
        monkeypatch.setattr(window, "_load_path", loads.append)
        window._rotate(1)
        window._reset_crop()
        window._on_image_selected(0)
        window._remove_selected()

        assert editor.full_image.size == (200, 100)
        assert editor.session.crop == crop
        assert loads == []
        assert window._image_list.count() == 2

    def test_editing_resumes_after_commit(self, window):
        editor = window._editor
        editor.load_decoded(Image.new("RGB", (200, 100)), None, 400, 400)
        window._committer = _RunningCommit()
        window._update_button_states()
        window._committer = None
        window._update_button_states()
        assert window._crop_widget.isEnabled()
        window._rotate(1)
        assert editor.full_image.size == (100, 200)
