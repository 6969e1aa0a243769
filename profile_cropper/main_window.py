"""
Main application window.

Orchestrates the gallery of stored originals, background image loading,
the circular crop editor with its live preview, and the commit that renders
the final profile image off the UI thread.
"""

import logging
from pathlib import Path

from PIL import Image
from PyQt6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout,
    QListWidget, QListWidgetItem, QPushButton, QLabel, QFileDialog,
    QSplitter, QGroupBox, QMessageBox, QStatusBar, QToolBar,
)
from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtGui import QAction, QKeySequence, QShortcut

from profile_cropper.config import IMAGE_EXTENSIONS, PREVIEW_SIZE
from profile_cropper.crop_widget import (
    CommitRenderThread, ImageCropWidget, ImageLoaderThread, pil_to_qpixmap,
)
from profile_cropper.editor import CommitResult, CropEditor
from profile_cropper.gallery import Gallery
from profile_cropper.profile_store import ProfileImageStore
from profile_cropper.settings_store import JsonSettingsStore

logger = logging.getLogger(__name__)


class MainWindow(QMainWindow):
    image_committed = pyqtSignal(object)  # CommitResult
    cancelled = pyqtSignal()

    def __init__(self, owner_id: str | None = None,
                 profile_store: ProfileImageStore | None = None,
                 settings_store: JsonSettingsStore | None = None):
        super().__init__()
        self.setWindowTitle("Profile Photo Cropper")
        self.setMinimumSize(900, 500)
        self.resize(1280, 800)

        self._owner_id = owner_id
        self._profile_store = profile_store or ProfileImageStore()
        self._settings_store = settings_store or JsonSettingsStore()
        self._gallery = Gallery(self._profile_store.originals_dir, self._settings_store)
        self._editor = CropEditor(
            settings_store=self._settings_store,
            persistence=self._profile_store,
            on_committed=self._on_committed,
            on_cancelled=self._on_cancelled,
            on_preview=self._show_preview,
        )
        self._loader: ImageLoaderThread | None = None
        self._committer: CommitRenderThread | None = None
        self._loading_path: Path | None = None

        self._build_ui()
        self._refresh_gallery()
        self._update_button_states()
        self._open_owner_original()

    # =========================================================================
    # UI construction
    # =========================================================================

    def _build_ui(self):
        self._build_toolbar()

        central = QWidget()
        self.setCentralWidget(central)
        main_layout = QHBoxLayout(central)
        main_layout.setContentsMargins(4, 4, 4, 4)

        splitter = QSplitter(Qt.Orientation.Horizontal)
        main_layout.addWidget(splitter)

        splitter.addWidget(self._build_left_panel())

        self._crop_widget = ImageCropWidget(self._editor)
        splitter.addWidget(self._crop_widget)

        splitter.addWidget(self._build_right_panel())
        splitter.setSizes([220, 800, 260])

        self._status = QStatusBar()
        self.setStatusBar(self._status)
        self._status.showMessage("Open an image or pick one from the gallery.")

        QShortcut(QKeySequence(Qt.Key.Key_BracketLeft), self, lambda: self._rotate(-1))
        QShortcut(QKeySequence(Qt.Key.Key_BracketRight), self, lambda: self._rotate(1))
        QShortcut(QKeySequence(Qt.Key.Key_R), self, self._reset_crop)
        QShortcut(QKeySequence(QKeySequence.StandardKey.Save), self, self._save)
        QShortcut(QKeySequence(Qt.Key.Key_Escape), self, self._cancel)

    def _build_toolbar(self):
        toolbar = QToolBar("Main")
        toolbar.setMovable(False)
        self.addToolBar(toolbar)

        self._act_open = QAction("📂 Open Image", self)
        self._act_open.triggered.connect(self._select_image)
        toolbar.addAction(self._act_open)

    def _build_left_panel(self) -> QWidget:
        left_panel = QWidget()
        left_layout = QVBoxLayout(left_panel)
        left_layout.setContentsMargins(0, 0, 0, 0)

        left_layout.addWidget(QLabel("Gallery:"))
        self._image_list = QListWidget()
        self._image_list.currentRowChanged.connect(self._on_image_selected)
        left_layout.addWidget(self._image_list)

        btn_remove = QPushButton("🗑 Remove From Gallery")
        btn_remove.clicked.connect(self._remove_selected)
        left_layout.addWidget(btn_remove)
        return left_panel

    def _build_right_panel(self) -> QWidget:
        right = QWidget()
        layout = QVBoxLayout(right)
        layout.setContentsMargins(0, 0, 0, 0)

        preview_group = QGroupBox("Preview")
        preview_layout = QVBoxLayout(preview_group)
        self._preview_label = QLabel()
        self._preview_label.setObjectName("preview")
        self._preview_label.setFixedSize(PREVIEW_SIZE, PREVIEW_SIZE)
        self._preview_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        preview_layout.addWidget(self._preview_label, alignment=Qt.AlignmentFlag.AlignHCenter)
        layout.addWidget(preview_group)

        actions_group = QGroupBox("Actions")
        actions_layout = QVBoxLayout(actions_group)

        self._btn_rotate_left = QPushButton("⟲ Rotate Left")
        self._btn_rotate_left.clicked.connect(lambda: self._rotate(-1))
        actions_layout.addWidget(self._btn_rotate_left)

        self._btn_rotate_right = QPushButton("⟳ Rotate Right")
        self._btn_rotate_right.clicked.connect(lambda: self._rotate(1))
        actions_layout.addWidget(self._btn_rotate_right)

        self._btn_reset = QPushButton("🎯 Reset Crop")
        self._btn_reset.clicked.connect(self._reset_crop)
        actions_layout.addWidget(self._btn_reset)

        actions_layout.addSpacing(10)

        self._btn_save = QPushButton("💾 Save")
        self._btn_save.clicked.connect(self._save)
        actions_layout.addWidget(self._btn_save)

        self._btn_cancel = QPushButton("✕ Cancel")
        self._btn_cancel.clicked.connect(self._cancel)
        actions_layout.addWidget(self._btn_cancel)
        layout.addWidget(actions_group)

        help_group = QGroupBox("Shortcuts")
        help_layout = QVBoxLayout(help_group)
        help_label = QLabel(
            "Drag inside: move crop\n"
            "Drag ring or corner square: resize crop\n"
            "Drag round corner knob: rotate\n"
            "Arrow keys: nudge crop (1px)\n"
            "Shift+Arrow: nudge (10px)\n"
            "\n"
            "[ / ]: rotate image 90°\n"
            "R: reset crop\n"
            "Ctrl+S: save\n"
            "Esc: cancel"
        )
        help_label.setStyleSheet("color: #888; font-size: 8pt;")
        help_layout.addWidget(help_label)
        layout.addWidget(help_group)

        layout.addStretch()
        return right

    # =========================================================================
    # Gallery
    # =========================================================================

    def _refresh_gallery(self):
        # Rebuilding the list must not look like a selection
        self._image_list.blockSignals(True)
        self._image_list.clear()
        for entry in self._gallery.list_available():
            item = QListWidgetItem(entry.path.name)
            item.setData(Qt.ItemDataRole.UserRole, str(entry.path))
            item.setToolTip(entry.modified.strftime("%Y-%m-%d %H:%M"))
            self._image_list.addItem(item)
        self._image_list.blockSignals(False)

    def _on_image_selected(self, row: int):
        if row < 0 or self._is_committing():
            return
        item = self._image_list.item(row)
        if item is not None:
            self._load_path(Path(item.data(Qt.ItemDataRole.UserRole)))

    def _remove_selected(self):
        item = self._image_list.currentItem()
        if item is None or self._is_committing():
            return
        path = Path(item.data(Qt.ItemDataRole.UserRole))
        try:
            removed = self._gallery.remove(path)
        except OSError as exc:
            QMessageBox.warning(self, "Remove Failed", f"Could not remove {path.name}:\n{exc}")
            return
        if removed and self._editor.source_id == str(path):
            self._editor.close()
            self._crop_widget.clear()
            self._show_preview(None)
        self._refresh_gallery()
        self._update_button_states()

    def _select_image(self):
        if self._is_committing():
            return
        patterns = " ".join(f"*{ext}" for ext in sorted(IMAGE_EXTENSIONS))
        filename, _ = QFileDialog.getOpenFileName(
            self, "Select Image", str(Path.home()), f"Image Files ({patterns})")
        if not filename:
            return
        try:
            stored = self._profile_store.save_original(Path(filename))
        except OSError as exc:
            QMessageBox.warning(self, "Open Failed", f"Could not copy image:\n{exc}")
            return
        self._refresh_gallery()
        self._load_path(Path(stored))

    def _open_owner_original(self):
        if self._owner_id is None:
            return
        original = self._profile_store.original_for_owner(self._owner_id)
        if original is not None:
            self._load_path(Path(original))

    # =========================================================================
    # Loading
    # =========================================================================

    def _load_path(self, path: Path):
        self._crop_widget.set_loading(True)

        # Cancel any previous loader
        if self._loader is not None:
            try:
                self._loader.finished.disconnect()
                self._loader.error.disconnect()
            except (TypeError, RuntimeError):
                pass  # Already disconnected or destroyed
            if self._loader.isRunning():
                self._loader.quit()
                self._loader.wait(500)

        self._loading_path = path
        self._loader = ImageLoaderThread(path, self)
        self._loader.finished.connect(lambda img, p=path: self._on_image_loaded(p, img))
        self._loader.error.connect(self._on_image_load_error)
        self._loader.start()

    def _on_image_loaded(self, path: Path, img: Image.Image):
        """Called when background decoding completes."""
        if path != self._loading_path:
            img.close()
            return  # Another image was requested meanwhile
        restored = self._editor.load_decoded(
            img, str(path), self._crop_widget.width(), self._crop_widget.height())
        self._crop_widget.image_loaded()
        note = " (saved crop restored)" if restored else ""
        self._status.showMessage(f"Editing {path.name}{note}")
        self._update_button_states()

    def _on_image_load_error(self, error: str):
        """Called when background decoding fails; the current session stays open."""
        self._crop_widget.set_loading(False)
        logger.warning("Failed to load image: %s", error)
        QMessageBox.warning(self, "Cannot Open Image", f"The image could not be decoded:\n{error}")
        self._status.showMessage(f"Failed to load image: {error}")

    # =========================================================================
    # Editing actions
    # =========================================================================

    def _show_preview(self, img: Image.Image | None):
        if img is None:
            self._preview_label.clear()
            return
        self._preview_label.setPixmap(pil_to_qpixmap(img))

    def _rotate(self, direction: int):
        if not self._editor.has_image() or self._is_committing():
            return
        self._editor.rotate_by_90(direction)
        self._crop_widget.image_loaded()

    def _reset_crop(self):
        if self._is_committing():
            return
        self._editor.reset()
        self._crop_widget.update()

    def _is_committing(self) -> bool:
        return self._committer is not None and self._committer.isRunning()

    def _update_button_states(self):
        has = self._editor.has_image()
        busy = self._is_committing()
        for btn in (self._btn_rotate_left, self._btn_rotate_right, self._btn_reset):
            btn.setEnabled(has and not busy)
        self._btn_save.setEnabled(has and not busy)
        # The crop is frozen while the final image renders
        self._crop_widget.setEnabled(not busy)
        self._image_list.setEnabled(not busy)
        self._act_open.setEnabled(not busy)

    # =========================================================================
    # Commit / cancel
    # =========================================================================

    def _save(self):
        if not self._editor.has_image() or self._is_committing():
            return
        job = self._editor.snapshot_commit()
        if job is None:
            self._status.showMessage("Nothing to save.")
            return
        self._status.showMessage("Rendering profile image…")
        self._committer = CommitRenderThread(job, self)
        self._committer.finished.connect(self._on_commit_rendered)
        self._committer.error.connect(self._on_commit_error)
        self._committer.start()
        self._update_button_states()

    def _on_commit_rendered(self, result: CommitResult | None):
        self._committer = None
        self._update_button_states()
        if result is None:
            self._status.showMessage("Nothing to save.")
            return
        try:
            self._editor.publish_commit(result)
        except OSError as exc:
            self._on_commit_error(str(exc))

    def _on_commit_error(self, error: str):
        self._committer = None
        self._update_button_states()
        logger.error("Saving profile image failed: %s", error)
        QMessageBox.warning(self, "Save Failed", f"Could not save the profile image:\n{error}")
        self._status.showMessage("Save failed — your crop is unchanged, try again.")

    def _on_committed(self, result: CommitResult):
        if self._owner_id is not None and result.source_id is not None:
            self._profile_store.map_owner_to_original(self._owner_id, result.source_id)
        self._status.showMessage(f"Saved {result.storage_path}")
        self.image_committed.emit(result)

    def _cancel(self):
        self._editor.cancel()

    def _on_cancelled(self):
        self._status.showMessage("Cancelled.")
        self.cancelled.emit()

    def closeEvent(self, event):
        """Let a running commit finish, then release the session's bitmaps."""
        if self._is_committing():
            self._committer.wait()
        self._editor.close()
        super().closeEvent(event)
