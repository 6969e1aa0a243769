"""
Interactive circular crop widget and Qt image helpers.

The Qt side of the editor: ``pil_to_qpixmap``, the background ``ImageLoaderThread`` and
``CommitRenderThread``, and the ``ImageCropWidget`` editor surface.  All
geometry lives in ``CropSession``; the widget only forwards events and
paints.
"""

import math
from pathlib import Path

from PIL import Image
from PyQt6.QtWidgets import QWidget, QSizePolicy
from PyQt6.QtCore import Qt, QEvent, QRectF, QPointF, pyqtSignal, QThread
from PyQt6.QtGui import (
    QPainter, QPainterPath, QPixmap, QColor, QPen, QBrush, QImage,
    QKeyEvent, QMouseEvent, QPaintEvent, QResizeEvent, QFocusEvent,
)

from profile_cropper.config import (
    HANDLE_SIZE, NUDGE_SMALL, NUDGE_LARGE, ROTATE_ZONE_MAX, ROTATE_ZONE_MIN,
)
from profile_cropper.editor import CommitJob, CropEditor, render_commit
from profile_cropper.geometry import classify_press, snap_to_outer_pixels
from profile_cropper.image_io import decode_with_orientation
from profile_cropper.models import InteractionMode

# Rotate knobs sit on the corner diagonals, midway through the rotate zone
ROTATE_KNOB_OFFSET = (ROTATE_ZONE_MIN + ROTATE_ZONE_MAX) / 2 / math.sqrt(2)
ROTATE_KNOB_RADIUS = 4


# =============================================================================
# Qt ↔ PIL helpers
# =============================================================================

def pil_to_qpixmap(pil_img: Image.Image) -> QPixmap:
    """Convert a PIL Image to QPixmap."""
    img_rgba = pil_img.convert("RGBA")
    data = img_rgba.tobytes("raw", "RGBA")
    qimg = QImage(data, img_rgba.width, img_rgba.height, QImage.Format.Format_RGBA8888)
    return QPixmap.fromImage(qimg.copy())


# =============================================================================
# Background workers
# =============================================================================

class ImageLoaderThread(QThread):
    """Decode an image (with orientation) off the UI thread."""
    finished = pyqtSignal(object)  # PIL.Image.Image
    error = pyqtSignal(str)

    def __init__(self, path: Path, parent=None):
        super().__init__(parent)
        self._path = path

    def run(self):
        try:
            self.finished.emit(decode_with_orientation(self._path))
        except Exception as e:
            self.error.emit(str(e))


class CommitRenderThread(QThread):
    """Render and encode a commit snapshot off the UI thread."""
    finished = pyqtSignal(object)  # CommitResult | None
    error = pyqtSignal(str)

    def __init__(self, job: CommitJob, parent=None):
        super().__init__(parent)
        self._job = job

    def run(self):
        try:
            self.finished.emit(render_commit(self._job))
        except Exception as e:
            self.error.emit(str(e))


# =============================================================================
# Image Crop Widget — circular crop overlay on image
# =============================================================================

class ImageCropWidget(QWidget):
    """Displays the editor's image with a movable, resizable, rotatable circle."""

    crop_changed = pyqtSignal()

    _CURSORS = {
        InteractionMode.DRAGGING: Qt.CursorShape.SizeAllCursor,
        InteractionMode.RESIZING: Qt.CursorShape.SizeFDiagCursor,
        InteractionMode.ROTATING: Qt.CursorShape.CrossCursor,
        InteractionMode.IDLE: Qt.CursorShape.ArrowCursor,
    }

    def __init__(self, editor: CropEditor, parent=None):
        super().__init__(parent)
        self.setMinimumSize(400, 300)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)
        self.setMouseTracking(True)

        self._editor = editor
        self._pixmap: QPixmap | None = None
        self._loading = False

    @property
    def session(self):
        return self._editor.session

    def set_loading(self, loading: bool):
        """Show/hide loading indicator."""
        self._loading = loading
        self.update()

    def image_loaded(self):
        """Refresh the pixmap after the editor got a new or rotated image."""
        self._loading = False
        display = self._editor.display_image
        self._pixmap = pil_to_qpixmap(display) if display is not None else None
        self.update()

    def clear(self):
        self._pixmap = None
        self.update()

    # --- Painting ---

    def paintEvent(self, event: QPaintEvent):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.fillRect(self.rect(), QColor(30, 30, 30))

        if not self._pixmap or not self.session.is_renderable():
            painter.setPen(QColor(128, 128, 128))
            msg = "Loading image…" if self._loading else "No image loaded"
            painter.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter, msg)
            painter.end()
            return

        m = self.session.metrics
        dest = QRectF(m.offset_x, m.offset_y, m.width, m.height)
        painter.drawPixmap(dest, self._pixmap, QRectF(self._pixmap.rect()))

        crop = snap_to_outer_pixels(self.session.crop)
        crop_rect = QRectF(crop.x, crop.y, crop.w, crop.h)

        # Dim the image outside the circle
        path = QPainterPath()
        path.setFillRule(Qt.FillRule.OddEvenFill)
        path.addRect(dest)
        path.addEllipse(crop_rect)
        painter.fillPath(path, QColor(0, 0, 0, 140))

        # Selection frame, rotated about its center
        painter.save()
        center = crop_rect.center()
        painter.translate(center)
        painter.rotate(self.session.rotation)
        painter.translate(-center)

        painter.setPen(QPen(QColor(255, 255, 255, 90), 1, Qt.PenStyle.DashLine))
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRect(crop_rect)
        painter.setPen(QPen(QColor(255, 255, 255), 2))
        painter.drawEllipse(crop_rect)

        painter.setPen(QPen(QColor(0, 0, 0), 1))
        painter.setBrush(QBrush(QColor(255, 255, 255)))
        hs = HANDLE_SIZE
        for corner in (crop_rect.topLeft(), crop_rect.topRight(),
                       crop_rect.bottomLeft(), crop_rect.bottomRight()):
            painter.drawRect(QRectF(corner.x() - hs, corner.y() - hs, hs * 2, hs * 2))

        # Rotate knobs outside each corner
        painter.setPen(QPen(QColor(255, 255, 255, 200), 1))
        painter.setBrush(QBrush(QColor(47, 111, 176)))
        k = ROTATE_KNOB_OFFSET
        for corner, sx, sy in ((crop_rect.topLeft(), -1, -1), (crop_rect.topRight(), 1, -1),
                               (crop_rect.bottomLeft(), -1, 1), (crop_rect.bottomRight(), 1, 1)):
            knob = QPointF(corner.x() + sx * k, corner.y() + sy * k)
            painter.drawEllipse(knob, ROTATE_KNOB_RADIUS, ROTATE_KNOB_RADIUS)
        painter.restore()

        painter.end()

    def resizeEvent(self, event: QResizeEvent):
        self._editor.container_resized(self.width(), self.height())
        super().resizeEvent(event)

    # --- Mouse interaction ---

    def mousePressEvent(self, event: QMouseEvent):
        if event.button() != Qt.MouseButton.LeftButton or not self._pixmap:
            return
        pos = event.position()
        self.session.pointer_down(pos.x(), pos.y())

    def mouseMoveEvent(self, event: QMouseEvent):
        if not self._pixmap:
            return
        pos = event.position()

        if self.session.mode is InteractionMode.IDLE:
            hover = classify_press(
                self.session.crop, self.session.rotation, pos.x(), pos.y(), self.session.pixel_ratio)
            self.setCursor(self._CURSORS[hover])
            return

        if not event.buttons() & Qt.MouseButton.LeftButton:
            # Button released outside the window
            self.session.capture_lost()
            return

        if self.session.pointer_move(pos.x(), pos.y()):
            self.crop_changed.emit()
            self.update()

    def mouseReleaseEvent(self, event: QMouseEvent):
        if event.button() == Qt.MouseButton.LeftButton:
            self.session.pointer_up()
            self.crop_changed.emit()
            self.update()

    def focusOutEvent(self, event: QFocusEvent):
        self.session.capture_lost()
        super().focusOutEvent(event)

    def changeEvent(self, event: QEvent):
        if event.type() == QEvent.Type.ActivationChange and not self.isActiveWindow():
            self.session.capture_lost()
        elif event.type() == QEvent.Type.EnabledChange and not self.isEnabled():
            self.session.capture_lost()
        super().changeEvent(event)

    # --- Keyboard nudge ---

    def keyPressEvent(self, event: QKeyEvent):
        if not self._pixmap:
            return
        amount = NUDGE_LARGE if event.modifiers() & Qt.KeyboardModifier.ShiftModifier else NUDGE_SMALL
        deltas = {
            Qt.Key.Key_Left: (-amount, 0),
            Qt.Key.Key_Right: (amount, 0),
            Qt.Key.Key_Up: (0, -amount),
            Qt.Key.Key_Down: (0, amount),
        }
        delta = deltas.get(event.key())
        if delta is not None and self.session.nudge(*delta):
            self.crop_changed.emit()
            self.update()
        else:
            super().keyPressEvent(event)
