"""
Image panels that render through the shared viewport.
"""

import logging
from typing import Optional

import numpy as np
from PySide6.QtCore import Qt, QObject, QEvent, QRectF
from PySide6.QtGui import QPainter, QImage, QColor, QPen, QWheelEvent, QMouseEvent
from PySide6.QtWidgets import QWidget, QApplication

from .constants import PANEL_MIN_WIDTH, PANEL_MIN_HEIGHT
from .pixel_buffer import PixelBuffer, DecodedImage
from .viewport import ViewportController, PanelFit

logger = logging.getLogger(__name__)


def buffer_to_qimage(buffer: PixelBuffer) -> Optional[QImage]:
    """Convert an RGBA PixelBuffer to a QImage that owns its data."""
    if buffer is None or buffer.width == 0 or buffer.height == 0:
        return None
    data = np.ascontiguousarray(buffer.data)
    # .copy() so QImage owns its data (prevents corruption when numpy is GC'd)
    return QImage(data.data, buffer.width, buffer.height, 4 * buffer.width,
                  QImage.Format.Format_RGBA8888).copy()


class GlobalDragFilter(QObject):
    """Application-wide move/release listener, installed only while dragging.

    Keeps a pan going when the pointer leaves the panel it started in.
    """

    def __init__(self, viewport: ViewportController, parent=None):
        super().__init__(parent)
        self.viewport = viewport
        self.active = False

    def begin(self, x: float, y: float):
        self.viewport.on_drag_start(x, y)
        if not self.active:
            app = QApplication.instance()
            if app is not None:
                app.installEventFilter(self)
            self.active = True

    def end(self):
        self.viewport.on_drag_end()
        if self.active:
            app = QApplication.instance()
            if app is not None:
                app.removeEventFilter(self)
            self.active = False

    def eventFilter(self, obj, event):
        etype = event.type()
        if etype == QEvent.Type.MouseMove:
            pos = event.globalPosition()
            self.viewport.on_drag_move(pos.x(), pos.y())
        elif (etype == QEvent.Type.MouseButtonRelease
              and event.button() == Qt.MouseButton.LeftButton):
            self.end()
        return False


class ImagePanel(QWidget):
    """Draws one image, optionally with the comparison overlay on top.

    The panel keeps no transform of its own: the rectangle it paints into
    comes from the shared viewport every time.
    """

    def __init__(self, viewport: ViewportController, drag_filter: GlobalDragFilter,
                 placeholder="Open an image", parent=None):
        super().__init__(parent)
        self.setMinimumSize(PANEL_MIN_WIDTH, PANEL_MIN_HEIGHT)
        self.viewport = viewport
        self.drag_filter = drag_filter
        self.placeholder = placeholder

        self.image: Optional[DecodedImage] = None
        self._qimage: Optional[QImage] = None
        self._overlay: Optional[QImage] = None
        self.show_base_image = True
        self.show_details = False
        self.loading = False

        viewport.changed.connect(self.update)

    def set_image(self, image: Optional[DecodedImage]):
        self.image = image
        self._qimage = buffer_to_qimage(image.pixels) if image is not None else None
        self.update()

    def set_overlay(self, overlay: Optional[PixelBuffer]):
        self._overlay = buffer_to_qimage(overlay) if overlay is not None else None
        self.update()

    def set_show_base_image(self, show: bool):
        self.show_base_image = show
        self.update()

    def set_show_details(self, show: bool):
        self.show_details = show
        self.update()

    def set_loading(self, loading: bool):
        self.loading = loading
        self.update()

    def panel_fit(self) -> Optional[PanelFit]:
        if self.image is None:
            return None
        return PanelFit(self.width(), self.height(), self.image.width, self.image.height)

    def zoom_percent(self) -> Optional[float]:
        fit = self.panel_fit()
        if fit is None:
            return None
        return self.viewport.zoom_percent(fit)

    # Input

    def wheelEvent(self, event: QWheelEvent):
        # Wheel up zooms in: flip to the scroll-down-positive convention
        self.viewport.on_wheel(-event.angleDelta().y())
        event.accept()

    def mousePressEvent(self, event: QMouseEvent):
        if event.button() == Qt.MouseButton.LeftButton:
            pos = event.globalPosition()
            self.drag_filter.begin(pos.x(), pos.y())
            event.accept()

    def mouseDoubleClickEvent(self, event: QMouseEvent):
        self.viewport.on_reset_view()
        event.accept()

    # Painting

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.fillRect(self.rect(), Qt.GlobalColor.black)

        if self._qimage is None:
            painter.setPen(Qt.GlobalColor.white)
            text = "Loading..." if self.loading else self.placeholder
            painter.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter, text)
            return

        fit = self.panel_fit()
        rect = self.viewport.display_rect(fit)
        if rect is None:
            return
        x, y, w, h = rect
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform, False)

        if self._overlay is None or self.show_base_image:
            painter.drawImage(QRectF(x, y, w, h), self._qimage)

        if self._overlay is not None:
            # Overlay covers the shared canvas anchored at the image origin
            scale = w / self.image.width
            painter.drawImage(QRectF(x, y, self._overlay.width() * scale,
                                     self._overlay.height() * scale), self._overlay)

        zoom = self.zoom_percent()
        painter.setPen(QColor(220, 220, 220))
        if zoom is not None:
            painter.drawText(self.rect().adjusted(8, 8, -8, -8),
                             Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignBottom,
                             f"Zoom: {zoom:.0f}%")
        if self.show_details:
            self._paint_details(painter)

    def _paint_details(self, painter: QPainter):
        rows = self.image.info.describe()
        text = "\n".join(f"{label}: {value}" for label, value in rows)
        box = painter.boundingRect(self.rect().adjusted(12, 12, -12, -12),
                                   Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignTop, text)
        painter.fillRect(box.adjusted(-6, -4, 6, 4), QColor(40, 40, 40, 200))
        painter.setPen(QPen(QColor(255, 255, 255)))
        painter.drawText(box, Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignTop, text)
