"""
Synchronized viewport: one zoom/pan transform shared by every panel.
"""

import logging
from collections import namedtuple
from typing import Optional

from PySide6.QtCore import QObject, Signal

from .constants import ZOOM_MIN, WHEEL_ZOOM_FACTOR

logger = logging.getLogger(__name__)


ViewportState = namedtuple("ViewportState", ["scale", "position", "is_dragging"])


class PanelFit:
    """Container and image size of one panel, used to derive its zoom."""

    def __init__(self, container_width, container_height, image_width, image_height):
        self.container_width = container_width
        self.container_height = container_height
        self.image_width = image_width
        self.image_height = image_height

    @property
    def fit_scale(self) -> Optional[float]:
        return fit_scale(self.container_width, self.container_height,
                         self.image_width, self.image_height)


def fit_scale(container_width, container_height, image_width, image_height) -> Optional[float]:
    """Scale that makes the image exactly fill its container.

    Returns None when either box has zero size.
    """
    sizes = (container_width, container_height, image_width, image_height)
    if any(s is None or s <= 0 for s in sizes):
        return None
    return min(container_width / image_width, container_height / image_height)


class ViewportController(QObject):
    """Owns the shared scale/position/drag state.

    Only this class mutates the state; panels read it through the
    properties and the per-panel projections below, and repaint on
    ``changed``.
    """
    changed = Signal()

    def __init__(self, parent=None):
        super().__init__(parent)
        self._scale = 1.0
        self._position = (0.0, 0.0)
        self._is_dragging = False
        self._anchor = (0.0, 0.0)
        self._content = (None, None)

    @property
    def scale(self) -> float:
        return self._scale

    @property
    def position(self):
        return self._position

    @property
    def is_dragging(self) -> bool:
        return self._is_dragging

    @property
    def state(self) -> ViewportState:
        return ViewportState(self._scale, self._position, self._is_dragging)

    # Input handling

    def on_wheel(self, delta_y: float):
        """Zoom multiplicatively; positive delta zooms out. Never below ZOOM_MIN."""
        self._scale = max(ZOOM_MIN, self._scale * (1 - delta_y * WHEEL_ZOOM_FACTOR))
        self.changed.emit()

    def on_drag_start(self, pointer_x: float, pointer_y: float):
        self._anchor = (pointer_x - self._position[0], pointer_y - self._position[1])
        self._is_dragging = True
        self.changed.emit()

    def on_drag_move(self, pointer_x: float, pointer_y: float):
        if not self._is_dragging:
            return
        self._position = (pointer_x - self._anchor[0], pointer_y - self._anchor[1])
        self.changed.emit()

    def on_drag_end(self):
        if not self._is_dragging:
            return
        self._is_dragging = False
        self.changed.emit()

    def on_reset_view(self):
        self._scale = 1.0
        self._position = (0.0, 0.0)
        self.changed.emit()

    def on_content_changed(self, first, second):
        """Reset the view for new content, but not for a swap of the two panels."""
        prev_first, prev_second = self._content
        self._content = (first, second)
        is_swap = first is prev_second and second is prev_first
        if is_swap:
            logger.debug("Panels swapped; keeping viewport")
            return
        logger.debug("New panel content; resetting viewport")
        self.on_reset_view()

    # Per-panel projections

    def zoom_percent(self, fit: PanelFit) -> Optional[float]:
        """Displayed zoom for a panel: shared scale times the panel's fit scale."""
        base = fit.fit_scale
        if base is None:
            return None
        return self._scale * base * 100

    def display_rect(self, fit: PanelFit):
        """Where a panel draws its image: (x, y, width, height) in container pixels.

        The image is fitted and centered in the container, then scaled about
        its center and translated by the shared position.
        """
        base = fit.fit_scale
        if base is None:
            return None
        effective = base * self._scale
        w = fit.image_width * effective
        h = fit.image_height * effective
        x = (fit.container_width - w) / 2 + self._position[0]
        y = (fit.container_height - h) / 2 + self._position[1]
        return x, y, w, h
