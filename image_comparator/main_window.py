import logging
from typing import Optional

from PySide6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QPushButton,
    QCheckBox, QLabel, QFileDialog, QStatusBar,
)

from .compare_engine import DisplayOptions
from .constants import (
    DEFAULT_WINDOW_WIDTH, DEFAULT_WINDOW_HEIGHT, NOTIFICATION_TIMEOUT_MS, SUPPORTED_EXTENSIONS,
)
from .orchestrator import ComparisonOrchestrator, ComparisonState, FIRST, SECOND
from .panels import ImagePanel, GlobalDragFilter
from .viewport import ViewportController

logger = logging.getLogger(__name__)


class MainWindow(QMainWindow):
    """Two synchronized panels: the first image, and the second with the overlay."""

    def __init__(self, first_path=None, second_path=None,
                 options: Optional[DisplayOptions] = None):
        super().__init__()
        self.setWindowTitle("Image Comparator")
        self.viewport = ViewportController(self)
        self.drag_filter = GlobalDragFilter(self.viewport, self)
        self.orchestrator = ComparisonOrchestrator(options, self)

        self._setup_ui()
        self._connect_signals()
        self.resize(DEFAULT_WINDOW_WIDTH, DEFAULT_WINDOW_HEIGHT)

        if first_path:
            self.orchestrator.load_file(FIRST, first_path)
        if second_path:
            self.orchestrator.load_file(SECOND, second_path)

    def _setup_ui(self):
        central = QWidget()
        self.setCentralWidget(central)
        layout = QVBoxLayout(central)
        layout.setContentsMargins(0, 0, 0, 0)

        # Panels (created first so the toolbar can reference them)
        self.panel_first = ImagePanel(self.viewport, self.drag_filter, "Open the first image")
        self.panel_second = ImagePanel(self.viewport, self.drag_filter, "Open the second image")

        layout.addWidget(self._create_toolbar())

        panels = QHBoxLayout()
        panels.addWidget(self.panel_first, stretch=1)
        panels.addWidget(self.panel_second, stretch=1)
        layout.addLayout(panels, stretch=1)

        self.status_bar = QStatusBar()
        self.setStatusBar(self.status_bar)
        self.lbl_similarity = QLabel("Similarity: N/A")
        self.lbl_difference = QLabel("Difference: N/A")
        self.lbl_zoom = QLabel("Zoom: -")
        self.status_bar.addPermanentWidget(self.lbl_similarity)
        self.status_bar.addPermanentWidget(self.lbl_difference)
        self.status_bar.addPermanentWidget(self.lbl_zoom)
        self.status_bar.showMessage("Open two images to compare")

        self._apply_options(self.orchestrator.options)

    def _create_toolbar(self) -> QWidget:
        toolbar = QWidget()
        layout = QHBoxLayout(toolbar)

        btn_first = QPushButton("Open First...")
        btn_first.clicked.connect(lambda: self.open_file(FIRST))
        layout.addWidget(btn_first)

        btn_second = QPushButton("Open Second...")
        btn_second.clicked.connect(lambda: self.open_file(SECOND))
        layout.addWidget(btn_second)

        self.btn_swap = QPushButton("Swap")
        self.btn_swap.clicked.connect(self.orchestrator.swap_images)
        layout.addWidget(self.btn_swap)

        btn_reset_images = QPushButton("Clear")
        btn_reset_images.clicked.connect(self.orchestrator.reset_images)
        layout.addWidget(btn_reset_images)

        layout.addSpacing(20)

        options = self.orchestrator.options
        self.chk_similarities = QCheckBox("Similarities")
        self.chk_similarities.setChecked(options.show_similarities)
        self.chk_differences = QCheckBox("Differences")
        self.chk_differences.setChecked(options.show_differences)
        self.chk_base_image = QCheckBox("Base image")
        self.chk_base_image.setChecked(options.show_base_image)
        for chk in (self.chk_similarities, self.chk_differences, self.chk_base_image):
            chk.toggled.connect(self._on_options_toggled)
            layout.addWidget(chk)

        self.chk_details = QCheckBox("Details")
        self.chk_details.toggled.connect(self._on_details_toggled)
        layout.addWidget(self.chk_details)

        layout.addStretch()

        btn_reset_view = QPushButton("Reset View")
        btn_reset_view.clicked.connect(self.viewport.on_reset_view)
        layout.addWidget(btn_reset_view)

        return toolbar

    def _connect_signals(self):
        orch = self.orchestrator
        orch.images_changed.connect(self._on_images_changed)
        orch.result_changed.connect(self._on_result_changed)
        orch.state_changed.connect(self._on_state_changed)
        orch.loading_changed.connect(self._on_loading_changed)
        orch.error_occurred.connect(self._on_error)
        self.viewport.changed.connect(self._update_zoom_label)

    # Actions

    def open_file(self, slot):
        patterns = " ".join(f"*{ext}" for ext in SUPPORTED_EXTENSIONS)
        file_path, _ = QFileDialog.getOpenFileName(
            self, "Open Image", "", f"Images ({patterns});;All Files (*)")
        if file_path:
            self.orchestrator.load_file(slot, file_path)

    def _on_options_toggled(self, _checked=False):
        options = DisplayOptions(
            show_similarities=self.chk_similarities.isChecked(),
            show_differences=self.chk_differences.isChecked(),
            show_base_image=self.chk_base_image.isChecked(),
        )
        self._apply_options(options)
        self.orchestrator.set_options(options)

    def _apply_options(self, options: DisplayOptions):
        self.panel_second.set_show_base_image(options.show_base_image)

    def _on_details_toggled(self, checked):
        self.panel_first.set_show_details(checked)
        self.panel_second.set_show_details(checked)

    # Orchestrator slots

    def _on_images_changed(self, first, second):
        self.viewport.on_content_changed(first, second)
        self.panel_first.set_image(first)
        self.panel_second.set_image(second)
        self.btn_swap.setEnabled(first is not None or second is not None)
        self._update_zoom_label()

    def _on_result_changed(self, result):
        self.panel_second.set_overlay(result.overlay if result is not None else None)
        if result is None:
            self.lbl_similarity.setText("Similarity: N/A")
            self.lbl_difference.setText("Difference: N/A")
        else:
            self.lbl_similarity.setText(f"Similarity: {result.similarity_percent:.2f} %")
            self.lbl_difference.setText(f"Difference: {result.difference_percent:.2f} %")

    def _on_state_changed(self, state):
        if state == ComparisonState.COMPARING:
            self.status_bar.showMessage("Comparing...")
        elif state == ComparisonState.READY:
            first, second = self.orchestrator.images
            msg = f"Compared {first.info.name} and {second.info.name}"
            if (first.width, first.height) != (second.width, second.height):
                msg += " (sizes differ: pixels outside the smaller image count as differences)"
            self.status_bar.showMessage(msg)
        elif state == ComparisonState.IDLE:
            self.status_bar.showMessage("Open two images to compare")

    def _on_loading_changed(self, slot, loading):
        panel = self.panel_first if slot == FIRST else self.panel_second
        panel.set_loading(loading)

    def _on_error(self, message):
        self.status_bar.showMessage(f"Error: {message}", NOTIFICATION_TIMEOUT_MS)

    def _update_zoom_label(self):
        parts = []
        for name, panel in (("A", self.panel_first), ("B", self.panel_second)):
            zoom = panel.zoom_percent()
            parts.append(f"{name}: {zoom:.0f}%" if zoom is not None else f"{name}: -")
        self.lbl_zoom.setText("Zoom " + "  ".join(parts))

    def resizeEvent(self, event):
        super().resizeEvent(event)
        self._update_zoom_label()

    def closeEvent(self, event):
        self.orchestrator.shutdown()
        super().closeEvent(event)
