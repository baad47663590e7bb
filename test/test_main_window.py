"""
Test MainWindow wiring between orchestrator, viewport and panels.
"""
import numpy as np
import pytest

from image_comparator.main_window import MainWindow
from image_comparator.orchestrator import ComparisonState, FIRST, SECOND
from image_comparator.pixel_buffer import PixelBuffer, DecodedImage


def make_image(value, width=3, height=3):
    return DecodedImage(PixelBuffer(width, height, np.full(width * height * 4, value, dtype=np.uint8)))


@pytest.fixture
def window(qapp):
    w = MainWindow()
    yield w
    w.orchestrator.shutdown()


def test_main_window_creation(window):
    assert hasattr(window, 'panel_first')
    assert hasattr(window, 'panel_second')
    assert hasattr(window, 'status_bar')
    assert window.orchestrator.state == ComparisonState.IDLE
    assert window.lbl_similarity.text() == "Similarity: N/A"


def test_result_updates_labels_and_overlay(window):
    window.orchestrator.set_image(FIRST, make_image(10))
    window.orchestrator.set_image(SECOND, make_image(10))
    assert window.orchestrator.wait_for_workers()

    assert window.lbl_similarity.text() == "Similarity: 100.00 %"
    assert window.lbl_difference.text() == "Difference: 0.00 %"
    assert window.panel_second._overlay is not None


def test_swap_keeps_view_and_new_image_resets(window):
    a, b = make_image(1), make_image(2)
    window.orchestrator.set_image(FIRST, a)
    window.orchestrator.set_image(SECOND, b)
    window.viewport.on_wheel(-500)
    zoomed = window.viewport.scale

    window.orchestrator.swap_images()
    assert window.viewport.scale == zoomed
    assert window.panel_first.image is b

    window.orchestrator.set_image(FIRST, make_image(3))
    assert window.viewport.scale == 1.0
    assert window.orchestrator.wait_for_workers()


def test_option_checkboxes_trigger_recompare(window):
    window.orchestrator.set_image(FIRST, make_image(1))
    window.orchestrator.set_image(SECOND, make_image(2))
    generation = window.orchestrator.generation

    window.chk_differences.setChecked(False)
    assert window.orchestrator.generation == generation + 1
    assert window.orchestrator.options.show_differences is False

    window.chk_base_image.setChecked(False)
    assert window.panel_second.show_base_image is False
    assert window.orchestrator.wait_for_workers()
    assert window.orchestrator.result.overlay.pixel(0, 0) == (0, 0, 0, 0)


def test_error_shown_in_status_bar(window, tmp_path):
    bad = tmp_path / "bad.png"
    bad.write_bytes(b"xx")
    window.orchestrator.load_file(FIRST, str(bad))
    assert window.orchestrator.wait_for_workers()
    assert window.status_bar.currentMessage().startswith("Error: bad.png")


def test_clear_resets_everything(window):
    window.orchestrator.set_image(FIRST, make_image(1))
    window.orchestrator.set_image(SECOND, make_image(1))
    assert window.orchestrator.wait_for_workers()
    window.orchestrator.reset_images()
    assert window.panel_first.image is None
    assert window.lbl_similarity.text() == "Similarity: N/A"
