import pytest

from image_comparator.pixel_buffer import PixelBuffer, DecodedImage
from image_comparator.viewport import ViewportController, PanelFit, fit_scale


@pytest.fixture
def viewport(qapp):
    return ViewportController()


def make_image(w=4, h=4):
    return DecodedImage(PixelBuffer(w, h))


def test_initial_state(viewport):
    state = viewport.state
    assert state.scale == 1.0
    assert state.position == (0.0, 0.0)
    assert state.is_dragging is False


def test_wheel_is_multiplicative(viewport):
    viewport.on_wheel(-100)
    assert viewport.scale == pytest.approx(1.1)
    viewport.on_wheel(-100)
    assert viewport.scale == pytest.approx(1.21)
    viewport.on_wheel(100)
    assert viewport.scale == pytest.approx(1.21 * 0.9)


def test_wheel_clamps_at_minimum(viewport):
    for _ in range(50):
        viewport.on_wheel(500)
        assert viewport.scale >= 0.1
    assert viewport.scale == pytest.approx(0.1)


def test_wheel_has_no_upper_bound(viewport):
    for _ in range(100):
        viewport.on_wheel(-500)
    assert viewport.scale > 1000


def test_drag_moves_position(viewport):
    viewport.on_drag_start(100, 50)
    assert viewport.is_dragging
    viewport.on_drag_move(130, 20)
    assert viewport.position == (30, -30)
    viewport.on_drag_end()
    assert not viewport.is_dragging

    # Second drag continues from the current position
    viewport.on_drag_start(0, 0)
    viewport.on_drag_move(10, 10)
    assert viewport.position == (40, -20)


def test_move_without_drag_is_ignored(viewport):
    viewport.on_drag_move(500, 500)
    assert viewport.position == (0.0, 0.0)


def test_reset_view(viewport):
    viewport.on_wheel(-300)
    viewport.on_drag_start(0, 0)
    viewport.on_drag_move(25, 75)
    viewport.on_drag_end()

    viewport.on_reset_view()
    assert viewport.scale == 1.0
    assert viewport.position == (0.0, 0.0)


def test_changed_signal(viewport):
    hits = []
    viewport.changed.connect(lambda: hits.append(1))
    viewport.on_wheel(10)
    viewport.on_reset_view()
    assert len(hits) == 2


def test_fit_scale():
    assert fit_scale(800, 600, 400, 400) == 1.5
    assert fit_scale(800, 600, 1600, 300) == 0.5
    assert fit_scale(0, 600, 400, 400) is None
    assert fit_scale(800, 600, 0, 400) is None
    assert fit_scale(800, 600, None, None) is None


def test_zoom_percent_per_panel(viewport):
    small = PanelFit(400, 300, 200, 100)   # fit 1.5
    large = PanelFit(400, 300, 1600, 1200)  # fit 0.25
    assert viewport.zoom_percent(small) == pytest.approx(150.0)
    assert viewport.zoom_percent(large) == pytest.approx(25.0)

    viewport.on_wheel(-1000)  # scale 2
    assert viewport.zoom_percent(small) == pytest.approx(300.0)
    assert viewport.zoom_percent(large) == pytest.approx(50.0)


def test_zoom_percent_unavailable_for_empty_panel(viewport):
    assert viewport.zoom_percent(PanelFit(0, 0, 100, 100)) is None


def test_display_rect_centers_and_pans(viewport):
    fit = PanelFit(400, 300, 200, 100)
    x, y, w, h = viewport.display_rect(fit)
    assert (w, h) == (300, 150)
    assert (x, y) == (50, 75)

    viewport.on_drag_start(0, 0)
    viewport.on_drag_move(10, -5)
    x, y, _, _ = viewport.display_rect(fit)
    assert (x, y) == (60, 70)


def test_swap_keeps_view(viewport):
    a, b = make_image(), make_image()
    viewport.on_content_changed(a, b)
    viewport.on_wheel(-500)
    viewport.on_drag_start(0, 0)
    viewport.on_drag_move(12, 34)
    viewport.on_drag_end()
    before = viewport.state

    viewport.on_content_changed(b, a)
    assert viewport.state == before


def test_new_image_resets_view(viewport):
    a, b = make_image(), make_image()
    viewport.on_content_changed(a, b)
    viewport.on_wheel(-500)
    viewport.on_drag_start(0, 0)
    viewport.on_drag_move(12, 34)
    viewport.on_drag_end()

    viewport.on_content_changed(make_image(), b)
    assert viewport.scale == 1.0
    assert viewport.position == (0.0, 0.0)
