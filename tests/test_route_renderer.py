import pytest

pytest.importorskip("PySide6")
try:
    from PySide6.QtWidgets import QApplication
except ImportError:  # pragma: no cover - executed only when Qt bindings incomplete
    pytest.skip("PySide6 QtWidgets bindings unavailable", allow_module_level=True)

from PySide6.QtGui import QColor

from route_renderer import RouteCanvas, project_route, render_route_image
from tracker_settings import TrackerSettings
from workout_models import PositionSample, RouteFrame


@pytest.fixture(scope="module")
def qt_app():
    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    yield app


def assert_colour_close(color, expected_hex, tolerance=2):
    expected = QColor(expected_hex)
    assert abs(color.red() - expected.red()) <= tolerance
    assert abs(color.green() - expected.green()) <= tolerance
    assert abs(color.blue() - expected.blue()) <= tolerance


def test_projection_needs_two_points():
    assert project_route([], None, 400, 300, 20) is None
    assert project_route([PositionSample(1.0, 1.0, 0)], None, 400, 300, 20) is None


def test_projection_fills_padded_box_north_up():
    points = [PositionSample(10.0, 20.0, 0), PositionSample(10.5, 21.0, 1000)]

    projection = project_route(points, points[-1], 400, 300, 20)

    assert projection.path[0] == pytest.approx((20.0, 280.0))
    assert projection.path[1] == pytest.approx((380.0, 20.0))
    assert projection.live_marker == pytest.approx((380.0, 20.0))
    assert not projection.degenerate_longitude
    assert not projection.degenerate_latitude


def test_all_points_stay_inside_padding():
    points = [PositionSample(45.0 + (i % 3) * 0.001, 7.0 + i * 0.0007, i * 1000) for i in range(10)]

    projection = project_route(points, None, 400, 300, 20)

    for x, y in projection.path:
        assert 20 - 1e-9 <= x <= 380 + 1e-9
        assert 20 - 1e-9 <= y <= 280 + 1e-9
    assert projection.live_marker is None


def test_route_along_a_meridian_collapses_onto_left_edge():
    points = [PositionSample(45.0 + i * 0.001, 7.0, i * 1000) for i in range(4)]

    projection = project_route(points, points[-1], 400, 300, 20)

    assert projection.degenerate_longitude
    assert all(x == 20 for x, _ in projection.path)
    assert projection.scale_x == 360


def test_route_along_a_parallel_collapses_onto_bottom_edge():
    points = [PositionSample(45.0, 7.0 + i * 0.001, i * 1000) for i in range(3)]

    projection = project_route(points, None, 400, 300, 20)

    assert projection.degenerate_latitude
    assert all(y == 280 for _, y in projection.path)


def test_render_is_idempotent(qt_app):
    points = (PositionSample(10.0, 20.0, 0), PositionSample(10.5, 21.0, 1000))
    frame = RouteFrame(points=points, current=points[-1])

    first = render_route_image(frame)
    second = render_route_image(frame)

    assert first == second
    assert first.width() == 400
    assert first.height() == 300


def test_render_draws_markers_over_background(qt_app):
    settings = TrackerSettings()
    points = (PositionSample(10.0, 20.0, 0), PositionSample(10.5, 21.0, 1000))

    image = render_route_image(RouteFrame(points=points, current=points[-1]), settings)

    assert_colour_close(image.pixelColor(20, 280), settings.start_marker_color)
    assert_colour_close(image.pixelColor(380, 20), settings.live_marker_color)
    assert_colour_close(image.pixelColor(200, 290), settings.background_color, tolerance=0)


def test_empty_frame_is_background_only(qt_app):
    settings = TrackerSettings()

    image = render_route_image(RouteFrame(), settings)

    assert image.pixelColor(200, 150).name() == settings.background_color.lower()


def test_canvas_repaints_from_latest_frame(qt_app):
    canvas = RouteCanvas()
    canvas.resize(400, 300)
    points = (PositionSample(10.0, 20.0, 0), PositionSample(10.5, 21.0, 1000))

    canvas.set_frame(RouteFrame(points=points, current=points[-1]))
    canvas.grab()

    assert canvas.frame.points == points
    assert canvas.last_projection is not None
    assert canvas.last_projection.start_marker == pytest.approx((20.0, 280.0))
