"""Route projection and painting for the FitTrack route canvas."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from PySide6.QtCore import QPointF, Qt
from PySide6.QtGui import QBrush, QColor, QImage, QPainter, QPen, QPolygonF
from PySide6.QtWidgets import QWidget

from logger import LogCategory, get_logger
from tracker_settings import TrackerSettings
from workout_models import PositionSample, RouteFrame

Point = Tuple[float, float]

EMPTY_ROUTE_MESSAGE = "Start tracking to see your route"


@dataclass(frozen=True)
class GeoBounds:
    """Bounding box of a route in degrees."""

    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    @classmethod
    def of(cls, points: Sequence[PositionSample]) -> "GeoBounds":
        lats = [p.latitude for p in points]
        lngs = [p.longitude for p in points]
        return cls(min(lats), max(lats), min(lngs), max(lngs))


@dataclass(frozen=True)
class RouteProjection:
    """Pixel geometry of one frame.

    ``degenerate_longitude`` / ``degenerate_latitude`` report that the route
    has zero extent along that axis and a unit span was used instead, which
    collapses the route onto a vertical or horizontal line.
    """

    width: int
    height: int
    padding: float
    bounds: GeoBounds
    scale_x: float
    scale_y: float
    path: Tuple[Point, ...]
    start_marker: Point
    live_marker: Optional[Point]
    degenerate_longitude: bool = False
    degenerate_latitude: bool = False


def project_route(
    points: Sequence[PositionSample],
    current: Optional[PositionSample],
    width: int,
    height: int,
    padding: float,
) -> Optional[RouteProjection]:
    """Map a route onto a ``width`` x ``height`` surface.

    Returns ``None`` when the route has fewer than two points.
    """

    if len(points) < 2:
        return None
    bounds = GeoBounds.of(points)
    lng_span = bounds.max_lng - bounds.min_lng
    lat_span = bounds.max_lat - bounds.min_lat
    scale_x = (width - 2 * padding) / (lng_span if lng_span != 0 else 1)
    scale_y = (height - 2 * padding) / (lat_span if lat_span != 0 else 1)

    def project(sample: PositionSample) -> Point:
        x = padding + (sample.longitude - bounds.min_lng) * scale_x
        # Latitude grows northward, surface Y grows downward.
        y = height - padding - (sample.latitude - bounds.min_lat) * scale_y
        return x, y

    path = tuple(project(p) for p in points)
    return RouteProjection(
        width=width,
        height=height,
        padding=padding,
        bounds=bounds,
        scale_x=scale_x,
        scale_y=scale_y,
        path=path,
        start_marker=path[0],
        live_marker=project(current) if current is not None else None,
        degenerate_longitude=lng_span == 0,
        degenerate_latitude=lat_span == 0,
    )


def paint_route(painter: QPainter, frame: RouteFrame, width: int, height: int,
                settings: TrackerSettings) -> Optional[RouteProjection]:
    """Paint ``frame`` onto an active painter, clearing the surface first.

    Only the frame and settings are read, so painting the same inputs
    twice gives the same picture.
    """

    painter.fillRect(0, 0, width, height, QColor(settings.background_color))
    projection = project_route(frame.points, frame.current, width, height, settings.padding)
    if projection is None:
        return None
    painter.setRenderHint(QPainter.RenderHint.Antialiasing)

    route_pen = QPen(QColor(settings.route_color), settings.route_line_width)
    route_pen.setCapStyle(Qt.PenCapStyle.RoundCap)
    route_pen.setJoinStyle(Qt.PenJoinStyle.RoundJoin)
    painter.setPen(route_pen)
    painter.setBrush(Qt.BrushStyle.NoBrush)
    painter.drawPolyline(QPolygonF([QPointF(x, y) for x, y in projection.path]))

    painter.setPen(Qt.PenStyle.NoPen)
    start_x, start_y = projection.start_marker
    painter.setBrush(QBrush(QColor(settings.start_marker_color)))
    painter.drawEllipse(QPointF(start_x, start_y), settings.start_marker_radius, settings.start_marker_radius)

    if projection.live_marker is not None:
        live_x, live_y = projection.live_marker
        live_color = QColor(settings.live_marker_color)
        painter.setBrush(QBrush(live_color))
        painter.drawEllipse(QPointF(live_x, live_y), settings.live_marker_radius, settings.live_marker_radius)
        halo_color = QColor(live_color)
        halo_color.setAlpha(settings.halo_alpha)
        painter.setBrush(QBrush(halo_color))
        painter.drawEllipse(QPointF(live_x, live_y), settings.halo_radius, settings.halo_radius)
    return projection


def render_route_image(frame: RouteFrame, settings: Optional[TrackerSettings] = None) -> QImage:
    """Render ``frame`` off-screen at the configured canvas size."""

    settings = settings or TrackerSettings()
    image = QImage(settings.canvas_width, settings.canvas_height, QImage.Format.Format_ARGB32_Premultiplied)
    painter = QPainter(image)
    try:
        paint_route(painter, frame, settings.canvas_width, settings.canvas_height, settings)
    finally:
        painter.end()
    return image


class RouteCanvas(QWidget):
    """Widget showing the latest route frame.

    Frames are immutable snapshots; :meth:`set_frame` only schedules a
    repaint, so the paint itself runs later on Qt's paint event.
    """

    def __init__(self, settings: Optional[TrackerSettings] = None, parent=None):
        super().__init__(parent)
        self.settings = settings or TrackerSettings()
        self._frame = RouteFrame()
        self._last_projection: Optional[RouteProjection] = None
        self.setMinimumSize(self.settings.canvas_width, self.settings.canvas_height)

    @property
    def frame(self) -> RouteFrame:
        return self._frame

    @property
    def last_projection(self) -> Optional[RouteProjection]:
        return self._last_projection

    def set_frame(self, frame: RouteFrame):
        self._frame = frame
        self.update()

    def paintEvent(self, event):
        painter = QPainter(self)
        try:
            self._last_projection = paint_route(
                painter, self._frame, self.width(), self.height(), self.settings
            )
            if not self._frame.points:
                painter.setPen(QPen(QColor("#6B7280")))
                painter.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter, EMPTY_ROUTE_MESSAGE)
        except Exception as e:
            get_logger().error("Failed to paint route", exception=e, category=LogCategory.RENDER)
        finally:
            painter.end()


__all__ = [
    "GeoBounds",
    "RouteProjection",
    "project_route",
    "paint_route",
    "render_route_image",
    "RouteCanvas",
    "EMPTY_ROUTE_MESSAGE",
]
