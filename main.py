"""
FitTrack - Network-Aware Workout Tracker
Main Application Module
Live route map, workout statistics and tracking controls on top of the
tracking session engine.
"""
import argparse
import math
import sys
from pathlib import Path
from typing import List, Optional, Union
from PySide6.QtWidgets import (
    QApplication, QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QGridLayout,
    QPushButton, QLabel, QStatusBar, QMessageBox, QFrame, QGroupBox
)
from PySide6.QtCore import Qt
from PySide6.QtGui import QFont
# Import our modules
from logger import get_logger, setup_logger, LogCategory
from network_monitor import NetworkQualityMonitor, QtNetworkMonitor, StaticNetworkMonitor
from position_source import (
    GeoPositionSource, QtPositionSource, RandomWalkPositionSource, SimulatedPositionSource
)
from route_renderer import RouteCanvas
from tracker_settings import TrackerSettings, load_tracker_settings, open_settings
from tracking_session import CapabilityUnavailable, TrackingSession
from workout_models import (
    EffectiveType, NetworkQuality, PositionSample, SessionState, WorkoutStats
)

APP_NAME = "FitTrack"
APP_VERSION = "1.0.0"
PAUSED_NOTICE = "Tracking paused"


def bold_font(point_size: int) -> QFont:
    font = QFont("Arial", point_size)
    font.setBold(True)
    return font


def format_duration(seconds: float) -> str:
    """Format elapsed seconds as ``m:ss``; minutes are not wrapped into hours."""
    seconds = max(0.0, seconds)
    mins = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{mins}:{secs:02d}"


def format_distance(km: float) -> str:
    if km < 1:
        return f"{int(math.floor(km * 1000 + 0.5))}m"
    return f"{km:.2f}km"


def format_speed(kmh: float) -> str:
    return f"{kmh:.1f} km/h"


def format_network(online: bool, quality: Optional[NetworkQuality]) -> str:
    status = "Online" if online else "Offline"
    if quality is None:
        return status
    text = f"{status} | {quality.effective_type.value}"
    if quality.downlink_mbps:
        text += f" | {quality.downlink_mbps:g}Mbps"
    if quality.data_saver:
        text += " | Data Saver"
    return text


class StatTile(QFrame):
    """Big value over a small caption."""
    def __init__(self, caption: str, object_name: str, parent=None):
        super().__init__(parent)
        self.setObjectName(object_name)
        layout = QVBoxLayout(self)
        self.value_label = QLabel("")
        self.value_label.setObjectName("stat_value")
        self.value_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.value_label.setFont(bold_font(18))
        layout.addWidget(self.value_label)
        caption_label = QLabel(caption)
        caption_label.setObjectName("stat_caption")
        caption_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(caption_label)
    def set_value(self, text: str):
        self.value_label.setText(text)


class TrackerWindow(QMainWindow):
    """Main window; a pure reader of the tracking session's outputs."""
    def __init__(self, session: TrackingSession, parent=None):
        super().__init__(parent)
        self.setWindowTitle(f"{APP_NAME} - Smart Fitness Tracker")
        self.setMinimumSize(900, 640)
        self.session = session
        self.settings = open_settings()
        self.logger = get_logger()
        self.setup_ui()
        self.apply_theme()
        self.restore_window_state()
        session.state_changed.connect(self._on_state_changed)
        session.stats_updated.connect(self._on_stats_updated)
        session.position_changed.connect(self._on_position_changed)
        session.route_frame_ready.connect(self.canvas.set_frame)
        session.error_changed.connect(self._on_error_changed)
        session.network_quality_changed.connect(self._refresh_network)
        session.online_changed.connect(self._refresh_network)
        session.sampling_config_changed.connect(self._on_sampling_config_changed)
        self._refresh_network()
        self._on_state_changed(session.state)
        self._on_stats_updated(session.stats)
        self._on_position_changed(session.current_position)
        self._on_error_changed(session.last_error)
        self.logger.info("FitTrack main window initialized", category=LogCategory.SYSTEM)
    def setup_ui(self):
        central_widget = QWidget()
        self.setCentralWidget(central_widget)
        layout = QVBoxLayout(central_widget)
        layout.setSpacing(12)
        header = QFrame()
        header.setObjectName("header")
        header_layout = QHBoxLayout(header)
        title_label = QLabel(f"{APP_NAME}")
        title_label.setObjectName("title")
        title_label.setFont(bold_font(20))
        header_layout.addWidget(title_label)
        header_layout.addStretch()
        self.network_label = QLabel("")
        self.network_label.setObjectName("network")
        header_layout.addWidget(self.network_label)
        layout.addWidget(header)
        body = QHBoxLayout()
        map_group = QGroupBox("Route Map")
        map_layout = QVBoxLayout(map_group)
        self.canvas = RouteCanvas(self.session.settings)
        map_layout.addWidget(self.canvas)
        body.addWidget(map_group, 3)
        body.addWidget(self._create_controls(), 2)
        layout.addLayout(body)
        layout.addWidget(self._create_stats())
        self.location_group = QGroupBox("Current Location")
        location_layout = QVBoxLayout(self.location_group)
        self.latitude_label = QLabel("")
        self.longitude_label = QLabel("")
        self.speed_label = QLabel("")
        for label in (self.latitude_label, self.longitude_label, self.speed_label):
            location_layout.addWidget(label)
        layout.addWidget(self.location_group)
        self.status_bar = QStatusBar()
        self.setStatusBar(self.status_bar)
        self.status_bar.showMessage("Ready")
    def _create_controls(self) -> QWidget:
        group = QGroupBox("Tracking Controls")
        layout = QVBoxLayout(group)
        self.start_button = QPushButton("Start Tracking")
        self.start_button.setObjectName("start_button")
        self.start_button.clicked.connect(self.start_tracking)
        layout.addWidget(self.start_button)
        row = QHBoxLayout()
        self.pause_button = QPushButton("Pause")
        self.pause_button.setObjectName("pause_button")
        self.pause_button.clicked.connect(self.pause_tracking)
        row.addWidget(self.pause_button)
        self.resume_button = QPushButton("Resume")
        self.resume_button.setObjectName("start_button")
        self.resume_button.clicked.connect(self.resume_tracking)
        row.addWidget(self.resume_button)
        self.stop_button = QPushButton("Stop")
        self.stop_button.setObjectName("stop_button")
        self.stop_button.clicked.connect(self.stop_tracking)
        row.addWidget(self.stop_button)
        layout.addLayout(row)
        self.error_label = QLabel("")
        self.error_label.setObjectName("error_notice")
        self.error_label.setWordWrap(True)
        layout.addWidget(self.error_label)
        self.paused_label = QLabel(PAUSED_NOTICE)
        self.paused_label.setObjectName("paused_notice")
        layout.addWidget(self.paused_label)
        layout.addStretch()
        return group
    def _create_stats(self) -> QWidget:
        group = QGroupBox("Workout Statistics")
        layout = QGridLayout(group)
        self.duration_tile = StatTile("Duration", "duration_tile")
        self.distance_tile = StatTile("Distance", "distance_tile")
        self.avg_speed_tile = StatTile("Avg Speed", "avg_speed_tile")
        self.max_speed_tile = StatTile("Max Speed", "max_speed_tile")
        for column, tile in enumerate((self.duration_tile, self.distance_tile,
                                       self.avg_speed_tile, self.max_speed_tile)):
            layout.addWidget(tile, 0, column)
        return group
    def apply_theme(self):
        style = """
        QMainWindow {
            background-color: #EFF6FF;
        }
        QFrame#header {
            background-color: white;
            border-radius: 8px;
        }
        QLabel#title {
            color: #1F2937;
        }
        QGroupBox {
            background-color: white;
            border-radius: 8px;
            margin-top: 16px;
            font-weight: 600;
        }
        QPushButton {
            border-radius: 8px;
            padding: 10px 20px;
            color: white;
            font-weight: 600;
        }
        QPushButton#start_button { background-color: #22C55E; }
        QPushButton#pause_button { background-color: #EAB308; }
        QPushButton#stop_button { background-color: #EF4444; }
        QLabel#error_notice {
            background-color: #FEE2E2;
            border: 1px solid #FCA5A5;
            color: #B91C1C;
            padding: 8px;
        }
        QLabel#paused_notice {
            background-color: #FEF9C3;
            border: 1px solid #FDE047;
            color: #A16207;
            padding: 8px;
        }
        """
        self.setStyleSheet(style)
    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def start_tracking(self):
        self.logger.log_user_action("start_tracking")
        try:
            self.session.start()
        except CapabilityUnavailable as e:
            self.status_bar.showMessage(str(e), 5000)
        except Exception as e:
            self.logger.error("Failed to start tracking", exception=e, category=LogCategory.SESSION)
            QMessageBox.critical(self, "Tracking Error", f"Failed to start tracking:\n{e}")
    def pause_tracking(self):
        self.logger.log_user_action("pause_tracking")
        self.session.pause()
    def resume_tracking(self):
        self.logger.log_user_action("resume_tracking")
        self.session.resume()
    def stop_tracking(self):
        self.logger.log_user_action("stop_tracking")
        self.session.stop()
    # ------------------------------------------------------------------
    # Session outputs
    # ------------------------------------------------------------------
    def _on_state_changed(self, state: SessionState):
        running = state in (SessionState.TRACKING, SessionState.PAUSED)
        self.start_button.setVisible(not running)
        self.pause_button.setVisible(state is SessionState.TRACKING)
        self.resume_button.setVisible(state is SessionState.PAUSED)
        self.stop_button.setVisible(running)
        self.paused_label.setVisible(state is SessionState.PAUSED)
        self.status_bar.showMessage(state.value.capitalize())
    def _on_stats_updated(self, stats: WorkoutStats):
        self.duration_tile.set_value(format_duration(stats.duration_seconds))
        self.distance_tile.set_value(format_distance(stats.total_distance_km))
        self.avg_speed_tile.set_value(format_speed(stats.avg_speed_kmh))
        self.max_speed_tile.set_value(format_speed(stats.max_speed_kmh))
    def _on_position_changed(self, sample: Optional[PositionSample]):
        self.location_group.setVisible(sample is not None)
        if sample is None:
            return
        self.latitude_label.setText(f"Latitude: {sample.latitude:.6f}")
        self.longitude_label.setText(f"Longitude: {sample.longitude:.6f}")
        speed = sample.speed_kmh
        self.speed_label.setVisible(bool(speed))
        if speed:
            self.speed_label.setText(f"Speed: {format_speed(speed)}")
    def _on_error_changed(self, message: Optional[str]):
        self.error_label.setText(message or "")
        self.error_label.setVisible(bool(message))
    def _on_sampling_config_changed(self, config):
        mode = "high accuracy" if config.high_accuracy else "battery saver"
        self.status_bar.showMessage(f"Position sampling: {mode}", 3000)
    def _refresh_network(self, *_):
        self.network_label.setText(format_network(self.session.online, self.session.network_quality))
    def closeEvent(self, event):
        self.save_window_state()
        self.session.shutdown()
        event.accept()
    def save_window_state(self):
        self.settings.setValue("window/geometry", self.saveGeometry())
    def restore_window_state(self):
        geometry = self.settings.value("window/geometry")
        if geometry:
            self.restoreGeometry(geometry)


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse the tracker options."""
    parser = argparse.ArgumentParser(prog="fittrack", description=f"{APP_NAME} - Network-Aware Workout Tracker")
    parser.add_argument("--debug", "-d", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-dir", type=str, help="Custom directory for log files")
    parser.add_argument(
        "--simulate",
        metavar="FILE|random",
        help="Replay positions from a JSON feed, or 'random' for a random walk"
    )
    parser.add_argument("--interval-ms", type=int, default=1000,
                        help="Delivery interval of simulated positions (default: 1000)")
    parser.add_argument(
        "--network-tier",
        choices=[t.value for t in EffectiveType],
        help="Pin the network tier instead of asking the platform"
    )
    parser.add_argument("--data-saver", action="store_true",
                        help="Report data saver mode (with --network-tier)")
    return parser.parse_args(argv)


def create_position_source(args: argparse.Namespace) -> GeoPositionSource:
    if not args.simulate:
        return QtPositionSource()
    if args.simulate == "random":
        return RandomWalkPositionSource(interval_ms=args.interval_ms)
    return SimulatedPositionSource.from_feed(Path(args.simulate), interval_ms=args.interval_ms)


def create_network_monitor(args: argparse.Namespace) -> NetworkQualityMonitor:
    if args.network_tier:
        return StaticNetworkMonitor(NetworkQuality(effective_type=args.network_tier, data_saver=args.data_saver))
    monitor = QtNetworkMonitor()
    if monitor.has_backend:
        return monitor
    return StaticNetworkMonitor()


def main(args: Union[argparse.Namespace, List[str], None] = None) -> int:
    """Main entry point for the FitTrack application."""
    if not isinstance(args, argparse.Namespace):
        args = parse_arguments(args)
    setup_logger("fittrack", Path(args.log_dir) if args.log_dir else None)
    logger = get_logger()
    if args.debug:
        logger.set_log_level("DEBUG")
    logger.info("="*60)
    logger.info(f"{APP_NAME} - Network-Aware Workout Tracker")
    logger.info(f"   Version {APP_VERSION}")
    logger.info("="*60)
    app = QApplication.instance() or QApplication(sys.argv)
    app.setApplicationName(APP_NAME)
    app.setApplicationVersion(APP_VERSION)
    app.setOrganizationName(APP_NAME)
    try:
        tracker_settings: TrackerSettings = load_tracker_settings()
        session = TrackingSession(
            create_position_source(args),
            create_network_monitor(args),
            settings=tracker_settings,
        )
        main_window = TrackerWindow(session)
        main_window.show()
        logger.info("FitTrack application started successfully")
        exit_code = app.exec()
        logger.info(f"FitTrack application exited with code: {exit_code}")
        return exit_code
    except Exception as e:
        logger.critical("Critical error starting FitTrack", exception=e)
        QMessageBox.critical(None, "Critical Error",
                             f"Failed to start FitTrack:\n{str(e)}\n\nCheck logs for details.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
